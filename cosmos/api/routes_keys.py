"""Publication of the token verification keys and service status."""

from fastapi import APIRouter, Response

from cosmos.api.deps import Auth
from cosmos.api.schemas import StatusReply
from cosmos.crypto.keys import public_key_to_jwk
from cosmos.crypto.types import JWKSResponse

router = APIRouter(prefix="/v1", tags=["keys"])

JWKS_CACHE_CONTROL = "public, max-age=3600"
VERSION = "0.1.0"


@router.get("/keys")
async def jwks(response: Response, auth: Auth) -> JWKSResponse:
    """GET /v1/keys -- every key that tokens may be verified with."""
    keys = auth.keyring.verification_keys()
    entries = [public_key_to_jwk(keys[kid], kid) for kid in auth.keyring]
    response.headers["Cache-Control"] = JWKS_CACHE_CONTROL
    return JWKSResponse(keys=entries)


@router.get("/status")
async def service_status() -> StatusReply:
    """GET /v1/status -- heartbeat."""
    return StatusReply(status="ok", version=VERSION)
