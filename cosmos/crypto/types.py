"""Type definitions for signing keys and JWKS publication."""

from cryptography.hazmat.primitives.asymmetric.rsa import RSAPrivateKey, RSAPublicKey
from pydantic import BaseModel, ConfigDict


class SigningKeyData(BaseModel):
    """A PEM encoded RSA keypair and its key id."""

    kid: str
    private_key_pem: str
    public_key_pem: str


class KeyRecord(BaseModel):
    """Key material held by the key ring.

    ``private_key`` is only retained for the current signing key.
    """

    model_config = ConfigDict(arbitrary_types_allowed=True, frozen=True)

    kid: str
    public_key: RSAPublicKey
    private_key: RSAPrivateKey | None = None


class JWKEntry(BaseModel):
    """Single JWK entry in a JWKS response."""

    kty: str = "RSA"
    use: str = "sig"
    alg: str = "RS256"
    kid: str
    n: str
    e: str


class JWKSResponse(BaseModel):
    """JSON Web Key Set response."""

    keys: list[JWKEntry]
