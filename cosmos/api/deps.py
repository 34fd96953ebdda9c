"""FastAPI dependencies for authentication and authorization.

Per request the stages run in order: reauthenticate (best effort silent
renewal), authenticate (verified access token required) and authorize
(required permissions).
"""

from collections.abc import Awaitable, Callable
from typing import Annotated

import structlog
from fastapi import Depends, HTTPException, Request, Response, status
from pydantic import BaseModel, ConfigDict

from cosmos.api.transport import get_access_token, get_refresh_token, set_auth_cookies
from cosmos.core.errors import AuthError, NoRefreshTokenError, TokenMismatchError
from cosmos.core.settings import AuthSettings
from cosmos.crypto.keyring import KeyRing
from cosmos.tokens.claims import Claims
from cosmos.tokens.issuer import Clock, TokenIssuer, TokenPair, utcnow
from cosmos.tokens.verifier import TokenVerifier

logger = structlog.get_logger()

AUTHENTICATION_FAILED = "authentication failed"
NOT_AUTHORIZED = "user does not have permission to perform this operation"


class AuthContext(BaseModel):
    """Key ring, issuer and verifier built once at startup."""

    model_config = ConfigDict(arbitrary_types_allowed=True, frozen=True)

    settings: AuthSettings
    keyring: KeyRing
    issuer: TokenIssuer
    verifier: TokenVerifier
    clock: Clock = utcnow

    @classmethod
    def build(
        cls,
        settings: AuthSettings,
        keyring: KeyRing | None = None,
        clock: Clock = utcnow,
    ) -> "AuthContext":
        """Load the configured keys (unless given) and wire the token services."""
        keyring = keyring or KeyRing.load(settings.token_keys)
        token_settings = settings.token_settings()
        return cls(
            settings=settings,
            keyring=keyring,
            issuer=TokenIssuer(keyring, token_settings, clock=clock),
            verifier=TokenVerifier(keyring, token_settings, clock=clock),
            clock=clock,
        )

    def set_cookies(self, response: Response, tokens: TokenPair) -> None:
        set_auth_cookies(
            response,
            tokens.access_token,
            tokens.refresh_token,
            self.settings.cookie_domain,
            grace=self.settings.cookie_grace_period,
            now=self.clock(),
        )


def get_auth(request: Request) -> AuthContext:
    return request.app.state.auth


Auth = Annotated[AuthContext, Depends(get_auth)]


def _unauthorized() -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=AUTHENTICATION_FAILED,
        headers={"WWW-Authenticate": "Bearer"},
    )


def check_pair(access: Claims, refresh: Claims) -> None:
    """Require both tokens to come from the same login."""
    if access.jti != refresh.jti or access.sub != refresh.sub:
        raise TokenMismatchError("access and refresh tokens are not paired")


async def reauthenticate(request: Request, response: Response, auth: Auth) -> None:
    """Silently renew the token pair when a valid refresh token is present.

    Never fails the request; on any authentication error the renewal is
    skipped and the existing credentials are used.
    """
    try:
        refresh_token = get_refresh_token(request)
    except NoRefreshTokenError:
        return

    try:
        refresh = auth.verifier.verify_refresh(refresh_token)
        access = auth.verifier.parse_access(get_access_token(request))
        check_pair(access, refresh)
        tokens = auth.issuer.create_tokens(access)
        auth.set_cookies(response, tokens)
    except AuthError as exc:
        logger.debug("auth.reauthenticate_skipped", reason=type(exc).__name__, error=str(exc))
        return

    request.state.access_token = tokens.access_token
    logger.info("auth.reauthenticated", sub=access.sub)


async def authenticate(
    request: Request,
    auth: Auth,
    _renewed: Annotated[None, Depends(reauthenticate)],
) -> Claims:
    """Verify the access token and attach its claims to the request."""
    try:
        token = getattr(request.state, "access_token", None) or get_access_token(request)
        claims = auth.verifier.verify_access(token)
    except AuthError as exc:
        logger.info("auth.authentication_failed", reason=type(exc).__name__, error=str(exc))
        raise _unauthorized() from exc

    request.state.claims = claims
    structlog.contextvars.bind_contextvars(sub=claims.sub)
    return claims


def get_claims(request: Request) -> Claims:
    """Claims attached by ``authenticate``; 401 if it did not run."""
    claims = getattr(request.state, "claims", None)
    if claims is None:
        raise _unauthorized()
    return claims


def authorize(*permissions: str) -> Callable[[Request], Awaitable[Claims]]:
    """Dependency requiring every one of ``permissions``.

    Must be declared after ``authenticate``; without its claims the request
    is refused like any other missing permission.
    """

    async def _authorize(request: Request) -> Claims:
        claims: Claims | None = getattr(request.state, "claims", None)
        if claims is None or not claims.has_all_permissions(*permissions):
            logger.info(
                "auth.authorization_failed",
                sub=claims.sub if claims else None,
                required=list(permissions),
            )
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=NOT_AUTHORIZED,
            )
        return claims

    return _authorize


CurrentClaims = Annotated[Claims, Depends(authenticate)]
