"""Signature, key id, audience and time-window checks for signed tokens."""

from datetime import datetime

import jwt
import structlog
from pydantic import ValidationError

from cosmos.core.errors import (
    ExpiredError,
    InvalidAudienceError,
    MalformedTokenError,
    NotYetValidError,
    SignatureError,
    UnknownKeyError,
    WrongTokenTypeError,
)
from cosmos.core.settings import TokenSettings
from cosmos.crypto.keyring import KeyRing
from cosmos.tokens import claims as unverified
from cosmos.tokens.claims import Claims
from cosmos.tokens.issuer import ALGORITHM, Clock, utcnow

logger = structlog.get_logger()

REQUIRED_CLAIMS = ["jti", "sub", "iat", "nbf", "exp"]

# Temporal and audience checks run against the injected clock instead.
_SIGNATURE_ONLY = {
    "verify_signature": True,
    "verify_exp": False,
    "verify_nbf": False,
    "verify_iat": False,
    "verify_aud": False,
    "verify_iss": False,
    "require": REQUIRED_CLAIMS,
}


def _expect_access(claims: Claims) -> Claims:
    if claims.is_refresh:
        raise WrongTokenTypeError("refresh token presented as access token")
    return claims


class TokenVerifier:
    """Validates tokens signed by any key in the key ring.

    The verification key is always chosen by the ``kid`` header; there is
    no fallback to trying other keys.
    """

    def __init__(
        self,
        keyring: KeyRing,
        settings: TokenSettings,
        clock: Clock = utcnow,
    ) -> None:
        self._keyring = keyring
        self._settings = settings
        self._clock = clock

    def verify(self, token: str) -> Claims:
        """Return the claims of a currently valid token for our audience."""
        claims = self.parse(token)
        now = self._clock()

        if claims.nbf is not None and now < claims.nbf:
            raise NotYetValidError("token is not valid yet")
        if claims.exp is not None and now > claims.exp:
            raise ExpiredError("token is expired")
        if self._settings.audience not in claims.aud:
            raise InvalidAudienceError(f"invalid audience {claims.aud!r}")
        return claims

    def verify_access(self, token: str) -> Claims:
        """Like ``verify``, but rejects refresh tokens."""
        return _expect_access(self.verify(token))

    def verify_refresh(self, token: str) -> Claims:
        """Like ``verify``, but rejects anything that is not a refresh token."""
        claims = self.verify(token)
        if not claims.is_refresh:
            raise WrongTokenTypeError("access token presented as refresh token")
        return claims

    def parse_access(self, token: str) -> Claims:
        """Like ``parse``, but rejects refresh tokens."""
        return _expect_access(self.parse(token))

    def parse(self, token: str) -> Claims:
        """Check only the signature; expired or immature tokens are returned.

        Used to recover the claims of an expired access token when
        reauthenticating with a refresh token.
        """
        try:
            header = jwt.get_unverified_header(token)
        except jwt.PyJWTError as exc:
            raise MalformedTokenError("could not decode token header") from exc

        kid = header.get("kid")
        if not isinstance(kid, str) or not kid:
            raise UnknownKeyError("token header has no kid")
        public_key = self._keyring.verification_key(kid)

        try:
            raw = jwt.decode(
                token,
                public_key,
                algorithms=[ALGORITHM],
                options=_SIGNATURE_ONLY,
            )
        except (jwt.InvalidSignatureError, jwt.InvalidAlgorithmError) as exc:
            logger.debug("tokens.signature_invalid", kid=kid, error=str(exc))
            raise SignatureError() from exc
        except jwt.PyJWTError as exc:
            raise MalformedTokenError(str(exc)) from exc

        try:
            return Claims.model_validate(raw)
        except ValidationError as exc:
            raise MalformedTokenError("token claims are malformed") from exc

    def expires_at(self, token: str) -> datetime:
        """Unverified exp claim; bookkeeping only."""
        return unverified.expires_at(token)

    def not_before(self, token: str) -> datetime:
        """Unverified nbf claim; bookkeeping only."""
        return unverified.not_before(token)
