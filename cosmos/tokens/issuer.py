"""Access and refresh token issuance."""

from collections.abc import Callable
from datetime import UTC, datetime

import jwt
import uuid_utils
from pydantic import BaseModel

from cosmos.core.errors import EncodingError
from cosmos.core.settings import TokenSettings
from cosmos.crypto.keyring import KeyRing
from cosmos.tokens.claims import Claims, Principal

ALGORITHM = "RS256"

Clock = Callable[[], datetime]


def utcnow() -> datetime:
    return datetime.now(UTC)


class TokenPair(BaseModel):
    """Signed access and refresh tokens from a single login."""

    access_token: str
    refresh_token: str


class TokenIssuer:
    """Builds and signs access/refresh claim pairs.

    Both tokens of a pair share ``jti``, ``sub`` and ``iat`` so the pair can
    be cross-checked on reauthentication. The refresh token becomes valid
    ``refresh_overlap`` (a negative duration) before the access token
    expires and outlives it.
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

    def _now(self) -> datetime:
        # token timestamps are whole seconds
        return self._clock().replace(microsecond=0)

    def create_access_token(self, principal: Principal | Claims) -> Claims:
        """Access claims for ``principal``, issued now.

        ``principal`` may also be previously parsed claims, whose identity
        portion is carried over when a pair is reissued.
        """
        if isinstance(principal, Principal):
            identity = Claims.for_principal(principal)
        else:
            identity = principal

        now = self._now()
        return identity.model_copy(
            update={
                "jti": str(uuid_utils.uuid4()),
                "aud": [self._settings.audience],
                "iss": self._settings.issuer or None,
                "iat": now,
                "nbf": now,
                "exp": now + self._settings.access_ttl,
            },
            deep=True,
        )

    def create_refresh_token(self, access: Claims) -> Claims:
        """Refresh claims paired with ``access``."""
        if access.iat is None or access.exp is None:
            raise ValueError("access claims must be issued before pairing")

        return Claims(
            jti=access.jti,
            aud=list(access.aud),
            iss=access.iss,
            sub=access.sub,
            iat=access.iat,
            nbf=access.exp + self._settings.refresh_overlap,
            exp=access.iat + self._settings.refresh_ttl,
        )

    def sign(self, claims: Claims) -> str:
        """Encode and sign ``claims`` with the current key."""
        kid, private_key = self._keyring.signing_key()
        try:
            return jwt.encode(
                claims.to_payload(),
                private_key,
                algorithm=ALGORITHM,
                headers={"kid": kid},
            )
        except (jwt.PyJWTError, TypeError, ValueError) as exc:
            raise EncodingError("could not sign token claims") from exc

    def create_tokens(self, principal: Principal | Claims) -> TokenPair:
        """Issue and sign a fresh access/refresh pair."""
        access = self.create_access_token(principal)
        refresh = self.create_refresh_token(access)
        return TokenPair(
            access_token=self.sign(access),
            refresh_token=self.sign(refresh),
        )
