"""Claims carried by cosmos access and refresh tokens."""

import string
from datetime import datetime

import jwt
from pydantic import (
    BaseModel,
    Field,
    ValidationError,
    field_serializer,
    field_validator,
)

from cosmos.core.errors import InvalidSubjectError, MalformedTokenError

SUBJECT_RADIX = 36
_DIGITS = string.digits + string.ascii_lowercase


def encode_subject(principal_id: int) -> str:
    """Encode an integer principal id as a base-36 subject."""
    if principal_id == 0:
        return "0"
    sign = "-" if principal_id < 0 else ""
    value = abs(principal_id)
    digits = []
    while value:
        value, rem = divmod(value, SUBJECT_RADIX)
        digits.append(_DIGITS[rem])
    return sign + "".join(reversed(digits))


def decode_subject(subject: str) -> int:
    """Decode a base-36 subject back into the principal id."""
    try:
        return int(subject, SUBJECT_RADIX)
    except ValueError:
        raise InvalidSubjectError(f"invalid subject {subject!r}") from None


class Principal(BaseModel):
    """Snapshot of a user with its role and permissions already resolved."""

    id: int
    email: str
    name: str = ""
    role: str = ""
    permissions: list[str] = Field(default_factory=list)


class Claims(BaseModel):
    """Registered JWT claims plus the cosmos identity extensions.

    Fields use the JSON claim names. Timestamps are UTC datetimes and are
    serialized as integer epoch seconds.
    """

    jti: str = ""
    aud: list[str] = Field(default_factory=list)
    iss: str | None = None
    sub: str = ""
    iat: datetime | None = None
    nbf: datetime | None = None
    exp: datetime | None = None
    name: str | None = None
    email: str | None = None
    role: str | None = None
    permissions: list[str] = Field(default_factory=list)

    @field_validator("aud", mode="before")
    @classmethod
    def _single_audience(cls, value: object) -> object:
        if isinstance(value, str):
            return [value]
        return value

    @field_serializer("iat", "nbf", "exp")
    def _epoch_seconds(self, value: datetime | None) -> int | None:
        if value is None:
            return None
        return int(value.timestamp())

    @classmethod
    def for_principal(cls, principal: Principal) -> "Claims":
        """Identity portion of the claims for ``principal``."""
        return cls(
            sub=encode_subject(principal.id),
            name=principal.name or None,
            email=principal.email or None,
            role=principal.role or None,
            permissions=list(principal.permissions),
        )

    @property
    def subject_id(self) -> int:
        return decode_subject(self.sub)

    @property
    def is_refresh(self) -> bool:
        """Refresh tokens are the only ones that become valid after issuance."""
        return self.iat is not None and self.nbf is not None and self.nbf > self.iat

    def has_permission(self, required: str) -> bool:
        return required in self.permissions

    def has_all_permissions(self, *required: str) -> bool:
        return all(self.has_permission(perm) for perm in required)

    def to_payload(self) -> dict[str, object]:
        """JSON claims for encoding; unset optional claims are omitted."""
        payload = self.model_dump(exclude_none=True)
        if not payload.get("permissions"):
            payload.pop("permissions", None)
        return payload


def parse_unverified(token: str) -> Claims:
    """Decode claims without checking the signature or any claim.

    Only for bookkeeping such as cookie lifetimes; never authorize with it.
    """
    try:
        raw = jwt.decode(
            token,
            options={"verify_signature": False},
            algorithms=["RS256"],
        )
    except jwt.PyJWTError as exc:
        raise MalformedTokenError("could not decode token") from exc
    try:
        return Claims.model_validate(raw)
    except ValidationError as exc:
        raise MalformedTokenError("token claims are malformed") from exc


def expires_at(token: str) -> datetime:
    """Unverified exp claim of ``token``."""
    claims = parse_unverified(token)
    if claims.exp is None:
        raise MalformedTokenError("token has no exp claim")
    return claims.exp


def not_before(token: str) -> datetime:
    """Unverified nbf claim of ``token``."""
    claims = parse_unverified(token)
    if claims.nbf is None:
        raise MalformedTokenError("token has no nbf claim")
    return claims.nbf
