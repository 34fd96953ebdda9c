"""Application settings loaded from environment variables."""

from datetime import timedelta
from typing import Self

from pydantic import BaseModel, ConfigDict, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

ACCESS_TOKEN_TTL_DEFAULT = 3600
REFRESH_TOKEN_TTL_DEFAULT = 7200
REFRESH_OVERLAP_DEFAULT = -900
COOKIE_GRACE_DEFAULT = 600
DB_POOL_SIZE_DEFAULT = 5
DB_MAX_OVERFLOW_DEFAULT = 10
DB_PORT_DEFAULT = 5432


def _check_lifetimes(access_ttl: float, refresh_ttl: float, overlap: float) -> None:
    if access_ttl <= 0:
        raise ValueError("access token lifetime must be positive")
    if refresh_ttl <= access_ttl:
        raise ValueError("refresh token lifetime must exceed the access token lifetime")
    if overlap >= 0:
        raise ValueError("refresh overlap must be negative")
    if access_ttl + overlap <= 0:
        raise ValueError("refresh overlap must be shorter than the access token lifetime")


class TokenSettings(BaseModel):
    """Immutable token parameters shared by the issuer and the verifier."""

    model_config = ConfigDict(frozen=True)

    audience: str
    issuer: str = ""
    access_ttl: timedelta
    refresh_ttl: timedelta
    refresh_overlap: timedelta

    @model_validator(mode="after")
    def _validate_lifetimes(self) -> Self:
        _check_lifetimes(
            self.access_ttl.total_seconds(),
            self.refresh_ttl.total_seconds(),
            self.refresh_overlap.total_seconds(),
        )
        return self


class DatabaseSettings(BaseSettings):
    """Connection settings for the principal store."""

    model_config = SettingsConfigDict(env_prefix="COSMOS_DB_")

    url: str = ""
    host: str = "localhost"
    port: int = DB_PORT_DEFAULT
    user: str = "cosmos"
    password: str = "cosmos"
    database: str = "cosmos"
    pool_size: int = DB_POOL_SIZE_DEFAULT
    max_overflow: int = DB_MAX_OVERFLOW_DEFAULT

    @property
    def async_url(self) -> str:
        """Explicit URL if configured, otherwise an asyncpg URL from parts."""
        if self.url:
            return self.url
        return (
            f"postgresql+asyncpg://{self.user}:{self.password}"
            f"@{self.host}:{self.port}/{self.database}"
        )


class AuthSettings(BaseSettings):
    """Signing keys, token lifetimes and cookie transport settings.

    ``token_keys`` maps a sortable key id to the path of a PEM encoded RSA
    private key, e.g. ``COSMOS_AUTH_TOKEN_KEYS='{"26eus0...": "/keys/a.pem"}'``.
    The key with the greatest id signs; all of them verify.

    ``refresh_token_ttl`` is measured from the issuance instant of the pair
    and ``refresh_overlap`` is added to the access token expiry to obtain the
    moment the refresh token becomes valid, so it must be negative.
    """

    model_config = SettingsConfigDict(env_prefix="COSMOS_AUTH_")

    token_keys: dict[str, str] = {}
    audience: str = "http://localhost:8000"
    issuer: str = ""
    access_token_ttl: int = ACCESS_TOKEN_TTL_DEFAULT
    refresh_token_ttl: int = REFRESH_TOKEN_TTL_DEFAULT
    refresh_overlap: int = REFRESH_OVERLAP_DEFAULT
    cookie_domain: str = "localhost"
    cookie_grace: int = COOKIE_GRACE_DEFAULT

    @model_validator(mode="after")
    def _validate_lifetimes(self) -> Self:
        _check_lifetimes(self.access_token_ttl, self.refresh_token_ttl, self.refresh_overlap)
        return self

    def token_settings(self) -> TokenSettings:
        """Project the lifetimes into the form used by the token modules."""
        return TokenSettings(
            audience=self.audience,
            issuer=self.issuer,
            access_ttl=timedelta(seconds=self.access_token_ttl),
            refresh_ttl=timedelta(seconds=self.refresh_token_ttl),
            refresh_overlap=timedelta(seconds=self.refresh_overlap),
        )

    @property
    def cookie_grace_period(self) -> timedelta:
        return timedelta(seconds=self.cookie_grace)


class AppSettings(BaseSettings):
    """Process level settings."""

    model_config = SettingsConfigDict(env_prefix="COSMOS_")

    log_level: str = "info"
    console_log: bool = False
    maintenance: bool = False
    cors_origins: str = ""

    def get_cors_origin_list(self) -> list[str]:
        """Parse comma-separated CORS origins."""
        if not self.cors_origins:
            return []
        return [o.strip() for o in self.cors_origins.split(",") if o.strip()]
