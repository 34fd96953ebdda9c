"""Helpers shared by the test modules and fixtures."""

from collections.abc import Awaitable, Callable
from datetime import datetime, timedelta

from cosmos.db.models_user import UserEntity

AUDIENCE = "http://localhost:3000"
OLD_KID = "26eus0rt3e3Abor12Y60VqgCEXR"
NEW_KID = "26eutHCBAmtGZzeQB7WVZD28l0F"

MakeUser = Callable[..., Awaitable[UserEntity]]


class FakeClock:
    """Settable clock injected into the issuer and verifier."""

    def __init__(self, now: datetime) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, delta: timedelta) -> None:
        self.now += delta


def bearer(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


def cookie_header(**cookies: str) -> dict[str, str]:
    """Cookie request header; the client jar rejects Secure cookies over http."""
    return {"Cookie": "; ".join(f"{name}={value}" for name, value in cookies.items())}
