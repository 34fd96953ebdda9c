"""Moving credentials between HTTP requests/responses and the token layer."""

import re
from datetime import UTC, datetime, timedelta

from starlette.requests import Request
from starlette.responses import Response

from cosmos.core.errors import (
    MalformedHeaderError,
    NoCredentialsError,
    NoRefreshTokenError,
)
from cosmos.tokens.claims import expires_at

ACCESS_TOKEN_COOKIE = "access_token"
REFRESH_TOKEN_COOKIE = "refresh_token"
COOKIE_GRACE_PERIOD = timedelta(minutes=10)

BEARER = re.compile(r"^\s*Bearer\s+([A-Za-z0-9_.-]+)\s*$")


def get_access_token(request: Request) -> str:
    """Bearer token from the Authorization header, else the access cookie."""
    header = request.headers.get("Authorization")
    if header:
        match = BEARER.match(header)
        if match is None:
            raise MalformedHeaderError("could not parse Bearer token from Authorization header")
        return match.group(1)

    cookie = request.cookies.get(ACCESS_TOKEN_COOKIE)
    if cookie:
        return cookie
    raise NoCredentialsError("no access token found in request")


def get_refresh_token(request: Request) -> str:
    """Refresh token from its cookie; headers are never consulted."""
    cookie = request.cookies.get(REFRESH_TOKEN_COOKIE)
    if not cookie:
        raise NoRefreshTokenError("no refresh token found in request")
    return cookie


def _max_age(token: str, grace: timedelta, now: datetime) -> int:
    remaining = expires_at(token) + grace - now
    return max(int(remaining.total_seconds()), 0)


def set_auth_cookies(
    response: Response,
    access_token: str,
    refresh_token: str,
    domain: str,
    grace: timedelta = COOKIE_GRACE_PERIOD,
    now: datetime | None = None,
) -> None:
    """Set both token cookies on ``response``.

    Each cookie lives until its token's exp plus ``grace``. The access cookie
    is HttpOnly; the refresh cookie is readable by scripts so front ends can
    schedule renewal. Both are Secure, so browsers drop them on plain HTTP.
    """
    now = now or datetime.now(UTC)
    response.set_cookie(
        ACCESS_TOKEN_COOKIE,
        access_token,
        max_age=_max_age(access_token, grace, now),
        path="/",
        domain=domain,
        secure=True,
        httponly=True,
        samesite="lax",
    )
    response.set_cookie(
        REFRESH_TOKEN_COOKIE,
        refresh_token,
        max_age=_max_age(refresh_token, grace, now),
        path="/",
        domain=domain,
        secure=True,
        httponly=False,
        samesite="lax",
    )


def clear_auth_cookies(response: Response, domain: str) -> None:
    """Expire both token cookies immediately."""
    response.delete_cookie(
        ACCESS_TOKEN_COOKIE,
        path="/",
        domain=domain,
        secure=True,
        httponly=True,
        samesite="lax",
    )
    response.delete_cookie(
        REFRESH_TOKEN_COOKIE,
        path="/",
        domain=domain,
        secure=True,
        httponly=False,
        samesite="lax",
    )
