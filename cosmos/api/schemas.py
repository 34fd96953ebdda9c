"""Request and response bodies for the v1 API."""

from pydantic import BaseModel, EmailStr, Field

MIN_PASSWORD_LENGTH = 8


class Reply(BaseModel):
    """Standard reply; also the shape of every error response."""

    success: bool
    error: str | None = None


class StatusReply(BaseModel):
    status: str
    version: str


class RegisterRequest(BaseModel):
    name: str = Field(min_length=1)
    email: EmailStr
    password: str = Field(min_length=MIN_PASSWORD_LENGTH)


class RegisterReply(BaseModel):
    id: int
    name: str | None = None
    email: str
    role: str | None = None


class LoginRequest(BaseModel):
    email: EmailStr
    password: str


class LoginReply(BaseModel):
    access_token: str
    refresh_token: str


class ReauthenticateRequest(BaseModel):
    """Refresh token may be omitted when sent as a cookie."""

    refresh_token: str | None = None


class UserReply(BaseModel):
    id: int
    name: str | None = None
    email: str
    role: str | None = None
    permissions: list[str] = Field(default_factory=list)
