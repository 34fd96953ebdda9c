"""Typed errors raised by the key ring, token and transport modules.

None of these carry HTTP semantics; the API layer maps them to 401/403.
"""


class AuthError(Exception):
    """Base class for all cosmos authentication errors."""


class ConfigError(AuthError):
    """Key material or token configuration is missing or unusable."""


class TokenError(AuthError):
    """A signed token could not be issued, parsed or verified."""


class UnknownKeyError(TokenError):
    """The token header references a key id that is not in the key ring."""


class SignatureError(TokenError):
    """The token signature could not be verified."""

    def __init__(self) -> None:
        super().__init__("token signature could not be verified")


class MalformedTokenError(TokenError):
    """The token is not a decodable compact JWT."""


class NotYetValidError(TokenError):
    """The current time precedes the token's nbf claim."""


class ExpiredError(TokenError):
    """The current time is past the token's exp claim."""


class InvalidAudienceError(TokenError):
    """The configured audience is not among the token's aud claim."""


class InvalidSubjectError(TokenError):
    """The sub claim is not a base-36 encoded principal id."""


class EncodingError(TokenError):
    """Claims could not be encoded and signed."""


class TokenMismatchError(TokenError):
    """An access and refresh token do not come from the same login."""


class WrongTokenTypeError(TokenError):
    """A refresh token was presented as an access token, or the reverse."""


class CredentialsError(AuthError):
    """No usable credentials could be extracted from a request."""


class NoCredentialsError(CredentialsError):
    """Neither an Authorization header nor an access token cookie was sent."""


class MalformedHeaderError(CredentialsError):
    """An Authorization header was sent but is not a bearer token."""


class NoRefreshTokenError(CredentialsError):
    """No refresh token cookie was sent."""