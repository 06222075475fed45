from typing import Optional


class AuthError(Exception):
    """Base class for authentication failures.

    Every subclass carries the HTTP status it maps to and a stable
    ``error_code``. ``reason`` is for logs only and never sent to clients.
    """

    status_code: int = 401
    error_code: str = "AUTH_REQUIRED"
    reason: str = "unauthorized"

    def __init__(self, message: str = "Could not validate credentials", *, reason: Optional[str] = None) -> None:
        super().__init__(message)
        self.message = message
        if reason is not None:
            self.reason = reason


class MalformedToken(AuthError):
    """Token is not three dot-separated segments."""
    reason = "malformed"


class InvalidSignature(AuthError):
    """Signature mismatch, wrong secret, or an undecodable payload."""
    reason = "invalid_signature"


class TokenExpired(AuthError):
    """Encoded ``exp`` is in the past."""
    reason = "expired"


class TokenRevoked(AuthError):
    """Store row is inactive, expired, or was never written."""
    reason = "revoked"


class Unauthorized(AuthError):
    """Client-facing 401. Wraps any of the token failures above."""

    @classmethod
    def from_error(cls, exc: AuthError) -> "Unauthorized":
        return cls(reason=exc.reason)


class InvalidTokenType(AuthError):
    error_code = "INVALID_TOKEN_TYPE"
    reason = "invalid_token_type"


class RateLimited(AuthError):
    status_code = 429
    error_code = "RATE_LIMITED"
    reason = "rate_limited"


__all__ = [
    "AuthError",
    "MalformedToken",
    "InvalidSignature",
    "TokenExpired",
    "TokenRevoked",
    "Unauthorized",
    "InvalidTokenType",
    "RateLimited",
]
