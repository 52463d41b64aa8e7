"""Error taxonomy for the credential and session engine.

Every failure the core can produce is one of the classes below. Each class
fixes the HTTP status it maps to, so the exception handlers in ``main.py``
never need to inspect messages or names to classify a failure.
"""

import enum
from typing import Any


class WardenError(Exception):
    """Base class for all expected failures."""

    status_code: int = 500
    default_message: str = "Internal server error"

    def __init__(self, message: str | None = None, errors: list[dict[str, Any]] | None = None) -> None:
        self.message = message or self.default_message
        self.errors = errors
        super().__init__(self.message)

    @property
    def headers(self) -> dict[str, str] | None:
        return None


class ValidationError(WardenError):
    """Malformed input."""

    status_code = 400
    default_message = "Validation errors"


class Conflict(WardenError):
    """Duplicate username or email."""

    status_code = 409
    default_message = "User already exists with this email or username"


class UnauthenticatedReason(str, enum.Enum):
    NO_TOKEN = "no_token"
    INVALID_TOKEN = "invalid_token"
    EXPIRED_TOKEN = "expired_token"
    STALE_TOKEN = "stale_token"
    EMAIL_NOT_CONFIRMED = "email_not_confirmed"
    BAD_CREDENTIALS = "bad_credentials"


UNAUTHENTICATED_MESSAGES = {
    UnauthenticatedReason.NO_TOKEN: "Access denied. No token provided.",
    UnauthenticatedReason.INVALID_TOKEN: "Invalid token",
    UnauthenticatedReason.EXPIRED_TOKEN: "Token expired",
    UnauthenticatedReason.STALE_TOKEN: "Token is no longer valid",
    UnauthenticatedReason.EMAIL_NOT_CONFIRMED: "Please confirm your email to access this resource",
    UnauthenticatedReason.BAD_CREDENTIALS: "Invalid credentials",
}


class Unauthenticated(WardenError):
    """Identity could not be established."""

    status_code = 401

    def __init__(self, reason: UnauthenticatedReason, message: str | None = None) -> None:
        self.reason = reason
        super().__init__(message or UNAUTHENTICATED_MESSAGES[reason])

    @property
    def headers(self) -> dict[str, str]:
        return {"WWW-Authenticate": "Bearer"}


class Forbidden(WardenError):
    """Role or ownership check failed."""

    status_code = 403
    default_message = "Access denied"


class TokenInvalid(WardenError):
    """Challenge or session token not found, malformed, or (for challenges) expired."""

    status_code = 400
    default_message = "Invalid or expired token"


class TokenExpired(WardenError):
    """Session token past its expiry."""

    status_code = 401
    default_message = "Token expired"


class NotFound(WardenError):
    status_code = 404
    default_message = "User not found"


class RateLimited(WardenError):
    """Admission refused for the current window."""

    status_code = 429
    default_message = "Too many requests, please try again later"

    def __init__(self, retry_after: int, message: str | None = None) -> None:
        self.retry_after = retry_after
        super().__init__(message)

    @property
    def headers(self) -> dict[str, str]:
        return {"Retry-After": str(self.retry_after)}


class InternalError(WardenError):
    """Store failure, malformed hash, or dispatch failure."""

    status_code = 500
