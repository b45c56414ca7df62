"""
Application error taxonomy.

Every error that reaches the HTTP layer is an ``AppError`` subclass carrying the
status code and the message shown to the caller. Authentication failures share
one external message so callers cannot tell which check failed.
"""

from typing import Any, Optional

INVALID_CREDENTIALS_MESSAGE = "Invalid username or password. Please check your credentials and try again."
INVALID_SESSION_MESSAGE = "Invalid or expired session. Please log in again."


class AppError(Exception):
    """Base class for errors rendered as JSON responses."""

    status_code: int = 500
    default_message: str = "An unexpected error occurred"
    status_type: Optional[str] = None

    def __init__(self, message: Optional[str] = None, details: Any = None):
        self.message = message or self.default_message
        self.details = details
        super().__init__(self.message)


class ValidationError(AppError):
    status_code = 400
    default_message = "Validation failed"


class AuthenticationError(AppError):
    status_code = 401
    default_message = "Authentication required"


class InvalidCredentials(AuthenticationError):
    default_message = INVALID_CREDENTIALS_MESSAGE


class InvalidToken(AuthenticationError):
    default_message = INVALID_SESSION_MESSAGE


class UserNotFound(AuthenticationError):
    default_message = INVALID_SESSION_MESSAGE


class AccountDeactivated(AuthenticationError):
    default_message = INVALID_SESSION_MESSAGE


class RoleChanged(AuthenticationError):
    default_message = INVALID_SESSION_MESSAGE


class AuthorizationError(AppError):
    status_code = 403
    default_message = "Insufficient permissions"


class NotFoundError(AppError):
    status_code = 404
    default_message = "Resource not found"


class RateLimitedError(AppError):
    status_code = 429
    status_type = "rate_limited"

    def __init__(self, retry_after_minutes: int, message: Optional[str] = None):
        self.retry_after_minutes = retry_after_minutes
        super().__init__(
            message or f"Too many login attempts. Please try again in {retry_after_minutes} minutes."
        )


class SuspendedError(AppError):
    status_code = 429
    status_type = "suspended"
    default_message = (
        "Account temporarily locked due to repeated failed attempts. "
        "Please contact the school administrator."
    )


class InternalError(AppError):
    status_code = 500
    default_message = "Internal server error"
