"""Application error taxonomy.

Every error the API deliberately returns is an ``AppError`` subclass carrying
its HTTP status code. The exception handlers registered in ``app.main``
render them in the uniform error envelope.
"""
from typing import Any, Optional


class AppError(Exception):
    """Base class for errors that map to a client-visible HTTP status."""

    status_code: int = 500
    default_message: str = "Internal server error"

    def __init__(
        self,
        message: Optional[str] = None,
        status_code: Optional[int] = None,
        details: Optional[Any] = None,
    ):
        self.message = message or self.default_message
        if status_code is not None:
            self.status_code = status_code
        self.details = details
        super().__init__(self.message)

    def to_dict(self) -> dict:
        error: dict[str, Any] = {"statusCode": self.status_code, "message": self.message}
        if self.details is not None:
            error["details"] = self.details
        return {"success": False, "message": self.message, "error": error}


class ValidationError(AppError):
    status_code = 400
    default_message = "Validation failed"


class UnauthorizedError(AppError):
    status_code = 401
    default_message = "Unauthorized access"


class ForbiddenError(AppError):
    status_code = 403
    default_message = "Access forbidden"


class NotFoundError(AppError):
    status_code = 404
    default_message = "Resource not found"


class RequestTimeoutError(AppError):
    status_code = 408
    default_message = "Request timeout"


class ConflictError(AppError):
    status_code = 409
    default_message = "Resource conflict"


class TooManyRequestsError(AppError):
    status_code = 429
    default_message = "Too many requests, please try again later"


class BusinessLogicError(AppError):
    status_code = 400
    default_message = "Business logic error"


class DatabaseError(AppError):
    status_code = 500
    default_message = "Database operation failed"


def error_envelope(status_code: int, message: str, details: Optional[Any] = None) -> dict:
    """Build the JSON body used for every error response."""
    return AppError(message, status_code, details).to_dict()
