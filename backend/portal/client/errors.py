"""Errors raised by the API client.

Every failed call raises an ``ApiError`` subclass picked from the HTTP
status; views catch ``ApiError`` at their boundary and turn it into an
error state plus a notice.

    401 → AuthenticationError   (the persisted token is cleared)
    403 → ForbiddenError
    404 → NotFoundError
    422 → ValidationFailedError
    429 → RateLimitedError
    5xx → ServerError
    transport failure / timeout → NetworkError
"""

from typing import Any


class ApiError(Exception):
    """Base class for API client failures."""

    default_message = "An error occurred"

    def __init__(
        self,
        message: str | None = None,
        *,
        status_code: int | None = None,
        error_code: str | None = None,
        details: Any = None,
    ):
        self.message = message or self.default_message
        self.status_code = status_code
        self.error_code = error_code
        self.details = details
        super().__init__(self.message)


class AuthenticationError(ApiError):
    default_message = "Session expired. Please login again."


class ForbiddenError(ApiError):
    default_message = "Access denied. You do not have permission to perform this action."


class NotFoundError(ApiError):
    default_message = "Resource not found."


class ValidationFailedError(ApiError):
    default_message = "Validation error"

    @property
    def field_errors(self) -> list[dict]:
        if isinstance(self.details, dict):
            return list(self.details.get("errors", []))
        return []

    @property
    def fields(self) -> dict[str, str]:
        """Messages keyed by input name, in the same shape as wizard field errors."""
        if isinstance(self.details, dict):
            return dict(self.details.get("fields") or {})
        return {}


class RateLimitedError(ApiError):
    default_message = "Too many requests. Please try again later."


class ServerError(ApiError):
    default_message = "Server error. Please try again later."


class NetworkError(ApiError):
    default_message = "Network error. Please check your connection."


_BY_STATUS: dict[int, type[ApiError]] = {
    401: AuthenticationError,
    403: ForbiddenError,
    404: NotFoundError,
    422: ValidationFailedError,
    429: RateLimitedError,
}


def error_for_status(
    status_code: int,
    message: str | None = None,
    error_code: str | None = None,
    details: Any = None,
) -> ApiError:
    """Build the ``ApiError`` subclass matching ``status_code``."""
    if status_code >= 500:
        cls = ServerError
    else:
        cls = _BY_STATUS.get(status_code, ApiError)
    return cls(message, status_code=status_code, error_code=error_code, details=details)
