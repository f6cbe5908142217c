"""Portal exception hierarchy and FastAPI exception handlers.

Every error leaving the API uses the same envelope as successful
responses, so clients can branch on ``success`` alone:

    {
        "success": false,
        "message": "Human-readable error message",
        "error": {"code": "ERROR_CODE", "details": {...}}
    }
"""

import logging
import traceback
from typing import Union

from fastapi import HTTPException, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import ValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = logging.getLogger(__name__)


class PortalException(Exception):
    """Base exception for portal application errors."""

    def __init__(
        self,
        message: str,
        status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR,
        error_code: str = "INTERNAL_ERROR",
        details: dict | None = None,
    ):
        self.message = message
        self.status_code = status_code
        self.error_code = error_code
        self.details = details
        super().__init__(self.message)


class BusinessLogicError(PortalException):
    """Exception for business rule violations."""

    def __init__(
        self,
        message: str,
        error_code: str = "BUSINESS_LOGIC_ERROR",
        details: dict | None = None,
    ):
        super().__init__(
            message=message,
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            error_code=error_code,
            details=details,
        )


class InvalidTransitionError(BusinessLogicError):
    """A status change that is not an edge of the domain's status graph."""

    def __init__(self, domain: str, current: str, target: str):
        self.domain = domain
        self.current = current
        self.target = target
        super().__init__(
            message=f"{domain}: cannot move from {current} to {target}",
            error_code="INVALID_STATUS_TRANSITION",
        )


class ReferenceNumberError(BusinessLogicError):
    """Raised when a record's reference number would be reassigned."""

    def __init__(self, record_id: str):
        super().__init__(
            message=f"Reference number already assigned for record {record_id}",
            error_code="REFERENCE_NUMBER_ASSIGNED",
        )


class ResourceNotFoundError(PortalException):
    """Exception for resources not found."""

    def __init__(self, resource: str, identifier: str):
        super().__init__(
            message=f"{resource} not found: {identifier}",
            status_code=status.HTTP_404_NOT_FOUND,
            error_code="RESOURCE_NOT_FOUND",
        )


class PermissionDeniedError(PortalException):
    """Exception for permission denied."""

    def __init__(self, message: str = "Permission denied"):
        super().__init__(
            message=message,
            status_code=status.HTTP_403_FORBIDDEN,
            error_code="PERMISSION_DENIED",
        )


def create_error_response(
    status_code: int,
    message: str,
    error_code: str = "ERROR",
    details: Union[dict, list, None] = None,
) -> JSONResponse:
    """Create a standardized error envelope."""
    content = {
        "success": False,
        "message": message,
        "error": {
            "code": error_code,
        },
    }

    if details:
        content["error"]["details"] = details

    return JSONResponse(
        status_code=status_code,
        content=content,
    )


async def portal_exception_handler(
    request: Request,
    exc: PortalException,
) -> JSONResponse:
    """Handle custom portal exceptions."""
    logger.warning(
        f"Portal exception: {exc.error_code} - {exc.message}",
        extra={
            "error_code": exc.error_code,
            "path": request.url.path,
            "method": request.method,
        },
    )

    return create_error_response(
        status_code=exc.status_code,
        message=exc.message,
        error_code=exc.error_code,
        details=exc.details,
    )


async def http_exception_handler(
    request: Request,
    exc: Union[HTTPException, StarletteHTTPException],
) -> JSONResponse:
    """Handle FastAPI HTTP exceptions."""
    if exc.status_code >= 500:
        logger.error(
            f"HTTP {exc.status_code}: {exc.detail}",
            extra={
                "path": request.url.path,
                "method": request.method,
            },
        )

    response = create_error_response(
        status_code=exc.status_code,
        message=str(exc.detail),
        error_code=f"HTTP_{exc.status_code}",
    )
    if getattr(exc, "headers", None):
        response.headers.update(exc.headers)
    return response


_LOCATIONS = ("body", "query", "path", "header", "cookie")


def _field_name(loc: list[str]) -> str | None:
    """Top-level input name for a pydantic error location.

    Wizard drafts are posted under ``fields``, so their entries are named
    after the draft field itself.
    """
    parts = loc[1:] if loc and loc[0] in _LOCATIONS else loc
    if len(parts) > 1 and parts[0] == "fields":
        parts = parts[1:]
    return parts[0] if parts else None


async def validation_exception_handler(
    request: Request,
    exc: Union[RequestValidationError, ValidationError],
) -> JSONResponse:
    """Handle Pydantic validation errors."""
    logger.warning(
        f"Validation error on {request.url.path}",
        extra={
            "path": request.url.path,
            "method": request.method,
            "errors": exc.errors(),
        },
    )

    errors = []
    fields: dict[str, str] = {}
    for error in exc.errors():
        loc = [str(part) for part in error["loc"]]
        errors.append({
            "field": " -> ".join(loc),
            "message": error["msg"],
            "type": error["type"],
        })
        # Keyed like wizard field errors: "email", not "body -> fields -> email -> str"
        name = _field_name(loc)
        if name:
            fields.setdefault(name, error["msg"])

    return create_error_response(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        message="Validation error",
        error_code="VALIDATION_ERROR",
        details={"errors": errors, "fields": fields},
    )


async def general_exception_handler(
    request: Request,
    exc: Exception,
) -> JSONResponse:
    """Handle all other unhandled exceptions."""
    logger.error(
        f"Unhandled exception on {request.url.path}: {str(exc)}",
        extra={
            "path": request.url.path,
            "method": request.method,
            "traceback": traceback.format_exc(),
        },
        exc_info=True,
    )

    # Don't expose internal details
    return create_error_response(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        message="An unexpected error occurred. Please try again later.",
        error_code="INTERNAL_SERVER_ERROR",
    )


def register_exception_handlers(app):
    """Register all custom exception handlers with FastAPI app."""
    app.add_exception_handler(PortalException, portal_exception_handler)
    app.add_exception_handler(HTTPException, http_exception_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(ValidationError, validation_exception_handler)
    app.add_exception_handler(Exception, general_exception_handler)
