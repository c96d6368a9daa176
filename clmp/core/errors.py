"""
Error taxonomy and FastAPI exception handlers.

Every terminal error is rendered as a JSON object with a single
user-safe "error" string. Stack traces and internal identifiers are
logged, never returned.
"""
import logging
from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = logging.getLogger(__name__)


class ServiceError(Exception):
    """Base class for errors that map to an HTTP response."""
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class InvalidInputError(ServiceError):
    status_code = status.HTTP_400_BAD_REQUEST


class UnauthenticatedError(ServiceError):
    status_code = status.HTTP_401_UNAUTHORIZED


class ForbiddenError(ServiceError):
    status_code = status.HTTP_403_FORBIDDEN


class LastPrivilegedRoleError(ForbiddenError):
    """Deletion would leave a privileged role without any holder."""

    def __init__(self, role, display_name: str):
        super().__init__(
            f"Cannot delete this account because it is the last {display_name}. "
            "Please assign the role to another user first."
        )
        self.role = role
        self.display_name = display_name


class UpstreamFailureError(ServiceError):
    """Identity provider, payment provider or database call failed."""
    status_code = status.HTTP_400_BAD_REQUEST


class BillingError(ServiceError):
    """Credential or configuration problem on a billing endpoint."""
    status_code = status.HTTP_400_BAD_REQUEST


def _error_response(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message})


async def service_error_handler(request: Request, exc: ServiceError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error(f"{type(exc).__name__} on {request.url.path}: {exc.message}")
    else:
        logger.info(f"{type(exc).__name__} on {request.url.path}: {exc.message}")
    return _error_response(exc.status_code, exc.message)


async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    logger.info(f"Request validation failed on {request.url.path}: {exc.errors()}")
    return _error_response(status.HTTP_400_BAD_REQUEST, "Invalid request body")


async def http_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    return _error_response(exc.status_code, str(exc.detail))


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error(f"Unhandled error on {request.url.path}: {exc}", exc_info=True)
    return _error_response(status.HTTP_500_INTERNAL_SERVER_ERROR, "Internal server error")


def setup_exception_handlers(app: FastAPI) -> None:
    """Register the JSON error handlers on the application."""
    app.add_exception_handler(ServiceError, service_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_error_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)
