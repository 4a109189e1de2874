"""
Global exception handlers and custom exception classes.
"""
from fastapi import Request, status
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
from fastapi.encoders import jsonable_encoder
from sqlalchemy.exc import OperationalError
import logging

# Set up logging
logger = logging.getLogger(__name__)

class AppException(Exception):
    """
    Base exception class for application-specific exceptions.

    Every subclass carries a stable ``kind`` that callers can branch on
    independently of the human readable ``detail``.
    """
    kind = "AppError"

    def __init__(self, status_code: int, detail: str, kind: str = None):
        super().__init__(detail)
        self.status_code = status_code
        self.detail = detail
        if kind:
            self.kind = kind


class NotFoundException(AppException):
    """Exception raised when a referenced doctor, appointment or user does not exist."""
    kind = "NotFound"

    def __init__(self, detail: str = "Resource not found"):
        super().__init__(status_code=status.HTTP_404_NOT_FOUND, detail=detail)


class AccessDeniedException(AppException):
    """Exception raised when the requester is neither the owner nor an admin."""
    kind = "AccessDenied"

    def __init__(self, detail: str = "Access denied"):
        super().__init__(status_code=status.HTTP_403_FORBIDDEN, detail=detail)


class ValidationFailedException(AppException):
    """Exception raised for malformed input caught outside request parsing."""
    kind = "ValidationError"

    def __init__(self, detail: str = "Validation error"):
        super().__init__(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=detail)


class ServiceUnavailableException(AppException):
    """Exception raised when the database cannot be reached. Safe to retry."""
    kind = "Unavailable"

    def __init__(self, detail: str = "Service temporarily unavailable, please retry"):
        super().__init__(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=detail)


async def app_exception_handler(request: Request, exc: AppException):
    """
    Handler for application-specific exceptions.

    Args:
        request: The request that caused the exception
        exc: The exception instance

    Returns:
        JSONResponse: Standardized error response
    """
    logger.error(f"Application error ({exc.kind}): {exc.detail}")
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.detail, "kind": exc.kind}
    )


async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """
    Handler for request validation exceptions.

    Args:
        request: The request that caused the exception
        exc: The validation exception instance

    Returns:
        JSONResponse: Standardized error response with validation details
    """
    logger.error(f"Validation error: {exc.errors()}")
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={
            "detail": "Validation error",
            "kind": ValidationFailedException.kind,
            "errors": jsonable_encoder(exc.errors())
        }
    )


async def database_unavailable_handler(request: Request, exc: OperationalError):
    """
    Handler for database connectivity failures that escaped the services.

    Args:
        request: The request that caused the exception
        exc: The SQLAlchemy operational error

    Returns:
        JSONResponse: 503 response marked as retryable
    """
    logger.error(f"Database unavailable: {str(exc)}")
    unavailable = ServiceUnavailableException()
    return JSONResponse(
        status_code=unavailable.status_code,
        content={"detail": unavailable.detail, "kind": unavailable.kind}
    )


# Register exception handlers with FastAPI app
def register_exception_handlers(app):
    """
    Register all exception handlers with the FastAPI application.

    Args:
        app: FastAPI application instance
    """
    app.add_exception_handler(AppException, app_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(OperationalError, database_unavailable_handler)
