"""Error handler middleware for standardized error responses.

This middleware converts pipeline exceptions, HTTP exceptions, validation
errors and unhandled exceptions to the ErrorResponse format with proper
HTTP status codes.
"""

import logging
import uuid
from typing import Any

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import ValidationError
from pymongo.errors import PyMongoError
from starlette.exceptions import HTTPException as StarletteHTTPException

from src.api.models.errors import (
    ErrorCodes,
    ErrorResponse,
    InternalServerErrorResponse,
    NotFoundErrorResponse,
    ValidationErrorResponse,
)
from src.core.constants import ERROR_CODE_TO_STATUS
from src.core.exceptions import NotFoundError, PipelineError

logger = logging.getLogger(__name__)

HTTP_STATUS_TO_ERROR = {
    status.HTTP_400_BAD_REQUEST: ("BAD_REQUEST", ErrorCodes.VALIDATION_ERROR),
    status.HTTP_401_UNAUTHORIZED: ("UNAUTHORIZED", ErrorCodes.AUTHENTICATION_ERROR),
    status.HTTP_403_FORBIDDEN: ("FORBIDDEN", ErrorCodes.AUTHENTICATION_ERROR),
    status.HTTP_404_NOT_FOUND: ("NOT_FOUND", ErrorCodes.NOT_FOUND),
    status.HTTP_429_TOO_MANY_REQUESTS: ("RATE_LIMIT_EXCEEDED", ErrorCodes.RATE_LIMIT_EXCEEDED),
}


def _request_id(request: Request) -> str:
    return getattr(request.state, "request_id", None) or request.headers.get(
        "X-Request-ID", str(uuid.uuid4())
    )


class ErrorHandlerMiddleware:
    """Global error handler for the FastAPI application.

    This middleware:
    - Maps pipeline exceptions to their HTTP status, keeping their message
    - Converts HTTP and validation errors to ErrorResponse format
    - Hides details of unhandled exceptions behind a generic 500
    - Logs errors with request context

    Usage:
        app = FastAPI()
        setup_error_handler(app)
    """

    def __init__(self, app: FastAPI) -> None:
        self.app = app
        self._register_exception_handlers()

    def _register_exception_handlers(self) -> None:
        """Register exception handlers for different exception types."""
        self.app.add_exception_handler(Exception, self._handle_generic_exception)
        self.app.add_exception_handler(PipelineError, self._handle_pipeline_error)
        self.app.add_exception_handler(PyMongoError, self._handle_database_error)
        self.app.add_exception_handler(RequestValidationError, self._handle_validation_error)
        self.app.add_exception_handler(ValidationError, self._handle_validation_error)
        self.app.add_exception_handler(StarletteHTTPException, self._handle_http_exception)

    async def _handle_generic_exception(
        self,
        request: Request,
        exc: Exception,
    ) -> JSONResponse:
        """Handle generic unhandled exceptions."""
        request_id = _request_id(request)

        # Log the full traceback for debugging
        logger.exception(
            "Unhandled exception",
            extra={
                "request_id": request_id,
                "method": request.method,
                "path": request.url.path,
                "client_ip": request.client.host if request.client else "unknown",
            },
        )

        error_response = InternalServerErrorResponse(
            request_id=request_id,
            details={"error_type": type(exc).__name__},
        )

        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content=error_response.model_dump(),
        )

    async def _handle_pipeline_error(
        self,
        request: Request,
        exc: PipelineError,
    ) -> JSONResponse:
        """Handle pipeline exceptions, passing their message through."""
        request_id = _request_id(request)
        status_code = ERROR_CODE_TO_STATUS.get(
            exc.error_code, status.HTTP_500_INTERNAL_SERVER_ERROR
        )
        message = str(exc) or type(exc).__name__

        if isinstance(exc, NotFoundError):
            error_response: ErrorResponse = NotFoundErrorResponse(
                error_code=exc.error_code,
                message=message,
                request_id=request_id,
            )
        else:
            error_response = ErrorResponse(
                error=type(exc).__name__,
                error_code=exc.error_code,
                message=message,
                request_id=request_id,
            )

        log = logger.error if status_code >= 500 else logger.info
        log(
            f"{type(exc).__name__}: {message}",
            extra={
                "request_id": request_id,
                "method": request.method,
                "path": request.url.path,
                "status_code": status_code,
            },
        )

        return JSONResponse(status_code=status_code, content=error_response.model_dump())

    async def _handle_database_error(
        self,
        request: Request,
        exc: PyMongoError,
    ) -> JSONResponse:
        """Handle MongoDB driver errors."""
        request_id = _request_id(request)

        logger.error(
            f"Database error: {exc}",
            extra={
                "request_id": request_id,
                "method": request.method,
                "path": request.url.path,
            },
        )

        error_response = ErrorResponse(
            error="DATABASE_ERROR",
            error_code=ErrorCodes.DATABASE_ERROR,
            message=f"Database error: {exc}",
            request_id=request_id,
        )

        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content=error_response.model_dump(),
        )

    async def _handle_validation_error(
        self,
        request: Request,
        exc: RequestValidationError | ValidationError,
    ) -> JSONResponse:
        """Handle validation errors from request parsing."""
        request_id = _request_id(request)

        errors: list[dict[str, Any]] = [
            {
                "field": ".".join(str(loc) for loc in error["loc"]),
                "message": error["msg"],
                "type": error["type"],
            }
            for error in exc.errors()
        ]

        missing = [e["field"].split(".")[-1] for e in errors if e["type"] == "missing"]
        if missing:
            message = f"{missing[0]} parameter is required"
            error_code = ErrorCodes.MISSING_REQUIRED_FIELD
        else:
            message = "Request validation failed"
            error_code = ErrorCodes.VALIDATION_ERROR

        error_response = ValidationErrorResponse(
            error_code=error_code,
            message=message,
            details={"errors": errors},
            request_id=request_id,
        )

        logger.info(
            "Validation error",
            extra={
                "request_id": request_id,
                "method": request.method,
                "path": request.url.path,
                "validation_errors": errors,
            },
        )

        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content=error_response.model_dump(),
        )

    async def _handle_http_exception(
        self,
        request: Request,
        exc: StarletteHTTPException,
    ) -> JSONResponse:
        """Handle HTTP exceptions (404, 401, 429, etc.)."""
        request_id = _request_id(request)
        status_code = exc.status_code
        detail = exc.detail if isinstance(exc.detail, str) else str(exc.detail)

        error_type, error_code = HTTP_STATUS_TO_ERROR.get(
            status_code, ("HTTP_ERROR", f"HTTP_{status_code}")
        )
        if status_code == status.HTTP_404_NOT_FOUND:
            error_response: ErrorResponse = NotFoundErrorResponse(
                error_code=error_code,
                message=detail,
                request_id=request_id,
            )
        else:
            error_response = ErrorResponse(
                error=error_type,
                error_code=error_code,
                message=detail,
                request_id=request_id,
            )

        logger.info(
            f"HTTP {status_code} error",
            extra={
                "request_id": request_id,
                "method": request.method,
                "path": request.url.path,
                "status_code": status_code,
            },
        )

        return JSONResponse(
            status_code=status_code,
            content=error_response.model_dump(),
            headers=getattr(exc, "headers", None),
        )


def setup_error_handler(app: FastAPI) -> None:
    """Set up error handler middleware for the application.

    Args:
        app: FastAPI application instance

    Example:
        from fastapi import FastAPI
        from src.api.middleware import setup_error_handler

        app = FastAPI()
        setup_error_handler(app)
    """
    ErrorHandlerMiddleware(app)
    logger.info("Error handler middleware initialized")
