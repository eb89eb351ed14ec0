"""API middleware and error rendering.

Provides:
- Request ID correlation
- Domain error to HTTP response mapping
- Last-resort handling of unexpected exceptions
"""

import time
from typing import Callable
from uuid import uuid4

import structlog
from fastapi import FastAPI, Request, Response, status
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from storefront.domain.exceptions import (
    AuthorizationError,
    DomainError,
    NotFoundError,
    PersistenceError,
    StorageError,
    ValidationError,
)

logger = structlog.get_logger()

STATUS_BY_ERROR: dict[type[DomainError], int] = {
    ValidationError: 422,
    NotFoundError: 404,
    AuthorizationError: 403,
    StorageError: 502,
    PersistenceError: 500,
}


def error_body(
    error_code: str,
    message: str,
    details: dict | None = None,
    request_id: str | None = None,
) -> dict:
    """Build the standard error envelope."""
    return {
        "error_code": error_code,
        "message": message,
        "details": details or {},
        "request_id": request_id,
    }


# ============================================================================
# Request ID Middleware
# ============================================================================


class RequestIdMiddleware(BaseHTTPMiddleware):
    """Middleware to add request ID for correlation.

    Generates or extracts a request ID and adds it to:
    - Request state for access in handlers
    - Response headers for client correlation
    - Log context for tracing
    """

    HEADER_NAME = "X-Request-ID"

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        """Process request with correlation ID.

        Args:
            request: Incoming request.
            call_next: Next middleware/handler.

        Returns:
            Response with request ID header.
        """
        request_id = request.headers.get(self.HEADER_NAME) or str(uuid4())
        request.state.request_id = request_id
        structlog.contextvars.bind_contextvars(request_id=request_id)

        start_time = time.perf_counter()
        response = None
        try:
            response = await call_next(request)
        finally:
            duration_ms = (time.perf_counter() - start_time) * 1000
            logger.info(
                "Request completed",
                method=request.method,
                path=request.url.path,
                status_code=getattr(response, "status_code", 500),
                duration_ms=round(duration_ms, 2),
            )
            structlog.contextvars.unbind_contextvars("request_id")

        response.headers[self.HEADER_NAME] = request_id
        return response


# ============================================================================
# Error Handling Middleware
# ============================================================================


class ErrorHandlerMiddleware(BaseHTTPMiddleware):
    """Middleware for consistent error handling.

    Catches unhandled exceptions and returns standardized error responses.
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        """Handle errors uniformly.

        Args:
            request: Incoming request.
            call_next: Next middleware/handler.

        Returns:
            Response or error response.
        """
        try:
            return await call_next(request)
        except Exception as e:
            request_id = getattr(request.state, "request_id", None)

            logger.exception(
                "Unhandled exception",
                path=request.url.path,
                method=request.method,
                error=str(e),
            )

            return JSONResponse(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                content=error_body(
                    "INTERNAL_ERROR",
                    "An internal error occurred",
                    request_id=request_id,
                ),
            )


# ============================================================================
# Exception Handlers
# ============================================================================


async def domain_error_handler(request: Request, exc: DomainError) -> JSONResponse:
    """Render a domain error with the status code for its kind."""
    status_code = next(
        (code for cls, code in STATUS_BY_ERROR.items() if isinstance(exc, cls)),
        status.HTTP_400_BAD_REQUEST,
    )
    request_id = getattr(request.state, "request_id", None)

    log = logger.error if status_code >= 500 else logger.info
    log(
        "Domain error",
        error_code=exc.error_code,
        message=exc.message,
        path=request.url.path,
        status_code=status_code,
    )

    return JSONResponse(
        status_code=status_code,
        content=error_body(exc.error_code, exc.message, exc.details, request_id),
    )


# ============================================================================
# Middleware Setup
# ============================================================================


def setup_middleware(app: FastAPI) -> None:
    """Configure middleware and exception handlers for the application.

    Middleware is added in reverse order (last added = first executed).

    Args:
        app: FastAPI application instance.
    """
    app.add_exception_handler(DomainError, domain_error_handler)

    # Error handling (runs inside request ID so error bodies carry it)
    app.add_middleware(ErrorHandlerMiddleware)

    # Request ID correlation (outermost)
    app.add_middleware(RequestIdMiddleware)
