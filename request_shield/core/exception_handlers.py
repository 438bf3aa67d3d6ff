"""Global exception handlers for consistent error responses.

This module provides FastAPI exception handlers that intercept all errors
(domain and unexpected) and return consistent JSON responses with proper
HTTP status codes and traceability.

Design:
- AppError subclasses → appropriate HTTP status (400, 401, 423, 429, 500)
- Unexpected Exception → generic 500 (safety net)
- All responses include request_id for distributed tracing

``render_app_error`` is shared with the defense middleware, which runs outside
FastAPI's exception middleware and therefore builds its responses directly.
"""

import logging

from fastapi import Request
from fastapi.responses import JSONResponse

from request_shield.core.errors import (
    AccountLockedAppError,
    AppError,
    AuthenticationAppError,
    ConfigAppError,
    RateLimitedAppError,
)
from request_shield.core.logging import get_request_id

logger = logging.getLogger(__name__)


def status_for_error(exc: AppError) -> int:
    """Map a domain error to its HTTP status code.

    - AuthenticationAppError → 401 Unauthorized
    - AccountLockedAppError → 423 Locked
    - RateLimitedAppError → 429 Too Many Requests
    - ConfigAppError → 500 (server misconfiguration)
    - anything else → 400 Bad Request
    """
    if isinstance(exc, AuthenticationAppError):
        return 401
    if isinstance(exc, AccountLockedAppError):
        return 423
    if isinstance(exc, RateLimitedAppError):
        return 429
    if isinstance(exc, ConfigAppError):
        return 500
    return 400


def render_app_error(
    exc: AppError,
    *,
    headers: dict[str, str] | None = None,
) -> JSONResponse:
    """Build the JSON error envelope for a domain error.

    Throttling errors get a ``Retry-After`` header unless the caller supplied
    one already.

    Args:
        exc: AppError instance (or subclass).
        headers: Optional extra response headers.

    Returns:
        JSONResponse with the mapped status code.
    """
    error_content = {
        "code": exc.code,
        "message": exc.message,
        "request_id": get_request_id(),
    }
    if exc.details:
        error_content["details"] = exc.details

    response_headers = dict(headers or {})
    if isinstance(exc, RateLimitedAppError):
        response_headers.setdefault("Retry-After", str(exc.retry_after))
    elif isinstance(exc, AccountLockedAppError):
        response_headers.setdefault("Retry-After", str(exc.remaining_lockout_seconds))

    return JSONResponse(
        status_code=status_for_error(exc),
        content={"error": error_content},
        headers=response_headers or None,
    )


async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    """Handle domain application errors with consistent JSON format.

    All responses include:
    - error.code: Machine-readable error code
    - error.message: Human-readable message
    - error.request_id: For distributed tracing
    - error.details: Optional structured context

    Args:
        request: FastAPI request object.
        exc: AppError instance (or subclass).

    Returns:
        JSONResponse with appropriate status code and error details.
    """
    status_code = status_for_error(exc)

    logger.warning(
        "app_error_handled",
        extra={
            "error_code": exc.code,
            "error_message": exc.message,
            "status_code": status_code,
            "has_details": bool(exc.details),
            "request_id": get_request_id(),
        }
    )

    return render_app_error(exc)


async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Fallback handler for unexpected errors (safety net).

    Catches any exception not handled by specific handlers.
    Logs detailed information for debugging while returning generic message.
    Prevents information leakage (no stack traces to client).

    Args:
        request: FastAPI request object.
        exc: Exception instance (unexpected).

    Returns:
        JSONResponse with generic error (no implementation details leaked).
    """
    logger.error(
        "unhandled_exception",
        extra={
            "error_type": type(exc).__name__,
            "error_msg": str(exc),
            "request_path": request.url.path,
            "request_method": request.method,
            "request_id": get_request_id(),
        }
    )

    return JSONResponse(
        status_code=500,
        content={
            "error": {
                "code": "internal_server_error",
                "message": "An unexpected error occurred. Please try again later.",
                "request_id": get_request_id(),
            }
        },
    )


def setup_exception_handlers(app) -> None:
    """Register all exception handlers with FastAPI app.

    Args:
        app: FastAPI application instance.
    """
    app.exception_handler(AppError)(app_error_handler)
    app.exception_handler(Exception)(general_exception_handler)
