"""Global exception handlers for consistent error responses.

Design:
- ValidationAppError → 400 (caller supplied an invalid key or duration)
- StoreUnavailableError → 503 (shared store unreachable; outcome unknown)
- Unexpected Exception → generic 500 (safety net)
- All responses include request_id for distributed tracing

Lock contention and rate limit denials are not errors and never reach these
handlers; routes turn them into 409/429 responses directly.
"""

import logging

from fastapi import Request
from fastapi.responses import JSONResponse

from coordination.core.errors import AppError, StoreUnavailableError, ValidationAppError
from coordination.core.logging import get_request_id

logger = logging.getLogger(__name__)


def _status_for(exc: AppError) -> int:
    if isinstance(exc, StoreUnavailableError):
        return 503
    if isinstance(exc, ValidationAppError):
        return 400
    return 500


async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    """Handle domain application errors with consistent JSON format.

    Store failures are reported with a generic message: the client learns the
    coordination service is unavailable, not which command failed or why.

    Args:
        request: FastAPI request object.
        exc: AppError instance (or subclass).

    Returns:
        JSONResponse with appropriate status code and error details.
    """
    status_code = _status_for(exc)

    log = logger.error if status_code >= 500 else logger.warning
    log(
        "app_error_handled",
        extra={
            "error_code": exc.code,
            "error_message": exc.message,
            "status_code": status_code,
            "request_path": request.url.path,
            "request_id": get_request_id(),
        },
    )

    error_content: dict = {
        "code": exc.code,
        "message": exc.message,
        "request_id": get_request_id(),
    }
    if isinstance(exc, StoreUnavailableError):
        error_content["message"] = "Coordination store is unavailable. Please try again later."
    elif exc.details:
        error_content["details"] = exc.details

    return JSONResponse(
        status_code=status_code,
        content={"error": error_content},
    )


async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Fallback handler for unexpected errors; never leaks internals."""
    logger.error(
        "unhandled_exception",
        extra={
            "error_type": type(exc).__name__,
            "error_msg": str(exc),
            "request_path": request.url.path,
            "request_method": request.method,
            "request_id": get_request_id(),
        },
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
