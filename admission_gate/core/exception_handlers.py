"""Global exception handlers for consistent error responses.

This is the only place where gate errors become HTTP responses.

Design:
- RateLimitExceeded → 429 with Retry-After (and X-RateLimit-* when enabled)
- AuthenticationAppError → 403
- UnknownPolicyError → 404
- ConfigurationError and other AppError → 500 / 400
- Unexpected Exception → generic 500 (safety net)
- All responses include request_id for tracing
"""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from admission_gate.core.config import settings
from admission_gate.core.errors import (
    AppError,
    AuthenticationAppError,
    ConfigurationError,
    RateLimitExceeded,
    UnknownPolicyError,
)
from admission_gate.core.logging import get_request_id

logger = logging.getLogger(__name__)


def _status_for(exc: AppError) -> int:
    if isinstance(exc, RateLimitExceeded):
        return 429
    if isinstance(exc, AuthenticationAppError):
        return 403
    if isinstance(exc, UnknownPolicyError):
        return 404
    if isinstance(exc, ConfigurationError):
        return 500
    return 400


def _error_body(exc: AppError) -> dict:
    error_content = {
        "code": exc.code,
        "message": exc.message,
        "request_id": get_request_id(),
    }
    if exc.details:
        error_content["details"] = exc.details
    return {"error": error_content}


async def rate_limit_exceeded_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    """Translate a denial into 429 Too Many Requests.

    ``Retry-After`` is always sent so a denied caller knows how long to wait.
    """
    headers = {"Retry-After": str(exc.retry_after_seconds)}
    if settings.app.rate_limit_include_headers and exc.limit is not None:
        headers["X-RateLimit-Limit"] = str(exc.limit)
        headers["X-RateLimit-Remaining"] = "0"
        if exc.policy:
            headers["X-RateLimit-Policy"] = exc.policy

    return JSONResponse(status_code=429, content=_error_body(exc), headers=headers)


async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    """Handle domain application errors with consistent JSON format."""
    status_code = _status_for(exc)

    log = logger.error if status_code >= 500 else logger.warning
    log(
        "app_error_handled",
        extra={
            "error_code": exc.code,
            "error_message": exc.message,
            "status_code": status_code,
            "has_details": bool(exc.details),
        },
    )

    return JSONResponse(status_code=status_code, content=_error_body(exc))


async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Fallback handler for unexpected errors (safety net).

    Logs the failure for debugging while returning a generic message, so no
    stack trace leaks to the client.
    """
    logger.error(
        "unhandled_exception",
        extra={
            "error_type": type(exc).__name__,
            "error_msg": str(exc),
            "request_path": request.url.path,
            "request_method": request.method,
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


def setup_exception_handlers(app: FastAPI) -> None:
    """Register all exception handlers with the FastAPI app.

    Specific handlers are registered before the general fallback.
    """
    app.exception_handler(RateLimitExceeded)(rate_limit_exceeded_handler)
    app.exception_handler(AppError)(app_error_handler)
    app.exception_handler(Exception)(general_exception_handler)
