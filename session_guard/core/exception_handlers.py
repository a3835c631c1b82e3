"""Global exception handlers for consistent error responses.

Design:
- RateLimitExceededError → 429 with the flat quota body and X-RateLimit-* headers
- AppError subclasses → 400 / 401 / 500 / 502 / 503 with ``{"error": {...}}``
- Request body validation → 400 with per-field errors (not FastAPI's 422)
- Unexpected Exception → generic 500 (safety net)
- All structured responses include request_id for tracing
"""

from __future__ import annotations

import logging
from typing import Any, Iterable

from fastapi import Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from session_guard.core.config import settings
from session_guard.core.errors import (
    AppError,
    AuthenticationAppError,
    ConfigurationAppError,
    RateLimitBackendError,
    RateLimitExceededError,
    UpstreamAppError,
    ValidationAppError,
)
from session_guard.core.logging import get_request_id
from session_guard.core.rate_limit import rate_limit_headers
from session_guard.schemas.rate_limit import RateLimitExceededResponse

logger = logging.getLogger(__name__)


def field_errors(errors: Iterable[dict[str, Any]]) -> list[dict[str, str]]:
    """Flatten pydantic error dicts into ``{field, message}`` pairs.

    Examples:
        ``{"loc": ("body", "full_name"), "msg": "..."}`` -> ``{"field": "full_name", ...}``
    """

    flattened = []
    for error in errors:
        loc = [str(part) for part in error.get("loc", ())]
        if loc and loc[0] == "body":
            loc = loc[1:]
        flattened.append({"field": ".".join(loc) or "body", "message": error.get("msg", "")})
    return flattened


def status_for(exc: AppError) -> int:
    """Map an application error to its HTTP status code."""

    if isinstance(exc, AuthenticationAppError):
        return 401
    if isinstance(exc, RateLimitBackendError):
        return 503
    if isinstance(exc, UpstreamAppError):
        # Transport failures are tagged 502; upstream 5xx answers map to 500
        return 502 if (exc.details or {}).get("http_status") == 502 else 500
    if isinstance(exc, ConfigurationAppError):
        return 500
    return 400


async def rate_limit_exceeded_handler(request: Request, exc: RateLimitExceededError) -> JSONResponse:
    """Render a throttled request as HTTP 429 with quota metadata."""

    decision = exc.decision
    body = RateLimitExceededResponse(
        error=exc.message,
        limit=decision.limit,
        remaining=decision.remaining,
        reset=decision.reset,
    )
    headers = rate_limit_headers(decision) if settings.rate_limit.include_headers else None

    return JSONResponse(status_code=429, content=body.model_dump(), headers=headers)


async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    """Handle domain application errors with consistent JSON format.

    All responses include:
    - error.code: Machine-readable error code
    - error.message: Human-readable message
    - error.request_id: For distributed tracing
    - error.details: Optional structured context (client errors only)
    """
    status_code = status_for(exc)

    logger.warning(
        "app_error_handled",
        extra={
            "error_code": exc.code,
            "error_message": exc.message,
            "status_code": status_code,
            "has_details": bool(exc.details),
            "request_id": get_request_id(),
        },
    )

    error_content: dict[str, Any] = {
        "code": exc.code,
        "message": exc.message,
        "request_id": get_request_id(),
    }

    if status_code < 500 and exc.details:
        error_content["details"] = exc.details

    return JSONResponse(
        status_code=status_code,
        content={"error": error_content},
    )


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Report invalid request bodies as 400 through the AppError envelope."""

    error = ValidationAppError(
        code="validation_failed",
        message="Validation failed",
        details={"fields": field_errors(exc.errors())},
    )
    return await app_error_handler(request, error)


async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Fallback handler for unexpected errors.

    Logs detailed information for debugging while returning a generic message;
    no stack traces or exception text reach the client.
    """
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
                "message": "Internal server error",
                "request_id": get_request_id(),
            }
        },
    )


def setup_exception_handlers(app) -> None:
    """Register all exception handlers with the FastAPI app.

    Handlers are resolved by exception MRO, so the 429 handler wins over the
    generic AppError one for throttled requests.
    """
    app.exception_handler(RateLimitExceededError)(rate_limit_exceeded_handler)
    app.exception_handler(AppError)(app_error_handler)
    app.exception_handler(RequestValidationError)(request_validation_handler)
    app.exception_handler(Exception)(general_exception_handler)
