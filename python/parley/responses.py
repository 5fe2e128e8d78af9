"""Pipeline response envelope helpers and exception handlers.

All pipeline responses use the envelope the chat UI consumes:
- Success: { "success": true, ... }
- Error: { "success": false, "error": "...", "code": "E_...", "request_id": "..." }

The request_id is included in error responses for debugging and support.
Raw upstream errors and stack traces are never returned to the client.
"""

from typing import Any

from fastapi import Request
from fastapi.responses import JSONResponse

from parley.errors import ApiError, ApiErrorCode
from parley.logging import get_logger, get_request_id

logger = get_logger(__name__)


def success_response(**fields: Any) -> dict[str, Any]:
    """Create a success response envelope.

    Fields whose value is None are omitted so optional keys stay absent.

    Args:
        **fields: Payload keys to include next to ``success``.

    Returns:
        Dict with ``success: true`` and the given fields.
    """
    body: dict[str, Any] = {"success": True}
    body.update({key: value for key, value in fields.items() if value is not None})
    return body


def error_response(
    code: ApiErrorCode, message: str, request_id: str | None = None
) -> dict[str, Any]:
    """Create an error response envelope.

    Args:
        code: The error code enum value.
        message: Human-readable error message.
        request_id: Optional request ID for correlation (auto-populated from context if None).

    Returns:
        Dict with ``success: false``, the message under ``error``, and the code.
    """
    if request_id is None:
        request_id = get_request_id()

    body: dict[str, Any] = {"success": False, "error": message, "code": code.value}
    if request_id:
        body["request_id"] = request_id

    return body


async def api_error_handler(request: Request, exc: ApiError) -> JSONResponse:
    """Handle ApiError exceptions and return proper JSON response."""
    logger.warning("api_error", code=exc.code.value, status_code=exc.status_code)
    return JSONResponse(
        status_code=exc.status_code,
        content=error_response(exc.code, exc.message),
    )


async def http_exception_handler(request: Request, exc: Any) -> JSONResponse:
    """Handle Starlette HTTPException (unknown routes, bad methods)."""
    code = ApiErrorCode.E_NOT_FOUND if exc.status_code == 404 else ApiErrorCode.E_INTERNAL
    message = str(exc.detail) if exc.detail else "An error occurred"
    return JSONResponse(
        status_code=exc.status_code,
        content=error_response(code, message),
    )


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Handle unhandled exceptions and return 500 with E_INTERNAL.

    Logs the exception server-side but never leaks details to client.
    """
    logger.exception("unhandled_exception", error_type=type(exc).__name__)

    return JSONResponse(
        status_code=500,
        content=error_response(ApiErrorCode.E_INTERNAL, "Internal server error"),
    )
