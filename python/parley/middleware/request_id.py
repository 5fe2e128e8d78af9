"""Request correlation via the X-Request-ID header.

A caller-supplied id is kept when it is a UUID (lowercased) or a short token
of letters, digits, dots, hyphens and underscores; anything else is replaced
by a fresh UUID4. The id is bound into the logging context for the duration
of the request, stored on ``request.state`` and echoed on the response.

Register this middleware last so it wraps everything else, including CORS
preflights and error responses.
"""

import re
import time
import uuid

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint

from parley.logging import clear_request_context, get_logger, set_request_context

REQUEST_ID_HEADER = "X-Request-ID"
MAX_REQUEST_ID_LENGTH = 128

_TOKEN_RE = re.compile(r"^[A-Za-z0-9._-]+$")
_UUID_RE = re.compile(r"^[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}$", re.I)

logger = get_logger(__name__)


def is_valid_request_id(value: str) -> bool:
    if not value or len(value.encode("utf-8")) > MAX_REQUEST_ID_LENGTH:
        return False
    return bool(_TOKEN_RE.match(value))


def normalize_request_id(value: str) -> str:
    return value.lower() if _UUID_RE.match(value) else value


def resolve_request_id(incoming: str | None) -> str:
    """The id to use for a request, given the header value (if any)."""
    if incoming and is_valid_request_id(incoming):
        return normalize_request_id(incoming)
    return str(uuid.uuid4())


class RequestIDMiddleware(BaseHTTPMiddleware):
    """Assigns a request id and writes one access log line per request."""

    def __init__(self, app, log_requests: bool = True):
        super().__init__(app)
        self.log_requests = log_requests

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        started = time.monotonic()
        request_id = resolve_request_id(request.headers.get(REQUEST_ID_HEADER))
        request.state.request_id = request_id
        set_request_context(request_id, path=request.url.path, method=request.method)

        try:
            response = await call_next(request)
        except Exception:
            # the app's exception handlers render the 500 envelope
            logger.exception("request_failed")
            raise
        else:
            response.headers[REQUEST_ID_HEADER] = request_id
            if self.log_requests:
                logger.info(
                    "request_completed",
                    status_code=response.status_code,
                    duration_ms=round((time.monotonic() - started) * 1000, 2),
                )
            return response
        finally:
            clear_request_context()
