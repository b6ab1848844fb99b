"""X-Request-ID middleware for request correlation.

Accepts a caller-supplied X-Request-ID when it looks sane, otherwise generates
one, binds it (with method and path) into the logging context, echoes it in
the response header, and writes one access log entry per request.

Must be added LAST so it runs FIRST (outermost). Basic Auth failures then
still carry X-Request-ID.
"""

import re
import time
import uuid

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint

from kbase.logging import clear_request_context, get_logger, set_request_context

REQUEST_ID_HEADER = "X-Request-ID"
MAX_REQUEST_ID_LENGTH = 128

# Alphanumeric, dots, hyphens, underscores
VALID_REQUEST_ID_PATTERN = re.compile(r"^[A-Za-z0-9._-]{1,128}$")

logger = get_logger(__name__)


def normalize_request_id(value: str | None) -> str | None:
    """Return a usable request id from a header value, or None to generate one.

    UUIDs are converted to lowercase hyphenated canonical form; other ids
    matching the allowed pattern are kept as-is.
    """
    if not value or len(value.encode("utf-8")) > MAX_REQUEST_ID_LENGTH:
        return None

    try:
        return str(uuid.UUID(value)) if len(value) == 36 else _plain_request_id(value)
    except ValueError:
        return _plain_request_id(value)


def _plain_request_id(value: str) -> str | None:
    return value if VALID_REQUEST_ID_PATTERN.match(value) else None


class RequestIDMiddleware(BaseHTTPMiddleware):
    """Request-id handling and access logging.

    Args:
        app: The ASGI application.
        log_requests: If True, log an access entry for each request.
    """

    def __init__(self, app, log_requests: bool = True):
        super().__init__(app)
        self.log_requests = log_requests

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        start_time = time.monotonic()

        request_id = normalize_request_id(request.headers.get(REQUEST_ID_HEADER)) or str(
            uuid.uuid4()
        )
        request.state.request_id = request_id
        set_request_context(request_id, path=request.url.path, method=request.method)

        try:
            response = await call_next(request)
            response.headers[REQUEST_ID_HEADER] = request_id

            if self.log_requests:
                logger.info(
                    "request_completed",
                    status_code=response.status_code,
                    auth_user=getattr(request.state, "auth_user", None),
                    duration_ms=round((time.monotonic() - start_time) * 1000, 2),
                )

            return response

        except Exception:
            # unhandled_exception_handler turns this into a 500
            logger.exception("request_failed")
            raise

        finally:
            clear_request_context()
