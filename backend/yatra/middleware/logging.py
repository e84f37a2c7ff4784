"""
Request correlation for structured logs.
"""
import re
import time
import uuid
from typing import Callable, Optional

import structlog
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

logger = structlog.get_logger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"
_VALID_REQUEST_ID = re.compile(r"^[A-Za-z0-9._\-]{1,64}$")


def resolve_request_id(supplied: Optional[str]) -> str:
    """Reuse the planning client's request id when it is safe to log, else mint one"""
    if supplied and _VALID_REQUEST_ID.match(supplied):
        return supplied
    return str(uuid.uuid4())


def _elapsed_ms(start: float) -> float:
    return round((time.perf_counter() - start) * 1000, 2)


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """
    Binds the request id to every log line of a request and logs one outcome
    line per request: info for success, warning for client errors, error for
    server errors and crashes.
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = resolve_request_id(request.headers.get(REQUEST_ID_HEADER))

        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(
            request_id=request_id,
            method=request.method,
            path=request.url.path,
            client_host=request.client.host if request.client else None
        )

        start = time.perf_counter()
        try:
            response = await call_next(request)
        except Exception as exc:
            logger.error(
                "http_request_failed",
                duration_ms=_elapsed_ms(start),
                error_type=type(exc).__name__
            )
            raise

        if response.status_code >= 500:
            log = logger.error
        elif response.status_code >= 400:
            log = logger.warning
        else:
            log = logger.info
        log("http_request_completed", status_code=response.status_code, duration_ms=_elapsed_ms(start))

        response.headers[REQUEST_ID_HEADER] = request_id
        return response
