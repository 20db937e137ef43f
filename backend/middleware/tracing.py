"""
Request Tracing Middleware

Gives every request a trace ID so that upstream calls and forecast logs made
while serving it can be correlated:

- re-uses the caller-supplied ``X-Request-ID`` header, or generates a UUID4
- binds ``trace_id`` into structlog contextvars for every log record
- stores it on ``request.state.trace_id``
- echoes it back in the ``X-Request-ID`` response header
"""

import time
import uuid

import structlog
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

logger = structlog.get_logger(__name__)

TRACE_HEADER = "X-Request-ID"


class TracingMiddleware(BaseHTTPMiddleware):
    """Inject a request-scoped trace ID into logs and the response."""

    def __init__(self, app, log_requests: bool = True):
        super().__init__(app)
        self.log_requests = log_requests

    async def dispatch(self, request: Request, call_next) -> Response:
        trace_id: str = request.headers.get(TRACE_HEADER) or str(uuid.uuid4())
        request.state.trace_id = trace_id

        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(trace_id=trace_id)

        start_time = time.monotonic()
        response: Response = await call_next(request)
        process_time = time.monotonic() - start_time

        response.headers[TRACE_HEADER] = trace_id

        if self.log_requests:
            logger.info(
                "request_completed",
                method=request.method,
                path=request.url.path,
                status_code=response.status_code,
                process_time=round(process_time, 4),
            )

        return response
