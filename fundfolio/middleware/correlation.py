# fundfolio/middleware/correlation.py
"""
Correlation ID middleware for request tracing.

Correlation ID Sources (in order of precedence):
1. X-Correlation-ID header (from client or upstream service)
2. X-Request-ID header (alternative header name)
3. Generated UUID if neither header is present

The ID is stored in the request context for the duration of the request
(so every log record carries it) and echoed in the X-Correlation-ID
response header.

Usage:
    app.add_middleware(CorrelationIdMiddleware)

    curl -H "X-Correlation-ID: my-trace-123" http://localhost:8000/portfolios/summary
"""

import uuid
from typing import Awaitable, Callable

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from fundfolio.utils.context import set_correlation_id, reset_correlation_id

CORRELATION_ID_HEADER = "X-Correlation-ID"
REQUEST_ID_HEADER = "X-Request-ID"

# Client-supplied IDs longer than this are replaced by a fresh UUID
MAX_CORRELATION_ID_LENGTH = 128


class CorrelationIdMiddleware(BaseHTTPMiddleware):
    """Attach a correlation ID to each request, its logs and its response."""

    async def dispatch(
        self,
        request: Request,
        call_next: Callable[[Request], Awaitable[Response]],
    ) -> Response:
        correlation_id = get_request_correlation_id(request)
        token = set_correlation_id(correlation_id)

        try:
            response = await call_next(request)
            response.headers[CORRELATION_ID_HEADER] = correlation_id
            return response
        finally:
            reset_correlation_id(token)


def get_request_correlation_id(request: Request) -> str:
    """Pick the caller's correlation ID from the headers, or generate one."""
    for header in (CORRELATION_ID_HEADER, REQUEST_ID_HEADER):
        value = request.headers.get(header, "").strip()
        if value and len(value) <= MAX_CORRELATION_ID_LENGTH:
            return value

    return str(uuid.uuid4())
