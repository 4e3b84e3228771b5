# fundfolio/middleware/rate_limit.py
"""
Rate limiting using slowapi.

Every route gets RATE_LIMIT_DEFAULT; writes and snapshot materialization
carry tighter limits through the @limiter.limit decorator. Limits are keyed
by client IP; X-Forwarded-For / X-Real-IP are honoured only when the
immediate peer is a trusted proxy. Storage is in-memory (single instance).

Limiting is switched off entirely with RATE_LIMIT_ENABLED=false (tests).

Usage:
    from fundfolio.middleware.rate_limit import limiter, RATE_LIMIT_WRITE

    @router.post("/")
    @limiter.limit(RATE_LIMIT_WRITE)
    def create_portfolio(request: Request, ...):
        ...
"""

import logging

from slowapi import Limiter
from slowapi.util import get_remote_address
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse

from fundfolio.config import settings
from fundfolio.services.constants import (
    RATE_LIMIT_DEFAULT,
    RATE_LIMIT_WRITE,
    RATE_LIMIT_MATERIALIZE,
    RATE_LIMIT_HEALTH,
)

logger = logging.getLogger(__name__)

# Seconds suggested to the client in the Retry-After header
DEFAULT_RETRY_AFTER = 60


def _is_trusted_proxy(request: Request) -> bool:
    if settings.trust_proxy_headers:
        return True
    return get_remote_address(request) in settings.trusted_proxy_ips


def _get_client_ip(request: Request) -> str:
    """
    Client IP used as the rate limit key.

    Forwarded headers are ignored unless the peer is a trusted proxy, so a
    client cannot dodge its limit by setting X-Forwarded-For itself.
    """
    if _is_trusted_proxy(request):
        forwarded_for = request.headers.get("X-Forwarded-For")
        if forwarded_for:
            # First entry is the original client
            return forwarded_for.split(",")[0].strip()

        real_ip = request.headers.get("X-Real-IP")
        if real_ip:
            return real_ip

    return get_remote_address(request)


limiter = Limiter(
    key_func=_get_client_ip,
    default_limits=[RATE_LIMIT_DEFAULT],
    enabled=settings.rate_limit_enabled,
)


async def rate_limit_exceeded_handler(
    request: Request, exc: RateLimitExceeded
) -> JSONResponse:
    """Render RateLimitExceeded as a 429 in the common error format."""
    limit_info = str(exc.detail) if exc.detail else "Rate limit exceeded"

    logger.warning(
        f"Rate limit exceeded for {_get_client_ip(request)} on {request.url.path}: {limit_info}"
    )

    return JSONResponse(
        status_code=429,
        content={
            "error": "RateLimitError",
            "message": f"Too many requests. {limit_info}",
            "details": {
                "retry_after": DEFAULT_RETRY_AFTER,
            },
        },
        headers={
            "Retry-After": str(DEFAULT_RETRY_AFTER),
        },
    )


__all__ = [
    "limiter",
    "rate_limit_exceeded_handler",
    "SlowAPIMiddleware",
    "RATE_LIMIT_DEFAULT",
    "RATE_LIMIT_WRITE",
    "RATE_LIMIT_MATERIALIZE",
    "RATE_LIMIT_HEALTH",
]
