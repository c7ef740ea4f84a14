# backend/portfolio_calculator/middleware/rate_limit.py
"""
Rate limiting for the API, using slowapi.

Limits are defined in services/constants.py and applied per endpoint:
valuation reads use RATE_LIMIT_DEFAULT, uploads RATE_LIMIT_UPLOAD and the
health check RATE_LIMIT_HEALTH. RATE_LIMIT_ENABLED=false switches the
limiter off (the test suite does this).

Key by: Client IP address (X-Forwarded-For only from trusted proxies)
Storage: In-memory (single-instance deployments)

Usage:
    from portfolio_calculator.middleware.rate_limit import limiter, RATE_LIMIT_DEFAULT

    @router.get("/items")
    @limiter.limit(RATE_LIMIT_DEFAULT)
    def get_items(request: Request):
        ...
"""

import logging

from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
from slowapi.util import get_remote_address
from starlette.requests import Request
from starlette.responses import JSONResponse

from portfolio_calculator.config import settings
from portfolio_calculator.services.constants import (
    RATE_LIMIT_DEFAULT,
    RATE_LIMIT_UPLOAD,
    RATE_LIMIT_HEALTH,
)

logger = logging.getLogger(__name__)

DEFAULT_RETRY_AFTER_SECONDS = 60


def _get_client_ip(request: Request) -> str:
    """
    Client IP address used as the rate limit key.

    X-Forwarded-For / X-Real-IP are honoured only when the direct peer is a
    trusted proxy (or TRUST_PROXY_HEADERS is set); otherwise a client could
    pick its own key.
    """
    direct_ip = get_remote_address(request)

    if settings.trust_proxy_headers or direct_ip in settings.trusted_proxy_ips:
        forwarded_for = request.headers.get("X-Forwarded-For")
        if forwarded_for:
            # First entry is the original client
            return forwarded_for.split(",")[0].strip()

        real_ip = request.headers.get("X-Real-IP")
        if real_ip:
            return real_ip

    return direct_ip


# =============================================================================
# LIMITER INSTANCE
# =============================================================================

limiter = Limiter(
    key_func=_get_client_ip,
    default_limits=[RATE_LIMIT_DEFAULT],
    enabled=settings.rate_limit_enabled,
)


# =============================================================================
# RATE LIMIT EXCEEDED HANDLER
# =============================================================================

async def rate_limit_exceeded_handler(
    request: Request, exc: RateLimitExceeded
) -> JSONResponse:
    """
    429 response in the API's ErrorDetail format, with a Retry-After header.
    """
    limit = getattr(exc, "limit", None)
    retry_after = limit.limit.get_expiry() if limit is not None else DEFAULT_RETRY_AFTER_SECONDS
    limit_info = str(exc.detail) if exc.detail else "Rate limit exceeded"

    logger.warning(f"Rate limit exceeded for {_get_client_ip(request)}: {limit_info}")

    return JSONResponse(
        status_code=429,
        content={
            "error": "RateLimitError",
            "message": f"Too many requests. {limit_info}",
            "details": {"retry_after": retry_after},
        },
        headers={"Retry-After": str(retry_after)},
    )


__all__ = [
    "limiter",
    "rate_limit_exceeded_handler",
    "SlowAPIMiddleware",
    "RATE_LIMIT_DEFAULT",
    "RATE_LIMIT_UPLOAD",
    "RATE_LIMIT_HEALTH",
]
