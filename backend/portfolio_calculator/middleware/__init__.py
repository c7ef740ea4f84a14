# backend/portfolio_calculator/middleware/__init__.py
"""
ASGI middleware for the Portfolio Calculator API.

- Correlation ID tracking for request tracing
- Rate limiting for API protection

Usage:
    from portfolio_calculator.middleware import CorrelationIdMiddleware, limiter

    app.add_middleware(CorrelationIdMiddleware)
    app.state.limiter = limiter
"""

from portfolio_calculator.middleware.correlation import CorrelationIdMiddleware
from portfolio_calculator.middleware.rate_limit import (
    limiter,
    rate_limit_exceeded_handler,
    SlowAPIMiddleware,
    RATE_LIMIT_DEFAULT,
    RATE_LIMIT_UPLOAD,
    RATE_LIMIT_HEALTH,
)

__all__ = [
    "CorrelationIdMiddleware",
    "limiter",
    "rate_limit_exceeded_handler",
    "SlowAPIMiddleware",
    "RATE_LIMIT_DEFAULT",
    "RATE_LIMIT_UPLOAD",
    "RATE_LIMIT_HEALTH",
]
