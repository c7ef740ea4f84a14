# backend/portfolio_calculator/middleware/correlation.py
"""
Correlation ID middleware for request tracing.

For each request the middleware binds a correlation ID to the request context
(picked up by every log line through CorrelationIdFilter) and echoes it in
the X-Correlation-ID response header.

Correlation ID Sources (in order of precedence):
1. X-Correlation-ID header
2. X-Request-ID header
3. Generated UUID

Client Usage:
    curl -H "X-Correlation-ID: trace-123" \\
        "http://localhost:8000/investors/Investor0/valuation?date=2019-12-31"
"""

import logging
from typing import Callable

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from portfolio_calculator.utils.context import correlation_scope

logger = logging.getLogger(__name__)

CORRELATION_ID_HEADER = "X-Correlation-ID"
REQUEST_ID_HEADER = "X-Request-ID"

# Longer client-supplied ids are replaced by a generated one
MAX_CORRELATION_ID_LENGTH = 128


class CorrelationIdMiddleware(BaseHTTPMiddleware):
    """Binds a correlation ID for the request and returns it as a response header."""

    async def dispatch(
        self,
        request: Request,
        call_next: Callable[[Request], Response],
    ) -> Response:
        with correlation_scope(self._incoming_correlation_id(request)) as correlation_id:
            response = await call_next(request)
            response.headers[CORRELATION_ID_HEADER] = correlation_id
            return response

    def _incoming_correlation_id(self, request: Request) -> str | None:
        """Client-supplied correlation ID, or None to have one generated."""
        for header in (CORRELATION_ID_HEADER, REQUEST_ID_HEADER):
            value = (request.headers.get(header) or "").strip()
            if not value:
                continue
            if len(value) > MAX_CORRELATION_ID_LENGTH:
                logger.debug(f"Ignoring oversized {header} header ({len(value)} chars)")
                return None
            return value
        return None
