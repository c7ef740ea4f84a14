# backend/portfolio_calculator/utils/context.py
"""
Request-scoped context for the Portfolio Calculator.

Holds the correlation ID of the current HTTP request or console query in a
contextvar, so it propagates through threadpool and async boundaries and
shows up in every log line.

Usage:
    from portfolio_calculator.utils.context import correlation_scope

    with correlation_scope():
        service.value_portfolio(...)   # logs carry the generated id
"""

import uuid
from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar

_correlation_id_var: ContextVar[str | None] = ContextVar("correlation_id", default=None)


def new_correlation_id() -> str:
    """Generate a fresh correlation ID."""
    return str(uuid.uuid4())


def get_correlation_id() -> str | None:
    """Correlation ID of the current request, or None outside a request."""
    return _correlation_id_var.get()


def set_correlation_id(correlation_id: str) -> None:
    _correlation_id_var.set(correlation_id)


def clear_correlation_id() -> None:
    _correlation_id_var.set(None)


@contextmanager
def correlation_scope(correlation_id: str | None = None) -> Iterator[str]:
    """
    Bind a correlation ID for the duration of a block.

    The previous value is restored on exit, so scopes nest.
    """
    token = _correlation_id_var.set(correlation_id or new_correlation_id())
    try:
        yield _correlation_id_var.get()
    finally:
        _correlation_id_var.reset(token)
