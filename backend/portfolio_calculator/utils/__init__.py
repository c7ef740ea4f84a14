# backend/portfolio_calculator/utils/__init__.py
"""
Cross-cutting utilities for the Portfolio Calculator.

- logging: Logging configuration with correlation ID support
- context: Correlation ID storage for requests and console queries

Usage:
    from portfolio_calculator.utils import setup_logging
    from portfolio_calculator.utils import get_correlation_id, correlation_scope
"""

from portfolio_calculator.utils.context import (
    get_correlation_id,
    set_correlation_id,
    clear_correlation_id,
    new_correlation_id,
    correlation_scope,
)
from portfolio_calculator.utils.logging import setup_logging

__all__ = [
    # Logging
    "setup_logging",
    # Context
    "get_correlation_id",
    "set_correlation_id",
    "clear_correlation_id",
    "new_correlation_id",
    "correlation_scope",
]
