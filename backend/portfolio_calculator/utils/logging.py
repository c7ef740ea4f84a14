# backend/portfolio_calculator/utils/logging.py
"""
Logging configuration for the Portfolio Calculator.

Provides one setup function used by the API, the console and init_db:
- Level and format from settings (LOG_LEVEL, LOG_FORMAT)
- Correlation ID on every record
- JSON output for log aggregation

Usage:
    from portfolio_calculator.utils import setup_logging

    setup_logging()                       # API: stdout, settings defaults
    setup_logging(stream=sys.stderr)      # console: keep stdout for results

Log Levels:
    DEBUG   - Per-holding strategy detail, fund recursion
    INFO    - Valuations, imports, startup
    WARNING - Holdings isolated after a failure, rejected imports
    ERROR   - Unexpected exceptions, storage faults
"""

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any, TextIO

from portfolio_calculator.config import settings
from portfolio_calculator.utils.context import get_correlation_id

TEXT_FORMAT = "%(asctime)s | %(levelname)-8s | %(correlation_id)s | %(name)s | %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

NO_CORRELATION_ID = "-"

# Set to WARNING; they log every statement or connection at INFO/DEBUG
NOISY_LOGGERS = [
    "sqlalchemy.engine",
    "sqlalchemy.pool",
    "httpx",
    "httpcore",
    "multipart",
    "asyncio",
]

# LogRecord attributes that are not user-supplied "extra" fields
_RECORD_ATTRS = set(vars(logging.makeLogRecord({}))) | {"correlation_id", "message", "taskName"}


class CorrelationIdFilter(logging.Filter):
    """Stamps every record with the current correlation ID (%(correlation_id)s)."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.correlation_id = get_correlation_id() or NO_CORRELATION_ID
        return True


class JsonFormatter(logging.Formatter):
    """
    One JSON object per line.

    Output format:
    {
        "timestamp": "2024-01-15T10:30:00.123456+00:00",
        "level": "WARNING",
        "logger": "portfolio_calculator.services.valuation.service",
        "correlation_id": "4b8e...",
        "message": "Valuation of holding Investment7 ... failed",
        "exception": "Traceback ...",
        "extra": {...}
    }
    """

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "correlation_id": getattr(record, "correlation_id", NO_CORRELATION_ID),
            "message": record.getMessage(),
        }

        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)

        extra = {
            key: value
            for key, value in record.__dict__.items()
            if key not in _RECORD_ATTRS
        }
        if extra:
            entry["extra"] = extra

        # Decimals, dates and enums in extra fields are rendered with str()
        return json.dumps(entry, default=str)


def setup_logging(
        level: str | None = None,
        log_format: str | None = None,
        stream: TextIO | None = None,
) -> None:
    """
    Configure the root logger. Call once at startup.

    Args:
        level: Log level name; defaults to settings.log_level
        log_format: 'text' or 'json'; defaults to settings.log_format
        stream: Output stream; defaults to stdout

    Raises:
        ValueError: Unknown log level name
    """
    level_name = (level or settings.log_level).upper().strip()
    log_level = logging.getLevelName(level_name)
    if not isinstance(log_level, int):
        raise ValueError(
            f"Invalid log level: '{level_name}'. "
            f"Valid levels are: DEBUG, INFO, WARNING, ERROR, CRITICAL"
        )

    format_type = (log_format or settings.log_format).lower()
    if format_type == "json":
        formatter: logging.Formatter = JsonFormatter()
    else:
        formatter = logging.Formatter(fmt=TEXT_FORMAT, datefmt=DATE_FORMAT)

    handler = logging.StreamHandler(stream or sys.stdout)
    handler.setFormatter(formatter)
    handler.addFilter(CorrelationIdFilter())

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)
    root_logger.handlers.clear()
    root_logger.addHandler(handler)

    for logger_name in NOISY_LOGGERS:
        logging.getLogger(logger_name).setLevel(logging.WARNING)

    logging.getLogger(__name__).info(
        f"Logging configured: level={level_name}, format={format_type}"
    )
