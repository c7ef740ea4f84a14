# tests/test_correlation_id.py
"""
Tests for correlation ID middleware, context management and log formatting.
"""

import io
import json
import logging

import pytest

from portfolio_calculator.utils.context import (
    clear_correlation_id,
    correlation_scope,
    get_correlation_id,
    set_correlation_id,
)
from portfolio_calculator.utils.logging import CorrelationIdFilter, JsonFormatter, setup_logging


class TestCorrelationIdContext:
    """Tests for correlation ID context functions."""

    def test_get_returns_none_when_not_set(self):
        clear_correlation_id()
        assert get_correlation_id() is None

    def test_set_and_get_correlation_id(self):
        set_correlation_id("test-correlation-123")
        assert get_correlation_id() == "test-correlation-123"
        clear_correlation_id()

    def test_scope_generates_and_restores(self):
        clear_correlation_id()

        with correlation_scope() as outer:
            assert get_correlation_id() == outer
            with correlation_scope("inner-id") as inner:
                assert inner == "inner-id"
                assert get_correlation_id() == "inner-id"
            assert get_correlation_id() == outer

        assert get_correlation_id() is None


class TestCorrelationIdMiddleware:
    """Tests for correlation ID middleware."""

    def test_generates_id_when_absent(self, client):
        response = client.get("/")

        assert len(response.headers["X-Correlation-ID"]) == 36

    def test_echoes_client_id(self, client):
        response = client.get("/", headers={"X-Correlation-ID": "abc-123"})

        assert response.headers["X-Correlation-ID"] == "abc-123"

    def test_accepts_request_id_header(self, client):
        response = client.get("/", headers={"X-Request-ID": "req-7"})

        assert response.headers["X-Correlation-ID"] == "req-7"

    def test_oversized_id_is_replaced(self, client):
        response = client.get("/", headers={"X-Correlation-ID": "x" * 500})

        assert response.headers["X-Correlation-ID"] != "x" * 500


class TestLogging:
    """Tests for log record enrichment."""

    def _record(self, message: str = "hello") -> logging.LogRecord:
        return logging.LogRecord("test", logging.INFO, __file__, 1, message, None, None)

    def test_filter_adds_correlation_id(self):
        record = self._record()

        with correlation_scope("cid-1"):
            CorrelationIdFilter().filter(record)

        assert record.correlation_id == "cid-1"

    def test_filter_placeholder_outside_request(self):
        clear_correlation_id()
        record = self._record()

        CorrelationIdFilter().filter(record)

        assert record.correlation_id == "-"

    def test_json_formatter(self):
        record = self._record("valued")
        record.investor_id = "Investor0"
        CorrelationIdFilter().filter(record)

        entry = json.loads(JsonFormatter().format(record))

        assert entry["message"] == "valued"
        assert entry["level"] == "INFO"
        assert entry["extra"]["investor_id"] == "Investor0"

    def test_setup_logging_rejects_unknown_level(self):
        with pytest.raises(ValueError):
            setup_logging(level="LOUD", stream=io.StringIO())
