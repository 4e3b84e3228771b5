# tests/utils/test_logging.py
"""
Tests for logging configuration.
"""

import json
import logging
import sys
from datetime import date
from decimal import Decimal

import pytest

from fundfolio.utils.context import clear_correlation_id, set_correlation_id
from fundfolio.utils.logging import (
    NO_CORRELATION_ID,
    CorrelationIdFilter,
    JsonFormatter,
    _get_log_level,
    setup_logging,
)


def make_record(message: str = "hello", **extra) -> logging.LogRecord:
    record = logging.LogRecord(
        name="fundfolio.test",
        level=logging.INFO,
        pathname=__file__,
        lineno=1,
        msg=message,
        args=None,
        exc_info=None,
    )
    for key, value in extra.items():
        setattr(record, key, value)
    return record


@pytest.fixture
def restore_root_logger():
    """Undo setup_logging() side effects on the root logger."""
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield root
    root.handlers[:] = handlers
    root.setLevel(level)


class TestCorrelationIdFilter:
    """Tests for CorrelationIdFilter."""

    def test_stamps_current_id(self):
        set_correlation_id("filter-123")
        record = make_record()

        assert CorrelationIdFilter().filter(record) is True
        assert record.correlation_id == "filter-123"
        clear_correlation_id()

    def test_placeholder_outside_request(self):
        clear_correlation_id()
        record = make_record()

        CorrelationIdFilter().filter(record)

        assert record.correlation_id == NO_CORRELATION_ID


class TestJsonFormatter:
    """Tests for JsonFormatter."""

    def test_basic_fields(self):
        record = make_record("Materialized 3 snapshots", correlation_id="abc")

        entry = json.loads(JsonFormatter().format(record))

        assert entry["level"] == "INFO"
        assert entry["logger"] == "fundfolio.test"
        assert entry["correlation_id"] == "abc"
        assert entry["message"] == "Materialized 3 snapshots"
        assert "extra" not in entry

    def test_extra_values_are_stringified(self):
        """Decimal and date extras do not break json encoding."""
        record = make_record(portfolio_id=1, value=Decimal("12.50"), as_of=date(2024, 1, 2))

        entry = json.loads(JsonFormatter().format(record))

        assert entry["extra"] == {"portfolio_id": 1, "value": "12.50", "as_of": "2024-01-02"}

    def test_exception_included(self):
        try:
            raise RuntimeError("boom")
        except RuntimeError:
            record = logging.LogRecord("x", logging.ERROR, __file__, 1, "failed", None, sys.exc_info())

        entry = json.loads(JsonFormatter().format(record))

        assert "RuntimeError: boom" in entry["exception"]


class TestGetLogLevel:
    """Tests for _get_log_level."""

    @pytest.mark.parametrize("name, expected", [
        ("debug", logging.DEBUG),
        ("INFO", logging.INFO),
        (" warning ", logging.WARNING),
        ("WARN", logging.WARNING),
        ("critical", logging.CRITICAL),
    ])
    def test_valid_levels(self, name, expected):
        assert _get_log_level(name) == expected

    @pytest.mark.parametrize("name", ["verbose", "NOTSET", ""])
    def test_invalid_levels(self, name):
        with pytest.raises(ValueError, match="Invalid log level"):
            _get_log_level(name)


class TestSetupLogging:
    """Tests for setup_logging."""

    def test_configures_single_handler(self, restore_root_logger):
        setup_logging(level="ERROR", log_format="json")

        assert restore_root_logger.level == logging.ERROR
        assert len(restore_root_logger.handlers) == 1
        handler = restore_root_logger.handlers[0]
        assert isinstance(handler.formatter, JsonFormatter)
        assert any(isinstance(f, CorrelationIdFilter) for f in handler.filters)

    def test_quiets_noisy_loggers(self, restore_root_logger):
        setup_logging(level="DEBUG", log_format="text")

        assert logging.getLogger("sqlalchemy.engine").level == logging.WARNING
