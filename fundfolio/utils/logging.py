# fundfolio/utils/logging.py
"""
Logging configuration for fundfolio.

One call to setup_logging() at startup configures the root logger:
- Level from LOG_LEVEL (DEBUG in development, INFO in production)
- Human-readable text or one-JSON-object-per-line output (LOG_FORMAT)
- Every record carries the request correlation ID
- Chatty third-party loggers are held at WARNING

Usage:
    from fundfolio.utils.logging import setup_logging

    # In main.py, before creating the FastAPI app
    setup_logging()

Log Levels used by the services:
    DEBUG   - Snapshot hits/misses, funds valued at zero for lack of a price
    INFO    - Valuation requests, materialization runs, portfolio changes
    WARNING - Rate limits, rejected requests
    ERROR   - Ledger integrity failures, unexpected exceptions
"""

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any

from fundfolio.config import settings
from fundfolio.utils.context import get_correlation_id

# =============================================================================
# CONSTANTS
# =============================================================================

# timestamp | level | correlation_id | logger_name | message
DEFAULT_TEXT_FORMAT = "%(asctime)s | %(levelname)-8s | %(correlation_id)s | %(name)s | %(message)s"
DEFAULT_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

NO_CORRELATION_ID = "-"

NOISY_LOGGERS = [
    "sqlalchemy.engine",
    "sqlalchemy.pool",
    "httpx",
    "httpcore",
    "asyncio",
    "multipart",
]

# Attributes present on every LogRecord; anything else came in via `extra=`
_RESERVED_RECORD_ATTRS = frozenset(
    logging.LogRecord("", 0, "", 0, "", None, None).__dict__
) | {"correlation_id", "message", "asctime"}


# =============================================================================
# FILTER AND FORMATTER
# =============================================================================

class CorrelationIdFilter(logging.Filter):
    """Stamp each record with the current correlation ID (%(correlation_id)s)."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.correlation_id = get_correlation_id() or NO_CORRELATION_ID
        return True


class JsonFormatter(logging.Formatter):
    """
    One JSON object per record, for log aggregators.

    Output format:
    {
        "timestamp": "2024-01-15T10:30:00.123000+00:00",
        "level": "INFO",
        "logger": "fundfolio.services.valuation.service",
        "correlation_id": "abc-123-def",
        "message": "Materialized 365 snapshots for portfolio 1",
        "extra": {"portfolio_id": 1}
    }

    Values passed through `extra=` that json cannot encode (Decimal, date)
    are rendered with str().
    """

    def format(self, record: logging.LogRecord) -> str:
        log_entry: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "correlation_id": getattr(record, "correlation_id", NO_CORRELATION_ID),
            "message": record.getMessage(),
        }

        if record.exc_info:
            log_entry["exception"] = self.formatException(record.exc_info)

        extra = {
            key: value
            for key, value in record.__dict__.items()
            if key not in _RESERVED_RECORD_ATTRS
        }
        if extra:
            log_entry["extra"] = extra

        return json.dumps(log_entry, default=str)


# =============================================================================
# SETUP
# =============================================================================

def setup_logging(
        level: str | None = None,
        log_format: str | None = None,
        suppress_noisy_loggers: bool = True,
) -> None:
    """
    Configure application-wide logging.

    Args:
        level: Log level name. Defaults to settings.log_level.
        log_format: 'text' or 'json'. Defaults to settings.log_format.
        suppress_noisy_loggers: Hold third-party loggers at WARNING.

    Raises:
        ValueError: If the level name is not recognised
    """
    log_level_str = level or settings.log_level
    log_level = _get_log_level(log_level_str)
    format_type = (log_format or settings.log_format).lower()

    if format_type == "json":
        formatter: logging.Formatter = JsonFormatter()
    else:
        formatter = logging.Formatter(fmt=DEFAULT_TEXT_FORMAT, datefmt=DEFAULT_DATE_FORMAT)

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(formatter)
    handler.addFilter(CorrelationIdFilter())

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)
    root_logger.handlers.clear()
    root_logger.addHandler(handler)

    if suppress_noisy_loggers:
        for logger_name in NOISY_LOGGERS:
            logging.getLogger(logger_name).setLevel(logging.WARNING)

    logging.getLogger(__name__).info(
        f"Logging configured: level={log_level_str}, format={format_type}"
    )


def _get_log_level(level_str: str) -> int:
    """
    Convert a level name (case-insensitive, WARN accepted) to its constant.

    Raises:
        ValueError: If level_str is not a valid log level
    """
    level_str = level_str.upper().strip()
    if level_str == "WARN":
        level_str = "WARNING"

    level = logging.getLevelNamesMapping().get(level_str)
    if level is None or level_str == "NOTSET":
        raise ValueError(
            f"Invalid log level: '{level_str}'. "
            "Valid levels are: DEBUG, INFO, WARNING, ERROR, CRITICAL"
        )
    return level

