# fundfolio/utils/__init__.py
"""
Cross-cutting utilities:
- logging: Logging setup with correlation ID support
- context: Request context (correlation IDs)
- date_utils: History date sampling
- sql: LIKE pattern escaping

Usage:
    from fundfolio.utils import setup_logging
    from fundfolio.utils import get_correlation_id, set_correlation_id
    from fundfolio.utils.date_utils import generate_dates
"""

from fundfolio.utils.context import (
    get_correlation_id,
    set_correlation_id,
    reset_correlation_id,
    clear_correlation_id,
)
from fundfolio.utils.logging import setup_logging
from fundfolio.utils.sql import escape_like_pattern, contains_pattern

__all__ = [
    # Logging
    "setup_logging",
    # Context
    "get_correlation_id",
    "set_correlation_id",
    "reset_correlation_id",
    "clear_correlation_id",
    # SQL
    "escape_like_pattern",
    "contains_pattern",
]
