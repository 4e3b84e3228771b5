# fundfolio/services/constants.py
"""
Centralized constants for the fundfolio services.

Usage:
    from fundfolio.services.constants import CURRENCY_PRECISION, ZERO
"""

from decimal import Decimal


# =============================================================================
# DECIMAL PRECISION CONSTANTS
# =============================================================================

# Currency amounts: 2 decimal places (e.g., 1234.56)
# Used for: value, cost, gains, dividends, fees
CURRENCY_PRECISION: Decimal = Decimal("0.01")

# Share quantities, prices and average cost per share: 8 decimal places
SHARE_PRECISION: Decimal = Decimal("0.00000001")

# Type-safe zero for Decimal comparisons
ZERO: Decimal = Decimal("0")


# =============================================================================
# HISTORY
# =============================================================================

# Valid history sampling intervals
HISTORY_INTERVALS: tuple[str, ...] = ("daily", "weekly", "monthly")

# Weekly sampling lands on this weekday (Friday, the last trading day)
WEEKLY_SAMPLE_WEEKDAY: int = 4


# =============================================================================
# RATE LIMITING CONSTANTS
# =============================================================================
# Format follows slowapi/limits syntax: "100/minute", "10/hour", etc.

# Default rate limit for read endpoints (GET requests)
RATE_LIMIT_DEFAULT: str = "100/minute"

# Rate limit for write endpoints (POST, PATCH, DELETE)
RATE_LIMIT_WRITE: str = "30/minute"

# Snapshot materialization replays whole ledgers, keep it scarce
RATE_LIMIT_MATERIALIZE: str = "5/minute"

# Rate limit for health check endpoints
RATE_LIMIT_HEALTH: str = "300/minute"
