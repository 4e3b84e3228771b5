# fundfolio/services/__init__.py
"""
Service layer for business logic.

This package contains the service layer which encapsulates business logic
separate from the API (router) layer. Services:
- Have NO knowledge of HTTP (no HTTPException, no status codes)
- Raise domain-specific exceptions
- Receive database sessions as parameters (not via Depends)
- Are easily testable via dependency injection

Usage:
    from fundfolio.services import ValuationService
    from fundfolio.services import PortfolioNotFoundError, DataIntegrityError

Architecture:
    services/
    ├── __init__.py                  # This file - main exports
    ├── exceptions.py                # Domain exceptions
    ├── constants.py                 # Business constants and limits
    └── valuation/                   # Valuation engine
        ├── service.py               # Main valuation orchestrator
        ├── types.py                 # Valuation data types
        ├── ledger.py                # Batch ledger loading
        ├── calculators.py           # Point-in-time calculators
        ├── history_calculator.py    # Rolling-state replay
        └── snapshots.py             # Materialized history snapshots
"""

from fundfolio.services.exceptions import (
    ServiceError,
    ValidationError,
    InvalidIntervalError,
    InvalidDateRangeError,
    NotFoundError,
    PortfolioNotFoundError,
    DataIntegrityError,
)
from fundfolio.services.valuation import ValuationService

__all__ = [
    # Services
    "ValuationService",
    # Exceptions
    "ServiceError",
    "ValidationError",
    "InvalidIntervalError",
    "InvalidDateRangeError",
    "NotFoundError",
    "PortfolioNotFoundError",
    "DataIntegrityError",
]
