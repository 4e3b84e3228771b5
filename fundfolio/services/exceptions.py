# fundfolio/services/exceptions.py
"""
Service layer exceptions.

These exceptions represent domain-specific errors and contain NO HTTP knowledge.
The router layer is responsible for mapping these to appropriate HTTP responses.

Exception Hierarchy:
    ServiceError (base)
    ├── ValidationError
    │   ├── InvalidIntervalError
    │   └── InvalidDateRangeError
    ├── NotFoundError
    │   └── PortfolioNotFoundError
    └── DataIntegrityError

A missing price is deliberately NOT an exception: a fund without a price on
or before the valuation date is valued at zero.
"""

from datetime import date


class ServiceError(Exception):
    """
    Base exception for all service layer errors.

    Attributes:
        message: Human-readable error description
    """

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(self.message)

    def __str__(self) -> str:
        return self.message


# =============================================================================
# VALIDATION ERRORS
# =============================================================================


class ValidationError(ServiceError):
    """
    Raised when input validation fails.

    This is for programmatic validation errors (invalid parameters, inverted
    ranges, etc.), NOT for request body validation which is handled by Pydantic.

    Attributes:
        field: The field that failed validation (optional)
    """

    def __init__(self, message: str, field: str | None = None) -> None:
        self.field = field
        super().__init__(message)


class InvalidIntervalError(ValidationError):
    """
    Raised when an invalid interval is specified for time series.

    Valid intervals are: daily, weekly, monthly
    """

    def __init__(self, interval: str) -> None:
        self.interval = interval
        super().__init__(
            f"Invalid interval: '{interval}'. Valid options: daily, weekly, monthly",
            field="interval"
        )


class InvalidDateRangeError(ValidationError):
    """Raised when a requested history range starts after it ends."""

    def __init__(self, start_date: date, end_date: date) -> None:
        self.start_date = start_date
        self.end_date = end_date
        super().__init__(
            f"start_date ({start_date}) must be on or before end_date ({end_date})",
            field="start_date"
        )


# =============================================================================
# NOT FOUND ERRORS
# =============================================================================


class NotFoundError(ServiceError):
    """
    Base exception for resource not found errors.

    Attributes:
        resource_type: Type of resource (e.g., "Portfolio", "Fund")
        resource_id: Identifier of the resource
    """

    def __init__(
            self,
            message: str,
            resource_type: str | None = None,
            resource_id: int | str | None = None,
    ) -> None:
        self.resource_type = resource_type
        self.resource_id = resource_id
        super().__init__(message)


class PortfolioNotFoundError(NotFoundError):
    """
    Raised when a portfolio cannot be found.

    Attributes:
        portfolio_id: ID of the portfolio that was not found
    """

    def __init__(self, portfolio_id: int) -> None:
        self.portfolio_id = portfolio_id
        super().__init__(
            f"Portfolio {portfolio_id} not found",
            resource_type="Portfolio",
            resource_id=portfolio_id,
        )


# =============================================================================
# DATA INTEGRITY ERRORS
# =============================================================================


class DataIntegrityError(ServiceError):
    """
    Raised when stored ledger data cannot be replayed consistently.

    Examples:
    - A sell while the holding has no shares left
    - A sell of more shares than are held
    - A transaction type the cost-basis tracker does not know

    The stored data must be corrected; retrying will not help.

    Attributes:
        portfolio_fund_id: Holding whose ledger is inconsistent
        transaction_id: Offending transaction, when known
    """

    def __init__(
            self,
            message: str,
            portfolio_fund_id: int | None = None,
            transaction_id: int | None = None,
    ) -> None:
        self.portfolio_fund_id = portfolio_fund_id
        self.transaction_id = transaction_id
        super().__init__(message)


__all__ = [
    # Base
    "ServiceError",
    # Validation
    "ValidationError",
    "InvalidIntervalError",
    "InvalidDateRangeError",
    # Not Found
    "NotFoundError",
    "PortfolioNotFoundError",
    # Integrity
    "DataIntegrityError",
]
