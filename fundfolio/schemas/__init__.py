# fundfolio/schemas/__init__.py
"""
Pydantic schemas for API request/response validation.

This package contains all Pydantic schemas organized by domain:
- errors: Error response formats
- portfolios: Portfolio CRUD operations
- valuation: Summaries, fund breakdown, history, snapshot maintenance

Usage:
    from fundfolio.schemas import PortfolioCreate, PortfolioResponse
    from fundfolio.schemas import PortfolioSummaryResponse
    from fundfolio.schemas import ErrorDetail
"""

from fundfolio.schemas.errors import (
    ErrorDetail,
    ValidationErrorDetail,
)
from fundfolio.schemas.portfolios import (
    PortfolioBase,
    PortfolioCreate,
    PortfolioUpdate,
    PortfolioResponse,
    PortfolioListResponse,
)
from fundfolio.schemas.valuation import (
    PortfolioTotalsDetail,
    PortfolioSummaryResponse,
    FundValuationResponse,
    FundBreakdownResponse,
    PortfolioHistoryPoint,
    PortfolioHistoryDayResponse,
    PortfolioHistoryResponse,
    FundHistoryDayResponse,
    FundHistoryResponse,
    MaterializeHistoryRequest,
    MaterializeHistoryResponse,
    InvalidateHistoryResponse,
)

__all__ = [
    # Errors
    "ErrorDetail",
    "ValidationErrorDetail",
    # Portfolios
    "PortfolioBase",
    "PortfolioCreate",
    "PortfolioUpdate",
    "PortfolioResponse",
    "PortfolioListResponse",
    # Valuation
    "PortfolioTotalsDetail",
    "PortfolioSummaryResponse",
    "FundValuationResponse",
    "FundBreakdownResponse",
    "PortfolioHistoryPoint",
    "PortfolioHistoryDayResponse",
    "PortfolioHistoryResponse",
    "FundHistoryDayResponse",
    "FundHistoryResponse",
    "MaterializeHistoryRequest",
    "MaterializeHistoryResponse",
    "InvalidateHistoryResponse",
]
