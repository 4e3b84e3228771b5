# fundfolio/schemas/valuation.py
"""
Pydantic schemas for Portfolio Valuation.

These schemas handle:
- Portfolio summaries (one portfolio, or all active portfolios)
- Per-fund breakdown
- Portfolio and fund history (time series)
- Snapshot maintenance requests/results

Monetary values are serialized as Decimal with 2 decimals; shares, prices
and average cost with up to 8.
"""

import datetime as dt
from decimal import Decimal
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, model_validator


# =============================================================================
# SUMMARY SCHEMAS
# =============================================================================

class PortfolioTotalsDetail(BaseModel):
    """Monetary totals of a portfolio on one date."""

    model_config = ConfigDict(from_attributes=True)

    total_value: Decimal = Field(..., description="Market value of all holdings (0 where no price is known)")
    total_cost: Decimal = Field(..., description="Cost basis of shares still held, fees included")
    total_realized_gain_loss: Decimal = Field(..., description="Sale proceeds minus original cost of sold shares")
    total_unrealized_gain_loss: Decimal = Field(..., description="total_value - total_cost")
    total_dividends: Decimal = Field(..., description="Dividend cash recorded to date")
    total_sale_proceeds: Decimal = Field(..., description="Proceeds of all sells to date")
    total_original_cost: Decimal = Field(..., description="Original cost of all shares sold to date")
    total_gain_loss: Decimal = Field(..., description="Unrealized + realized gain/loss")


class PortfolioSummaryResponse(BaseModel):
    """Portfolio identity plus its totals as of a date."""

    id: int = Field(..., description="Portfolio ID")
    name: str
    description: str | None = None
    is_archived: bool
    exclude_from_overview: bool
    as_of: dt.date = Field(..., description="Valuation date")
    totals: PortfolioTotalsDetail
    source: Literal["calculated", "snapshot"] = Field(
        ...,
        description="Whether totals came from a materialized snapshot or were calculated"
    )


# =============================================================================
# FUND BREAKDOWN SCHEMAS
# =============================================================================

class FundValuationResponse(BaseModel):
    """Valuation of one fund within a portfolio."""

    model_config = ConfigDict(from_attributes=True)

    # Identification
    portfolio_fund_id: int
    fund_id: int
    fund_name: str
    isin: str | None = None
    symbol: str | None = None
    currency: str

    # Position
    as_of: dt.date
    total_shares: Decimal
    latest_price: Decimal | None = Field(
        ...,
        description="Latest price on or before as_of (None if the fund has no price yet)"
    )
    price_date: dt.date | None = Field(..., description="Date of latest_price")
    average_cost: Decimal = Field(..., description="total_cost / total_shares (0 when nothing is held)")
    total_cost: Decimal
    current_value: Decimal

    # Gains
    unrealized_gain_loss: Decimal
    realized_gain_loss: Decimal
    total_gain_loss: Decimal
    sale_proceeds: Decimal
    original_cost: Decimal

    # Income and costs
    total_dividends: Decimal
    total_fees: Decimal


class FundBreakdownResponse(BaseModel):
    """Per-fund valuations of one portfolio."""

    portfolio_id: int
    as_of: dt.date
    funds: list[FundValuationResponse]


# =============================================================================
# HISTORY SCHEMAS
# =============================================================================

class PortfolioHistoryPoint(BaseModel):
    """One portfolio's totals on one history date."""

    id: int = Field(..., description="Portfolio ID")
    name: str
    totals: PortfolioTotalsDetail
    source: Literal["calculated", "snapshot"]


class PortfolioHistoryDayResponse(BaseModel):
    """All portfolios that had started trading on a date."""

    date: dt.date
    portfolios: list[PortfolioHistoryPoint]


class PortfolioHistoryResponse(BaseModel):
    """Time series of portfolio totals."""

    start_date: dt.date = Field(..., description="Effective start (clamped to the first transaction)")
    end_date: dt.date = Field(..., description="Effective end (capped at today)")
    interval: Literal["daily", "weekly", "monthly"]
    data: list[PortfolioHistoryDayResponse]
    total_points: int = Field(..., description="Number of dates in data")


class FundHistoryDayResponse(BaseModel):
    """Per-fund valuations on one history date."""

    date: dt.date
    funds: list[FundValuationResponse]


class FundHistoryResponse(BaseModel):
    """Time series of per-fund valuations for one portfolio."""

    portfolio_id: int
    interval: Literal["daily", "weekly", "monthly"]
    data: list[FundHistoryDayResponse]
    total_points: int


# =============================================================================
# SNAPSHOT MAINTENANCE SCHEMAS
# =============================================================================

class MaterializeHistoryRequest(BaseModel):
    """
    Request body for materializing history snapshots.

    Omit portfolio_id to materialize every portfolio; omit dates to cover
    each portfolio's full history up to today.
    """

    portfolio_id: int | None = Field(default=None, gt=0, description="Single portfolio to materialize")
    start_date: dt.date | None = Field(default=None, description="First date to materialize")
    end_date: dt.date | None = Field(default=None, description="Last date to materialize")

    @model_validator(mode="after")
    def check_date_order(self) -> "MaterializeHistoryRequest":
        if self.start_date and self.end_date and self.start_date > self.end_date:
            raise ValueError("start_date must be on or before end_date")
        return self


class MaterializeHistoryResponse(BaseModel):
    """Result of a materialization run."""

    portfolio_id: int | None
    snapshots_written: int


class InvalidateHistoryResponse(BaseModel):
    """Result of invalidating a portfolio's snapshots."""

    portfolio_id: int
    from_date: dt.date | None
    snapshots_deleted: int
