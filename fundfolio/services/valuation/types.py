# fundfolio/services/valuation/types.py
"""
Internal data types for the Valuation Service.

These dataclasses are used internally by the valuation calculators.
They are NOT Pydantic schemas - those are defined in fundfolio/schemas/valuation.py
for API serialization.

Design Principles:
- Immutable where possible (frozen=True for value objects)
- Use Decimal for ALL financial values (never float)
- Use date (not datetime) for valuation dates
- Raw (unrounded) figures stay inside the engine; only the assembled
  FundValuation / PortfolioTotals are rounded

Type Hierarchy:
    Ledger records (detached copies of stored rows):
        TransactionRecord, DividendRecord, RealizedGainRecord
        FundLedger          - Everything recorded for one portfolio fund
        PortfolioLedger     - All fund ledgers of one portfolio

    Calculation state and results:
        PriceResult         - Price resolved for a fund as of a date
        FundPosition        - Running shares / cost / fees (mutable)
        RealizedGainTotals  - Realized gain, sale proceeds, original cost
        FundMetrics         - Raw per-fund figures for one date
        FundValuation       - Rounded per-fund output
        PortfolioTotals     - Rounded portfolio roll-up
        PortfolioSummary    - Portfolio identity + totals for one date

    History:
        PortfolioHistoryDay - One date, summaries of every portfolio active on it
        FundHistoryDay      - One date, per-fund valuations of one portfolio
"""

from __future__ import annotations

from dataclasses import dataclass, field, fields
from datetime import date
from decimal import Decimal

from fundfolio.models import TransactionType
from fundfolio.services.constants import ZERO


# =============================================================================
# LEDGER RECORDS
# =============================================================================

@dataclass(frozen=True)
class TransactionRecord:
    """
    One ledger entry of a portfolio fund.

    Note:
        For FEE transactions the fee amount is carried in cost_per_share
        and shares is 0.
    """

    id: int
    date: date
    type: TransactionType
    shares: Decimal
    cost_per_share: Decimal


@dataclass(frozen=True)
class DividendRecord:
    """
    A dividend attributed to a portfolio fund.

    reinvestment_transaction_id only points at the DIVIDEND transaction the
    payout bought; that transaction is already in the ledger, so the link is
    never used for share or cost accounting.
    """

    id: int
    record_date: date
    shares_owned: Decimal
    dividend_per_share: Decimal
    reinvestment_transaction_id: int | None = None

    @property
    def amount(self) -> Decimal:
        return self.shares_owned * self.dividend_per_share


@dataclass(frozen=True)
class RealizedGainRecord:
    """Gain or loss booked by one sell."""

    id: int
    transaction_date: date
    shares_sold: Decimal
    cost_basis: Decimal
    sale_proceeds: Decimal

    @property
    def gain_loss(self) -> Decimal:
        return self.sale_proceeds - self.cost_basis


@dataclass
class FundLedger:
    """
    Everything recorded for one portfolio fund, up to the load cut-off.

    Attributes:
        portfolio_fund_id: Database ID of the portfolio/fund link
        fund_id: Database ID of the fund
        fund_name, isin, symbol, currency: Fund metadata for output
        transactions: Sorted by (date, id)
        price_dates / prices: Parallel lists, sorted by date ascending
        dividends: Sorted by record_date
        realized_gains: Sorted by transaction_date
    """

    portfolio_fund_id: int
    fund_id: int
    fund_name: str
    isin: str | None = None
    symbol: str | None = None
    currency: str = "EUR"
    transactions: list[TransactionRecord] = field(default_factory=list)
    price_dates: list[date] = field(default_factory=list)
    prices: list[Decimal] = field(default_factory=list)
    dividends: list[DividendRecord] = field(default_factory=list)
    realized_gains: list[RealizedGainRecord] = field(default_factory=list)

    @property
    def first_transaction_date(self) -> date | None:
        return self.transactions[0].date if self.transactions else None


@dataclass
class PortfolioLedger:
    """
    All fund ledgers of one portfolio plus the portfolio's identity.

    Archive and overview flags are copied from the live portfolio row at
    load time.

    realized_gains holds the realized gain rows of funds the portfolio no
    longer links to. They count toward portfolio totals only, never toward
    a fund breakdown.
    """

    portfolio_id: int
    name: str
    description: str | None = None
    is_archived: bool = False
    exclude_from_overview: bool = False
    funds: list[FundLedger] = field(default_factory=list)
    realized_gains: list[RealizedGainRecord] = field(default_factory=list)

    @property
    def first_transaction_date(self) -> date | None:
        """
        Earliest recorded activity: a fund transaction, or the sell behind a
        realized gain of a fund no longer linked. None if nothing was recorded.
        """
        dates = [d for d in (f.first_transaction_date for f in self.funds) if d is not None]
        if self.realized_gains:
            dates.append(self.realized_gains[0].transaction_date)
        return min(dates) if dates else None


# =============================================================================
# CALCULATION STATE
# =============================================================================

@dataclass(frozen=True)
class PriceResult:
    """Price observation chosen for a fund: the latest one on or before the target date."""

    price: Decimal
    date: date


@dataclass
class FundPosition:
    """
    Running average-cost state of one portfolio fund.

    Mutated in place by CostBasisCalculator.apply_transaction().

    Attributes:
        shares: Shares currently held
        cost: Cost basis of the shares held (fees included)
        fees: Fees paid so far (informational, already inside cost)
    """

    shares: Decimal = ZERO
    cost: Decimal = ZERO
    fees: Decimal = ZERO

    @property
    def average_cost(self) -> Decimal:
        """Cost per share held; 0 when nothing is held."""
        if self.shares == ZERO:
            return ZERO
        return self.cost / self.shares


@dataclass(frozen=True)
class RealizedGainTotals:
    """
    Sums over realized gain records.

    Attributes:
        realized_gain_loss: Σ (sale_proceeds - cost_basis)
        sale_proceeds: Σ sale_proceeds
        original_cost: Σ cost_basis (cost of the shares that were sold)
    """

    realized_gain_loss: Decimal = ZERO
    sale_proceeds: Decimal = ZERO
    original_cost: Decimal = ZERO

    def add(self, gain: RealizedGainRecord) -> RealizedGainTotals:
        return RealizedGainTotals(
            realized_gain_loss=self.realized_gain_loss + gain.gain_loss,
            sale_proceeds=self.sale_proceeds + gain.sale_proceeds,
            original_cost=self.original_cost + gain.cost_basis,
        )


# =============================================================================
# FUND LEVEL
# =============================================================================

@dataclass(frozen=True)
class FundMetrics:
    """
    Raw (unrounded) figures of one portfolio fund as of one date.

    value is shares × price, or 0 when no price is known yet.
    """

    portfolio_fund_id: int
    fund_id: int
    fund_name: str
    as_of: date
    shares: Decimal
    cost: Decimal
    fees: Decimal
    price: PriceResult | None
    value: Decimal
    realized: RealizedGainTotals
    dividends: Decimal
    isin: str | None = None
    symbol: str | None = None
    currency: str = "EUR"


@dataclass(frozen=True)
class FundValuation:
    """
    Rounded valuation of one portfolio fund, as returned to callers.

    Money is rounded to 2 decimals; shares, price and average cost to 8.

    Formulas:
        unrealized_gain_loss = current_value - total_cost
        total_gain_loss = unrealized_gain_loss + realized_gain_loss
    """

    portfolio_fund_id: int
    fund_id: int
    fund_name: str
    isin: str | None
    symbol: str | None
    currency: str
    as_of: date
    total_shares: Decimal
    latest_price: Decimal | None
    price_date: date | None
    average_cost: Decimal
    total_cost: Decimal
    current_value: Decimal
    unrealized_gain_loss: Decimal
    realized_gain_loss: Decimal
    total_gain_loss: Decimal
    sale_proceeds: Decimal
    original_cost: Decimal
    total_dividends: Decimal
    total_fees: Decimal


# =============================================================================
# PORTFOLIO LEVEL
# =============================================================================

@dataclass(frozen=True)
class PortfolioTotals:
    """
    Rounded monetary roll-up of a portfolio for one date.

    This is exactly what a history snapshot row stores, so a snapshot and
    a fresh calculation can be compared with ==.

    Note:
        unrealized and total gain are derived from the rounded components,
        so total_gain_loss == total_unrealized_gain_loss +
        total_realized_gain_loss holds exactly.
    """

    total_value: Decimal = ZERO
    total_cost: Decimal = ZERO
    total_realized_gain_loss: Decimal = ZERO
    total_unrealized_gain_loss: Decimal = ZERO
    total_dividends: Decimal = ZERO
    total_sale_proceeds: Decimal = ZERO
    total_original_cost: Decimal = ZERO
    total_gain_loss: Decimal = ZERO

    @classmethod
    def field_names(cls) -> list[str]:
        return [f.name for f in fields(cls)]

    def as_dict(self) -> dict[str, Decimal]:
        return {name: getattr(self, name) for name in self.field_names()}


@dataclass(frozen=True)
class PortfolioSummary:
    """
    Portfolio identity plus its totals as of one date.

    Attributes:
        source: "snapshot" when the totals came from a materialized
                snapshot, "calculated" when computed on the fly
    """

    portfolio_id: int
    name: str
    description: str | None
    is_archived: bool
    exclude_from_overview: bool
    as_of: date
    totals: PortfolioTotals
    source: str = "calculated"


# =============================================================================
# HISTORY
# =============================================================================

@dataclass(frozen=True)
class PortfolioHistoryDay:
    """Summaries of every portfolio that had started trading by `date`."""

    date: date
    portfolios: list[PortfolioSummary]


@dataclass(frozen=True)
class FundHistoryDay:
    """Per-fund valuations of one portfolio on `date`."""

    date: date
    funds: list[FundValuation]
