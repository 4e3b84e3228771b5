# fundfolio/models.py
import enum
from datetime import date, datetime, timezone
from decimal import Decimal

from sqlalchemy import String, Date, DateTime, ForeignKey, Enum, Numeric, UniqueConstraint, Boolean, Index
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy models."""
    pass


# Enums help enforce data integrity at the database level
class TransactionType(str, enum.Enum):
    BUY = "BUY"
    SELL = "SELL"
    DIVIDEND = "DIVIDEND"  # Dividend reinvestment: adds shares like a buy
    FEE = "FEE"  # Amount stored in cost_per_share, shares are 0


class InvestmentType(str, enum.Enum):
    FUND = "FUND"
    STOCK = "STOCK"


class DividendType(str, enum.Enum):
    NONE = "NONE"
    CASH = "CASH"
    STOCK = "STOCK"


class ReinvestmentStatus(str, enum.Enum):
    """
    Reinvestment state of a dividend.

    State transitions:
        PENDING → COMPLETED (reinvestment transaction recorded)
        PENDING → PARTIAL (only part of the amount reinvested)
    """
    PENDING = "PENDING"
    COMPLETED = "COMPLETED"
    PARTIAL = "PARTIAL"


class Portfolio(Base):
    __tablename__ = "portfolios"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    name: Mapped[str] = mapped_column(String)
    description: Mapped[str | None] = mapped_column(String, nullable=True)

    # Archived portfolios stay queryable by id but drop out of overviews
    is_archived: Mapped[bool] = mapped_column(Boolean, default=False)
    exclude_from_overview: Mapped[bool] = mapped_column(Boolean, default=False)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc), onupdate=lambda: datetime.now(timezone.utc))

    portfolio_funds: Mapped[list["PortfolioFund"]] = relationship(
        back_populates="portfolio",
        cascade="all, delete-orphan"
    )
    realized_gains: Mapped[list["RealizedGainLoss"]] = relationship(
        back_populates="portfolio",
        cascade="all, delete-orphan"
    )
    history_snapshots: Mapped[list["PortfolioHistorySnapshot"]] = relationship(
        back_populates="portfolio",
        cascade="all, delete-orphan"
    )


class Fund(Base):
    """
    Global table of funds and stocks shared by all portfolios.

    A fund is uniquely identified by its ISIN. Prices are stored per fund,
    so the same price history serves every portfolio holding it.
    """
    __tablename__ = "funds"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    name: Mapped[str] = mapped_column(String)
    isin: Mapped[str] = mapped_column(String, unique=True, index=True)
    symbol: Mapped[str | None] = mapped_column(String, nullable=True, index=True)
    currency: Mapped[str] = mapped_column(String, default="EUR")
    exchange: Mapped[str | None] = mapped_column(String, nullable=True)
    investment_type: Mapped[InvestmentType] = mapped_column(Enum(InvestmentType), default=InvestmentType.FUND)
    dividend_type: Mapped[DividendType] = mapped_column(Enum(DividendType), default=DividendType.NONE)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))

    prices: Mapped[list["FundPrice"]] = relationship(back_populates="fund", cascade="all, delete-orphan")
    portfolio_funds: Mapped[list["PortfolioFund"]] = relationship(back_populates="fund")


class PortfolioFund(Base):
    """
    Link between a portfolio and a fund it holds.

    Transactions and dividends hang off this link rather than off the
    portfolio, so one fund appears at most once per portfolio.
    """
    __tablename__ = "portfolio_funds"
    __table_args__ = (
        UniqueConstraint('portfolio_id', 'fund_id', name='uq_portfolio_fund'),
    )

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    portfolio_id: Mapped[int] = mapped_column(ForeignKey("portfolios.id"), index=True)
    fund_id: Mapped[int] = mapped_column(ForeignKey("funds.id"), index=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))

    portfolio: Mapped["Portfolio"] = relationship(back_populates="portfolio_funds")
    fund: Mapped["Fund"] = relationship(back_populates="portfolio_funds")
    transactions: Mapped[list["Transaction"]] = relationship(
        back_populates="portfolio_fund",
        cascade="all, delete-orphan"
    )
    dividends: Mapped[list["Dividend"]] = relationship(
        back_populates="portfolio_fund",
        cascade="all, delete-orphan"
    )


class Transaction(Base):
    __tablename__ = "transactions"
    __table_args__ = (
        # Composite index for point-in-time valuation queries:
        # "Get all transactions for portfolio fund X up to date Y"
        Index('ix_transaction_portfolio_fund_date', 'portfolio_fund_id', 'date'),
    )

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    portfolio_fund_id: Mapped[int] = mapped_column(ForeignKey("portfolio_funds.id"), index=True)
    date: Mapped[date] = mapped_column(Date, index=True)
    type: Mapped[TransactionType] = mapped_column(Enum(TransactionType))

    # Numeric(18, 8) supports values up to 9,999,999,999.99999999
    shares: Mapped[Decimal] = mapped_column(Numeric(18, 8), default=Decimal(0))
    cost_per_share: Mapped[Decimal] = mapped_column(Numeric(18, 8))
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))  # When it was recorded

    portfolio_fund: Mapped["PortfolioFund"] = relationship(back_populates="transactions")


class FundPrice(Base):
    """
    Historical closing price of a fund, one row per trading day.

    Valuation uses the latest price on or before the valuation date, so gaps
    (weekends, holidays) need no filling.
    """
    __tablename__ = "fund_prices"
    __table_args__ = (
        UniqueConstraint('fund_id', 'date', name='uq_fund_price_date'),
    )

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    fund_id: Mapped[int] = mapped_column(ForeignKey("funds.id"), index=True)
    date: Mapped[date] = mapped_column(Date, index=True)  # Daily data - no time component
    price: Mapped[Decimal] = mapped_column(Numeric(18, 8))

    fund: Mapped["Fund"] = relationship(back_populates="prices")


class Dividend(Base):
    """
    A dividend declared on a fund, attributed to one portfolio holding.

    The amount is derived (shares_owned * dividend_per_share) rather than
    stored. A reinvested dividend also produces a DIVIDEND transaction, which
    is linked through reinvestment_transaction_id.
    """
    __tablename__ = "dividends"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    fund_id: Mapped[int] = mapped_column(ForeignKey("funds.id"), index=True)
    portfolio_fund_id: Mapped[int] = mapped_column(ForeignKey("portfolio_funds.id"), index=True)
    record_date: Mapped[date] = mapped_column(Date, index=True)
    ex_dividend_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    shares_owned: Mapped[Decimal] = mapped_column(Numeric(18, 8))
    dividend_per_share: Mapped[Decimal] = mapped_column(Numeric(18, 8))
    reinvestment_status: Mapped[ReinvestmentStatus] = mapped_column(
        Enum(ReinvestmentStatus),
        default=ReinvestmentStatus.PENDING
    )
    buy_order_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    reinvestment_transaction_id: Mapped[int | None] = mapped_column(
        ForeignKey("transactions.id", ondelete="SET NULL"), nullable=True, default=None
    )
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))

    portfolio_fund: Mapped["PortfolioFund"] = relationship(back_populates="dividends")
    reinvestment_transaction: Mapped["Transaction | None"] = relationship(foreign_keys=[reinvestment_transaction_id])

    @property
    def total_amount(self) -> Decimal:
        return self.shares_owned * self.dividend_per_share


class RealizedGainLoss(Base):
    """
    Gain or loss realized by a sell, recorded when the sell is booked.

    Rows are keyed by (portfolio, fund) rather than portfolio fund so they
    survive the holding being removed.
    """
    __tablename__ = "realized_gain_losses"
    __table_args__ = (
        Index('ix_realized_gain_portfolio_date', 'portfolio_id', 'transaction_date'),
    )

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    portfolio_id: Mapped[int] = mapped_column(ForeignKey("portfolios.id"), index=True)
    fund_id: Mapped[int] = mapped_column(ForeignKey("funds.id"), index=True)
    transaction_id: Mapped[int | None] = mapped_column(
        ForeignKey("transactions.id", ondelete="SET NULL"), nullable=True
    )
    transaction_date: Mapped[date] = mapped_column(Date, index=True)
    shares_sold: Mapped[Decimal] = mapped_column(Numeric(18, 8))
    cost_basis: Mapped[Decimal] = mapped_column(Numeric(18, 8))
    sale_proceeds: Mapped[Decimal] = mapped_column(Numeric(18, 8))
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))

    portfolio: Mapped["Portfolio"] = relationship(back_populates="realized_gains")

    @property
    def realized_gain_loss(self) -> Decimal:
        return self.sale_proceeds - self.cost_basis


class PortfolioHistorySnapshot(Base):
    """
    Precomputed daily valuation of one portfolio.

    Snapshots are a cache of the on-the-fly calculation: every column holds the
    value the calculator would return for (portfolio_id, date). Archive and
    overview flags are read from the live portfolio row, never from here.
    """
    __tablename__ = "portfolio_history_snapshots"
    __table_args__ = (
        UniqueConstraint('portfolio_id', 'date', name='uq_snapshot_portfolio_date'),
    )

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    portfolio_id: Mapped[int] = mapped_column(ForeignKey("portfolios.id"), index=True)
    date: Mapped[date] = mapped_column(Date, index=True)

    # =========================================================================
    # VALUATION (2 decimal places, already rounded)
    # =========================================================================

    total_value: Mapped[Decimal] = mapped_column(Numeric(18, 2))
    total_cost: Mapped[Decimal] = mapped_column(Numeric(18, 2))
    total_realized_gain_loss: Mapped[Decimal] = mapped_column(Numeric(18, 2))
    total_unrealized_gain_loss: Mapped[Decimal] = mapped_column(Numeric(18, 2))
    total_dividends: Mapped[Decimal] = mapped_column(Numeric(18, 2))
    total_sale_proceeds: Mapped[Decimal] = mapped_column(Numeric(18, 2))
    total_original_cost: Mapped[Decimal] = mapped_column(Numeric(18, 2))
    total_gain_loss: Mapped[Decimal] = mapped_column(Numeric(18, 2))

    calculated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc)
    )

    portfolio: Mapped["Portfolio"] = relationship(back_populates="history_snapshots")
