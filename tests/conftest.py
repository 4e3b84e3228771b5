# tests/conftest.py
"""
Pytest configuration and fixtures.

This module provides shared fixtures for all tests:
- Database session fixtures (in-memory SQLite)
- API client fixture with the database dependency overridden
- Sample data factories for portfolios, funds and their ledgers
"""

import os

# Set environment BEFORE importing application modules; settings are
# validated at import time
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("RATE_LIMIT_ENABLED", "false")
os.environ.setdefault("APP_NAME", "Test App")

from datetime import date
from decimal import Decimal
from typing import Iterator

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from fundfolio.database import get_db
from fundfolio.dependencies import clear_service_caches
from fundfolio.main import app
from fundfolio.models import (
    Base,
    Dividend,
    Fund,
    FundPrice,
    Portfolio,
    PortfolioFund,
    RealizedGainLoss,
    ReinvestmentStatus,
    Transaction,
    TransactionType,
)


# =============================================================================
# DATABASE FIXTURES
# =============================================================================

@pytest.fixture(scope="function")
def db_engine():
    """Create an in-memory SQLite database engine for testing."""
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    yield engine
    Base.metadata.drop_all(engine)


@pytest.fixture(scope="function")
def db(db_engine) -> Iterator[Session]:
    """Create a database session for testing."""
    SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=db_engine)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.rollback()
        session.close()


@pytest.fixture(scope="function")
def client(db: Session) -> Iterator[TestClient]:
    """
    Create TestClient with database dependency override.

    Seeded rows are visible to every request because the app shares the
    test session.
    """

    def override_get_db():
        try:
            yield db
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    clear_service_caches()

    with TestClient(app) as c:
        yield c

    app.dependency_overrides.clear()


# =============================================================================
# SAMPLE DATA FACTORIES
# =============================================================================

_isin_counter = 0


def _next_isin() -> str:
    global _isin_counter
    _isin_counter += 1
    return f"TEST{_isin_counter:08d}"


def create_portfolio(
        db: Session,
        name: str = "Test Portfolio",
        description: str | None = None,
        is_archived: bool = False,
        exclude_from_overview: bool = False,
) -> Portfolio:
    """Factory function for creating Portfolio entities in the database."""
    portfolio = Portfolio(
        name=name,
        description=description,
        is_archived=is_archived,
        exclude_from_overview=exclude_from_overview,
    )
    db.add(portfolio)
    db.commit()
    db.refresh(portfolio)
    return portfolio


def create_fund(
        db: Session,
        name: str = "World Index Fund",
        isin: str | None = None,
        symbol: str | None = None,
        currency: str = "EUR",
) -> Fund:
    """Factory function for creating Fund entities; ISIN is unique per call."""
    fund = Fund(
        name=name,
        isin=isin or _next_isin(),
        symbol=symbol,
        currency=currency,
    )
    db.add(fund)
    db.commit()
    db.refresh(fund)
    return fund


def create_portfolio_fund(db: Session, portfolio: Portfolio, fund: Fund) -> PortfolioFund:
    """Link a fund to a portfolio."""
    portfolio_fund = PortfolioFund(portfolio_id=portfolio.id, fund_id=fund.id)
    db.add(portfolio_fund)
    db.commit()
    db.refresh(portfolio_fund)
    return portfolio_fund


def add_transaction(
        db: Session,
        portfolio_fund: PortfolioFund,
        txn_date: date,
        txn_type: TransactionType,
        shares: str | Decimal,
        cost_per_share: str | Decimal,
) -> Transaction:
    """Record a transaction. For FEE, cost_per_share is the fee amount and shares is 0."""
    txn = Transaction(
        portfolio_fund_id=portfolio_fund.id,
        date=txn_date,
        type=txn_type,
        shares=Decimal(shares),
        cost_per_share=Decimal(cost_per_share),
    )
    db.add(txn)
    db.commit()
    db.refresh(txn)
    return txn


def add_price(db: Session, fund: Fund, price_date: date, price: str | Decimal) -> FundPrice:
    """Record a fund price observation."""
    fund_price = FundPrice(fund_id=fund.id, date=price_date, price=Decimal(price))
    db.add(fund_price)
    db.commit()
    return fund_price


def add_dividend(
        db: Session,
        portfolio_fund: PortfolioFund,
        record_date: date,
        shares_owned: str | Decimal,
        dividend_per_share: str | Decimal,
        reinvestment_transaction: Transaction | None = None,
) -> Dividend:
    """Record a dividend, optionally linked to its reinvestment transaction."""
    dividend = Dividend(
        fund_id=portfolio_fund.fund_id,
        portfolio_fund_id=portfolio_fund.id,
        record_date=record_date,
        ex_dividend_date=record_date,
        shares_owned=Decimal(shares_owned),
        dividend_per_share=Decimal(dividend_per_share),
        reinvestment_status=(
            ReinvestmentStatus.COMPLETED if reinvestment_transaction else ReinvestmentStatus.PENDING
        ),
        reinvestment_transaction_id=reinvestment_transaction.id if reinvestment_transaction else None,
    )
    db.add(dividend)
    db.commit()
    return dividend


def add_realized_gain(
        db: Session,
        portfolio: Portfolio,
        fund: Fund,
        sell_date: date,
        shares_sold: str | Decimal,
        cost_basis: str | Decimal,
        sale_proceeds: str | Decimal,
        transaction: Transaction | None = None,
) -> RealizedGainLoss:
    """Record the realized gain/loss booked by a sell."""
    gain = RealizedGainLoss(
        portfolio_id=portfolio.id,
        fund_id=fund.id,
        transaction_id=transaction.id if transaction else None,
        transaction_date=sell_date,
        shares_sold=Decimal(shares_sold),
        cost_basis=Decimal(cost_basis),
        sale_proceeds=Decimal(sale_proceeds),
    )
    db.add(gain)
    db.commit()
    return gain


# =============================================================================
# FIXTURE EXPORTS (for convenience in tests)
# =============================================================================

@pytest.fixture
def sample_portfolio(db: Session) -> Portfolio:
    """Provide a sample Portfolio for tests."""
    return create_portfolio(db)


@pytest.fixture
def sample_fund(db: Session) -> Fund:
    """Provide a sample Fund for tests."""
    return create_fund(db)
