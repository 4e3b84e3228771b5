# fundfolio/services/valuation/__init__.py
"""
Valuation Service Package.

This package provides portfolio valuation capabilities:
- Point-in-time totals (get_portfolio_summary, get_all_portfolio_summaries)
- Per-fund breakdown (get_portfolio_fund_breakdown)
- Time series for charts (get_portfolio_history, get_fund_history)
- Materialized history snapshots (materialize_history, invalidate_history)

Usage:
    from fundfolio.services.valuation import ValuationService

    service = ValuationService()

    # Single date totals
    summary = service.get_portfolio_summary(db, portfolio_id=1)

    # Time series for charts (lazy, iterate to compute)
    for day in service.get_portfolio_history(
        db,
        start_date=date(2024, 1, 1),
        interval="monthly",
    ):
        ...

Architecture:
    valuation/
    ├── __init__.py              # This file - package exports
    ├── types.py                 # Internal data classes
    ├── ledger.py                # LedgerReader (batch loading)
    ├── calculators.py           # Point-in-time calculators
    ├── history_calculator.py    # Rolling-state replay (the one computation)
    ├── snapshots.py             # Snapshot persistence
    └── service.py               # ValuationService (orchestrator)

Data Flow:
    Store → LedgerReader → PortfolioLedger
    Transactions → CostBasisCalculator → FundPosition
    Realized gain rows → RealizedGainCalculator → RealizedGainTotals
    Dividends → DividendCalculator → dividend cash
    Position + PriceResolver → ValuationAssembler → FundMetrics
    FundMetrics → assemble_fund() → FundValuation
    FundMetrics → roll_up() → PortfolioTotals → PortfolioSummary
"""

# Calculators (for testing / direct usage)
from fundfolio.services.valuation.calculators import (
    PriceResolver,
    CostBasisCalculator,
    RealizedGainCalculator,
    DividendCalculator,
    ValuationAssembler,
)
from fundfolio.services.valuation.history_calculator import HistoryCalculator, PortfolioReplay
from fundfolio.services.valuation.ledger import LedgerReader
# Main service
from fundfolio.services.valuation.service import HistorySeries, ValuationService
from fundfolio.services.valuation.snapshots import SnapshotRepository
# Internal types (for advanced usage / testing)
from fundfolio.services.valuation.types import (
    TransactionRecord,
    DividendRecord,
    RealizedGainRecord,
    FundLedger,
    PortfolioLedger,
    PriceResult,
    FundPosition,
    RealizedGainTotals,
    FundMetrics,
    FundValuation,
    PortfolioTotals,
    PortfolioSummary,
    PortfolioHistoryDay,
    FundHistoryDay,
)

__all__ = [
    # Main service
    "ValuationService",
    "HistorySeries",

    # Data types
    "TransactionRecord",
    "DividendRecord",
    "RealizedGainRecord",
    "FundLedger",
    "PortfolioLedger",
    "PriceResult",
    "FundPosition",
    "RealizedGainTotals",
    "FundMetrics",
    "FundValuation",
    "PortfolioTotals",
    "PortfolioSummary",
    "PortfolioHistoryDay",
    "FundHistoryDay",

    # Building blocks (for testing)
    "LedgerReader",
    "SnapshotRepository",
    "PriceResolver",
    "CostBasisCalculator",
    "RealizedGainCalculator",
    "DividendCalculator",
    "ValuationAssembler",
    "HistoryCalculator",
    "PortfolioReplay",
]
