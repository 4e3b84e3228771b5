# fundfolio/routers/valuation.py
"""
Portfolio valuation endpoints.

Provides portfolio totals, fund breakdown and historical performance:
- GET /portfolios/summary - Totals of every active portfolio
- GET /portfolios/history - Time series of every active portfolio
- POST /portfolios/history/materialize - Store daily snapshots
- GET /portfolios/{id}/summary - Totals of one portfolio
- GET /portfolios/{id}/funds - Per-fund breakdown
- GET /portfolios/{id}/history - Time series of one portfolio
- GET /portfolios/{id}/funds/history - Per-fund time series
- DELETE /portfolios/{id}/history/snapshots - Drop stale snapshots

This router must be registered before the portfolio CRUD router so that
/portfolios/summary and /portfolios/history are not taken for ids.

Domain exceptions (PortfolioNotFoundError, InvalidIntervalError,
DataIntegrityError, ...) propagate to the global handlers in main.py.
"""

import logging
from datetime import date

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.orm import Session

from fundfolio.database import get_db
from fundfolio.dependencies import get_valuation_service
from fundfolio.middleware import limiter, RATE_LIMIT_MATERIALIZE, RATE_LIMIT_WRITE
from fundfolio.schemas.valuation import (
    FundBreakdownResponse,
    FundHistoryDayResponse,
    FundHistoryResponse,
    FundValuationResponse,
    InvalidateHistoryResponse,
    MaterializeHistoryRequest,
    MaterializeHistoryResponse,
    PortfolioHistoryDayResponse,
    PortfolioHistoryPoint,
    PortfolioHistoryResponse,
    PortfolioSummaryResponse,
    PortfolioTotalsDetail,
)
from fundfolio.services.valuation import ValuationService
from fundfolio.services.valuation.service import HistorySeries
from fundfolio.services.valuation.types import (
    FundHistoryDay,
    FundValuation,
    PortfolioHistoryDay,
    PortfolioSummary,
    PortfolioTotals,
)

logger = logging.getLogger(__name__)

INTERVAL_PATTERN = r"^(daily|weekly|monthly)$"

# =============================================================================
# ROUTER SETUP
# =============================================================================

router = APIRouter(
    prefix="/portfolios",
    tags=["Valuation"],
)


# =============================================================================
# MAPPER FUNCTIONS (Internal Types -> Pydantic Schemas)
# =============================================================================

def _map_totals(totals: PortfolioTotals) -> PortfolioTotalsDetail:
    """Map internal PortfolioTotals to Pydantic schema."""
    return PortfolioTotalsDetail(**totals.as_dict())


def _map_summary(summary: PortfolioSummary) -> PortfolioSummaryResponse:
    """Map internal PortfolioSummary to Pydantic schema."""
    return PortfolioSummaryResponse(
        id=summary.portfolio_id,
        name=summary.name,
        description=summary.description,
        is_archived=summary.is_archived,
        exclude_from_overview=summary.exclude_from_overview,
        as_of=summary.as_of,
        totals=_map_totals(summary.totals),
        source=summary.source,
    )


def _map_fund(fund: FundValuation) -> FundValuationResponse:
    """Map internal FundValuation to Pydantic schema."""
    return FundValuationResponse.model_validate(fund)


def _map_history_day(day: PortfolioHistoryDay) -> PortfolioHistoryDayResponse:
    """Map internal PortfolioHistoryDay to Pydantic schema."""
    return PortfolioHistoryDayResponse(
        date=day.date,
        portfolios=[
            PortfolioHistoryPoint(
                id=summary.portfolio_id,
                name=summary.name,
                totals=_map_totals(summary.totals),
                source=summary.source,
            )
            for summary in day.portfolios
        ],
    )


def _map_history(series: HistorySeries) -> PortfolioHistoryResponse:
    """Iterate the lazy series once and map every day."""
    data = [_map_history_day(day) for day in series]
    return PortfolioHistoryResponse(
        start_date=series.start_date,
        end_date=series.end_date,
        interval=series.interval,
        data=data,
        total_points=len(data),
    )


def _map_fund_history_day(day: FundHistoryDay) -> FundHistoryDayResponse:
    return FundHistoryDayResponse(
        date=day.date,
        funds=[_map_fund(f) for f in day.funds],
    )


# =============================================================================
# ALL PORTFOLIOS
# =============================================================================

@router.get(
    "/summary",
    response_model=list[PortfolioSummaryResponse],
    summary="Get summaries of all active portfolios",
    response_description="Totals per portfolio, ordered by id"
)
def get_all_portfolio_summaries(
        as_of: date | None = Query(
            default=None,
            description="Valuation date (default: today)",
        ),
        db: Session = Depends(get_db),
        service: ValuationService = Depends(get_valuation_service),
) -> list[PortfolioSummaryResponse]:
    """
    Get totals of every active portfolio.

    Archived portfolios and portfolios marked **exclude_from_overview** are
    left out. Portfolios without transactions are listed with zero totals.
    """
    summaries = service.get_all_portfolio_summaries(db=db, as_of=as_of)
    return [_map_summary(s) for s in summaries]


@router.get(
    "/history",
    response_model=PortfolioHistoryResponse,
    summary="Get history of all active portfolios",
    response_description="Time series of portfolio totals"
)
def get_all_portfolio_history(
        start_date: date | None = Query(
            default=None,
            description="Start date (default: earliest transaction)"
        ),
        end_date: date | None = Query(
            default=None,
            description="End date (default: today)"
        ),
        interval: str = Query(
            default="daily",
            pattern=INTERVAL_PATTERN,
            description="Data interval: daily, weekly, monthly"
        ),
        db: Session = Depends(get_db),
        service: ValuationService = Depends(get_valuation_service),
) -> PortfolioHistoryResponse:
    """
    Get portfolio totals over time for every active portfolio.

    **Intervals:**
    - `daily`: Every calendar day
    - `weekly`: Every Friday, plus the end date
    - `monthly`: Last day of each month, plus the end date

    A date lists only portfolios whose first transaction is on or before it.
    Materialized snapshots are used where present; other dates are
    calculated on the fly.
    """
    series = service.get_portfolio_history(
        db=db,
        start_date=start_date,
        end_date=end_date,
        interval=interval,
    )
    return _map_history(series)


@router.post(
    "/history/materialize",
    response_model=MaterializeHistoryResponse,
    summary="Materialize history snapshots",
    response_description="Number of snapshots written"
)
@limiter.limit(RATE_LIMIT_MATERIALIZE)
def materialize_history(
        request: Request,  # Required for rate limiting
        materialize_request: MaterializeHistoryRequest = MaterializeHistoryRequest(),
        db: Session = Depends(get_db),
        service: ValuationService = Depends(get_valuation_service),
) -> MaterializeHistoryResponse:
    """
    Compute daily totals and store them as history snapshots.

    Existing snapshots in the range are replaced. Omit **portfolio_id** to
    materialize every portfolio.

    Raises **404** if portfolio_id does not exist and **500** if a ledger is
    inconsistent (nothing is written in that case).
    """
    written = service.materialize_history(
        db=db,
        portfolio_id=materialize_request.portfolio_id,
        start_date=materialize_request.start_date,
        end_date=materialize_request.end_date,
    )
    return MaterializeHistoryResponse(
        portfolio_id=materialize_request.portfolio_id,
        snapshots_written=written,
    )


# =============================================================================
# SINGLE PORTFOLIO
# =============================================================================

@router.get(
    "/{portfolio_id}/summary",
    response_model=PortfolioSummaryResponse,
    summary="Get portfolio summary",
    response_description="Portfolio totals as of a date"
)
def get_portfolio_summary(
        portfolio_id: int,
        as_of: date | None = Query(
            default=None,
            description="Valuation date (default: today)",
        ),
        db: Session = Depends(get_db),
        service: ValuationService = Depends(get_valuation_service),
) -> PortfolioSummaryResponse:
    """
    Get totals of one portfolio.

    Works for archived and excluded portfolios too. A portfolio without
    transactions returns zero totals.

    Raises **404** if the portfolio does not exist.
    """
    summary = service.get_portfolio_summary(db=db, portfolio_id=portfolio_id, as_of=as_of)
    return _map_summary(summary)


@router.get(
    "/{portfolio_id}/funds",
    response_model=FundBreakdownResponse,
    summary="Get portfolio fund breakdown",
    response_description="Valuation of each fund in the portfolio"
)
def get_portfolio_fund_breakdown(
        portfolio_id: int,
        as_of: date | None = Query(
            default=None,
            description="Valuation date (default: today)",
        ),
        db: Session = Depends(get_db),
        service: ValuationService = Depends(get_valuation_service),
) -> FundBreakdownResponse:
    """
    Get per-fund valuation of one portfolio.

    Each fund reports:
    - **total_shares**, **average_cost**, **total_cost**
    - **latest_price** / **price_date** (null when no price is known; value is then 0)
    - **unrealized_gain_loss**, **realized_gain_loss**, **total_gain_loss**
    - **total_dividends**, **total_fees**

    Raises **404** if the portfolio does not exist.
    """
    effective_date = as_of or date.today()
    funds = service.get_portfolio_fund_breakdown(db=db, portfolio_id=portfolio_id, as_of=effective_date)
    return FundBreakdownResponse(
        portfolio_id=portfolio_id,
        as_of=effective_date,
        funds=[_map_fund(f) for f in funds],
    )


@router.get(
    "/{portfolio_id}/history",
    response_model=PortfolioHistoryResponse,
    summary="Get portfolio history",
    response_description="Time series of portfolio totals"
)
def get_portfolio_history(
        portfolio_id: int,
        start_date: date | None = Query(
            default=None,
            description="Start date (default: first transaction)"
        ),
        end_date: date | None = Query(
            default=None,
            description="End date (default: today)"
        ),
        interval: str = Query(
            default="daily",
            pattern=INTERVAL_PATTERN,
            description="Data interval: daily, weekly, monthly"
        ),
        db: Session = Depends(get_db),
        service: ValuationService = Depends(get_valuation_service),
) -> PortfolioHistoryResponse:
    """
    Get one portfolio's totals over time, archived or not.

    **Performance:** Ledgers are batch loaded and replayed with rolling
    state, O(D + T) for D dates and T ledger entries.

    Raises **404** if the portfolio does not exist and **400** if
    start_date is after end_date.
    """
    series = service.get_portfolio_history(
        db=db,
        start_date=start_date,
        end_date=end_date,
        portfolio_id=portfolio_id,
        interval=interval,
    )
    return _map_history(series)


@router.get(
    "/{portfolio_id}/funds/history",
    response_model=FundHistoryResponse,
    summary="Get per-fund history",
    response_description="Time series of per-fund valuations"
)
def get_fund_history(
        portfolio_id: int,
        start_date: date | None = Query(
            default=None,
            description="Start date (default: first transaction)"
        ),
        end_date: date | None = Query(
            default=None,
            description="End date (default: today)"
        ),
        interval: str = Query(
            default="daily",
            pattern=INTERVAL_PATTERN,
            description="Data interval: daily, weekly, monthly"
        ),
        db: Session = Depends(get_db),
        service: ValuationService = Depends(get_valuation_service),
) -> FundHistoryResponse:
    """
    Get per-fund valuations over time.

    On each date only funds that have started trading are listed.

    Raises **404** if the portfolio does not exist.
    """
    history = service.get_fund_history(
        db=db,
        portfolio_id=portfolio_id,
        start_date=start_date,
        end_date=end_date,
        interval=interval,
    )
    return FundHistoryResponse(
        portfolio_id=portfolio_id,
        interval=interval,
        data=[_map_fund_history_day(day) for day in history],
        total_points=len(history),
    )


@router.delete(
    "/{portfolio_id}/history/snapshots",
    response_model=InvalidateHistoryResponse,
    summary="Invalidate history snapshots",
    response_description="Number of snapshots deleted"
)
@limiter.limit(RATE_LIMIT_WRITE)
def invalidate_history(
        request: Request,  # Required for rate limiting
        portfolio_id: int,
        from_date: date | None = Query(
            default=None,
            description="Delete snapshots on or after this date (default: all)"
        ),
        db: Session = Depends(get_db),
        service: ValuationService = Depends(get_valuation_service),
) -> InvalidateHistoryResponse:
    """
    Delete materialized snapshots after the portfolio's ledger changed.

    Affected dates are calculated on the fly until re-materialized.

    Raises **404** if the portfolio does not exist.
    """
    deleted = service.invalidate_history(db=db, portfolio_id=portfolio_id, from_date=from_date)
    return InvalidateHistoryResponse(
        portfolio_id=portfolio_id,
        from_date=from_date,
        snapshots_deleted=deleted,
    )
