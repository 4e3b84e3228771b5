# fundfolio/services/valuation/service.py
"""
Valuation Service - Main orchestrator for portfolio valuation.

This is the single entry point for all valuation operations:
- get_portfolio_summary(): Totals of one portfolio as of a date
- get_all_portfolio_summaries(): Totals of every active portfolio
- get_portfolio_fund_breakdown(): Per-fund valuation of one portfolio
- get_portfolio_history(): Time series of portfolio totals
- get_fund_history(): Time series of per-fund valuations
- materialize_history() / invalidate_history(): Snapshot maintenance

Design Principles:
- Stateless between calls: every call is a function of the store at call time
- Existence is checked explicitly (PortfolioNotFoundError), never inferred
  from empty results
- No HTTP Knowledge: Raises domain exceptions, not HTTPException
- One computation path (HistoryCalculator) feeds every operation and the
  snapshot materializer

"Active" portfolios are those neither archived nor excluded from overview.

Usage:
    from fundfolio.services.valuation import ValuationService

    service = ValuationService()

    summary = service.get_portfolio_summary(db, portfolio_id=1)

    for day in service.get_portfolio_history(db, start_date=date(2024, 1, 1)):
        ...
"""

from __future__ import annotations

import logging
from collections.abc import Iterator, Sequence
from datetime import date

from sqlalchemy import select, and_
from sqlalchemy.orm import Session

from fundfolio.config import settings
from fundfolio.models import Portfolio
from fundfolio.services.constants import HISTORY_INTERVALS
from fundfolio.services.exceptions import (
    DataIntegrityError,
    InvalidDateRangeError,
    InvalidIntervalError,
    PortfolioNotFoundError,
)
from fundfolio.services.valuation.history_calculator import HistoryCalculator
from fundfolio.services.valuation.ledger import LedgerReader
from fundfolio.services.valuation.snapshots import SnapshotRepository
from fundfolio.services.valuation.types import (
    FundHistoryDay,
    FundValuation,
    PortfolioHistoryDay,
    PortfolioLedger,
    PortfolioSummary,
    PortfolioTotals,
)
from fundfolio.utils.date_utils import daily_dates, generate_dates

logger = logging.getLogger(__name__)

SOURCE_SNAPSHOT = "snapshot"
SOURCE_CALCULATED = "calculated"


def _build_summary(
        ledger: PortfolioLedger,
        as_of: date,
        totals: PortfolioTotals,
        source: str,
) -> PortfolioSummary:
    return PortfolioSummary(
        portfolio_id=ledger.portfolio_id,
        name=ledger.name,
        description=ledger.description,
        is_archived=ledger.is_archived,
        exclude_from_overview=ledger.exclude_from_overview,
        as_of=as_of,
        totals=totals,
        source=source,
    )


# =============================================================================
# HISTORY SERIES
# =============================================================================

class HistorySeries:
    """
    Lazy, finite, restartable sequence of PortfolioHistoryDay.

    Ledgers and snapshots are loaded when the series is created; values are
    computed while iterating. Each iteration replays from scratch, so
    iterating twice yields equal results.

    For each date:
        - portfolios whose first transaction is after the date are left out
        - dates with no portfolio left are skipped
        - a portfolio's totals come from its snapshot for that date when one
          exists, otherwise they are calculated

    Attributes:
        start_date / end_date: Effective (clamped) range, inclusive
        interval: "daily", "weekly" or "monthly"
        dates: Candidate dates within the range
    """

    def __init__(
            self,
            start_date: date,
            end_date: date,
            interval: str,
            dates: list[date],
            ledgers: Sequence[PortfolioLedger],
            snapshots: dict[tuple[int, date], PortfolioTotals],
            history_calc: HistoryCalculator,
    ) -> None:
        self.start_date = start_date
        self.end_date = end_date
        self.interval = interval
        self.dates = dates
        self._ledgers = list(ledgers)
        self._snapshots = snapshots
        self._history_calc = history_calc

    def __iter__(self) -> Iterator[PortfolioHistoryDay]:
        replays = [
            (ledger, ledger.first_transaction_date, self._history_calc.replay(ledger))
            for ledger in self._ledgers
            if ledger.first_transaction_date is not None
        ]

        snapshot_hits = 0
        calculated = 0
        for target_date in self.dates:
            summaries = []
            for ledger, first_date, replay in replays:
                if first_date > target_date:
                    continue

                # Advance even on a snapshot hit so later misses stay correct
                replay.advance(target_date)

                totals = self._snapshots.get((ledger.portfolio_id, target_date))
                if totals is not None:
                    snapshot_hits += 1
                    summaries.append(_build_summary(ledger, target_date, totals, SOURCE_SNAPSHOT))
                else:
                    calculated += 1
                    totals = replay.totals()
                    summaries.append(_build_summary(ledger, target_date, totals, SOURCE_CALCULATED))

            if summaries:
                yield PortfolioHistoryDay(date=target_date, portfolios=summaries)

        logger.debug(
            f"History {self.start_date}..{self.end_date} ({self.interval}): "
            f"{snapshot_hits} snapshot hits, {calculated} calculated"
        )


# =============================================================================
# SERVICE
# =============================================================================

class ValuationService:
    """
    Main service for portfolio valuation operations.

    Attributes:
        _ledger_reader: Batch loader of portfolio ledgers
        _history_calc: The canonical per-date calculation
        _snapshot_repo: Materialized snapshot storage
        _use_snapshots: Consult snapshots when reading history and summaries
    """

    def __init__(
            self,
            ledger_reader: LedgerReader | None = None,
            history_calc: HistoryCalculator | None = None,
            snapshot_repo: SnapshotRepository | None = None,
            use_snapshots: bool | None = None,
    ) -> None:
        self._ledger_reader = ledger_reader or LedgerReader()
        self._history_calc = history_calc or HistoryCalculator()
        self._snapshot_repo = snapshot_repo or SnapshotRepository()
        self._use_snapshots = settings.snapshots_enabled if use_snapshots is None else use_snapshots

        logger.info(f"ValuationService initialized (snapshots={'on' if self._use_snapshots else 'off'})")

    # =========================================================================
    # POINT IN TIME
    # =========================================================================

    def get_portfolio_summary(
            self,
            db: Session,
            portfolio_id: int,
            as_of: date | None = None,
    ) -> PortfolioSummary:
        """
        Totals of one portfolio as of a date (default: today).

        A portfolio without funds, transactions or prices gets all-zero
        totals; archived and excluded portfolios are still served.

        Raises:
            PortfolioNotFoundError: If the portfolio does not exist
            DataIntegrityError: If its ledger cannot be replayed
        """
        as_of = as_of or date.today()
        portfolio = self._get_portfolio(db, portfolio_id)

        logger.info(f"Calculating summary for portfolio {portfolio_id} as of {as_of}")
        return self._summaries_on(db, [portfolio], as_of)[0]

    def get_all_portfolio_summaries(
            self,
            db: Session,
            as_of: date | None = None,
    ) -> list[PortfolioSummary]:
        """
        Totals of every active portfolio, ordered by id.

        Archived and exclude-from-overview portfolios are left out; empty
        portfolios are included with zero totals.
        """
        as_of = as_of or date.today()
        portfolios = self._active_portfolios(db)

        logger.info(f"Calculating summaries for {len(portfolios)} active portfolio(s) as of {as_of}")
        return self._summaries_on(db, portfolios, as_of)

    def get_portfolio_fund_breakdown(
            self,
            db: Session,
            portfolio_id: int,
            as_of: date | None = None,
    ) -> list[FundValuation]:
        """
        Per-fund valuation of one portfolio, one entry per held fund.

        Funds linked to the portfolio but without transactions appear with
        zero figures.

        Raises:
            PortfolioNotFoundError: If the portfolio does not exist
            DataIntegrityError: If a fund ledger cannot be replayed
        """
        as_of = as_of or date.today()
        portfolio = self._get_portfolio(db, portfolio_id)

        logger.info(f"Calculating fund breakdown for portfolio {portfolio_id} as of {as_of}")
        ledger = self._ledger_reader.load_one(db, portfolio, as_of)
        assembler = self._history_calc.assembler

        return [
            assembler.assemble_fund(metrics)
            for metrics in self._history_calc.calculate_point(ledger, as_of)
        ]

    # =========================================================================
    # HISTORY
    # =========================================================================

    def get_portfolio_history(
            self,
            db: Session,
            start_date: date | None = None,
            end_date: date | None = None,
            portfolio_id: int | None = None,
            interval: str = "daily",
    ) -> HistorySeries:
        """
        Time series of portfolio totals.

        Scope: the given portfolio, or every active portfolio when
        portfolio_id is None.

        Range:
            - end_date defaults to today and is capped at today
            - start_date defaults to the scope's earliest transaction and is
              raised to it when earlier
            - a range that ends up empty yields an empty series

        Raises:
            InvalidIntervalError: If interval is not daily, weekly or monthly
            InvalidDateRangeError: If start_date is after end_date as given
            PortfolioNotFoundError: If portfolio_id does not exist
        """
        self._validate_request(start_date, end_date, interval)

        if portfolio_id is not None:
            portfolios = [self._get_portfolio(db, portfolio_id)]
        else:
            portfolios = self._active_portfolios(db)

        end = self._effective_end(end_date)
        ledgers = self._ledger_reader.load(db, portfolios, end)
        start, end, dates = self._resolve_range(ledgers.values(), start_date, end, interval)

        snapshots = self._fetch_snapshots(db, list(ledgers), start, end) if dates else {}

        logger.info(
            f"Building history for {len(ledgers)} portfolio(s) "
            f"{start}..{end} ({interval}, {len(dates)} dates, {len(snapshots)} snapshots)"
        )
        return HistorySeries(
            start_date=start,
            end_date=end,
            interval=interval,
            dates=dates,
            ledgers=list(ledgers.values()),
            snapshots=snapshots,
            history_calc=self._history_calc,
        )

    def get_fund_history(
            self,
            db: Session,
            portfolio_id: int,
            start_date: date | None = None,
            end_date: date | None = None,
            interval: str = "daily",
    ) -> list[FundHistoryDay]:
        """
        Time series of per-fund valuations for one portfolio.

        Always calculated (snapshots hold portfolio totals only). Same range
        rules as get_portfolio_history(); on each date only funds that have
        started trading are listed.

        Raises:
            InvalidIntervalError, InvalidDateRangeError, PortfolioNotFoundError
        """
        self._validate_request(start_date, end_date, interval)
        portfolio = self._get_portfolio(db, portfolio_id)

        end = self._effective_end(end_date)
        ledger = self._ledger_reader.load_one(db, portfolio, end)
        start, end, dates = self._resolve_range([ledger], start_date, end, interval)

        logger.info(f"Building fund history for portfolio {portfolio_id} {start}..{end} ({interval})")

        assembler = self._history_calc.assembler
        history = []
        for point_date, metrics in self._history_calc.iter_points(ledger, dates, started_only=True):
            if metrics:
                history.append(
                    FundHistoryDay(
                        date=point_date,
                        funds=[assembler.assemble_fund(m) for m in metrics],
                    )
                )
        return history

    # =========================================================================
    # SNAPSHOT MAINTENANCE
    # =========================================================================

    def materialize_history(
            self,
            db: Session,
            portfolio_id: int | None = None,
            start_date: date | None = None,
            end_date: date | None = None,
    ) -> int:
        """
        Compute daily totals and store them as snapshots.

        Existing snapshots in the materialized range are replaced. Without
        portfolio_id every portfolio (archived ones included) is processed.
        Commits on success, rolls back on failure.

        Returns:
            Number of snapshot rows written

        Raises:
            InvalidDateRangeError: If start_date is after end_date
            PortfolioNotFoundError: If portfolio_id does not exist
            DataIntegrityError: If a ledger cannot be replayed (nothing is written)
        """
        self._validate_request(start_date, end_date, "daily")

        if portfolio_id is not None:
            portfolios = [self._get_portfolio(db, portfolio_id)]
        else:
            portfolios = list(db.scalars(select(Portfolio).order_by(Portfolio.id)))

        end = self._effective_end(end_date)
        ledgers = self._ledger_reader.load(db, portfolios, end)

        written = 0
        try:
            for ledger in ledgers.values():
                first_date = ledger.first_transaction_date
                if first_date is None:
                    continue
                start = max(start_date or first_date, first_date)
                if start > end:
                    continue

                points = self._history_calc.iter_totals(ledger, daily_dates(start, end))
                count = self._snapshot_repo.replace(db, ledger.portfolio_id, start, end, points)
                written += count
                logger.debug(f"Materialized {count} snapshots for portfolio {ledger.portfolio_id}")

            db.commit()
        except DataIntegrityError:
            db.rollback()
            raise

        logger.info(f"Materialized {written} history snapshot(s) for {len(ledgers)} portfolio(s)")
        return written

    def invalidate_history(
            self,
            db: Session,
            portfolio_id: int,
            from_date: date | None = None,
    ) -> int:
        """
        Delete a portfolio's snapshots on or after from_date (all if None).

        Writers that change a ledger call this with the earliest affected
        date so stale snapshots are never served.

        Returns:
            Number of snapshot rows deleted

        Raises:
            PortfolioNotFoundError: If the portfolio does not exist
        """
        self._get_portfolio(db, portfolio_id)

        deleted = self._snapshot_repo.invalidate(db, portfolio_id, from_date)
        db.commit()

        logger.info(
            f"Invalidated {deleted} snapshot(s) for portfolio {portfolio_id}"
            + (f" from {from_date}" if from_date else "")
        )
        return deleted

    # =========================================================================
    # PRIVATE HELPERS
    # =========================================================================

    def _get_portfolio(self, db: Session, portfolio_id: int) -> Portfolio:
        portfolio = db.get(Portfolio, portfolio_id)
        if portfolio is None:
            raise PortfolioNotFoundError(portfolio_id)
        return portfolio

    def _active_portfolios(self, db: Session) -> list[Portfolio]:
        query = (
            select(Portfolio)
            .where(
                and_(
                    Portfolio.is_archived.is_(False),
                    Portfolio.exclude_from_overview.is_(False),
                )
            )
            .order_by(Portfolio.id)
        )
        return list(db.scalars(query))

    def _summaries_on(
            self,
            db: Session,
            portfolios: Sequence[Portfolio],
            as_of: date,
    ) -> list[PortfolioSummary]:
        """Snapshot-or-calculate totals of each portfolio on one date."""
        ledgers = self._ledger_reader.load(db, portfolios, as_of)
        snapshots = self._fetch_snapshots(db, list(ledgers), as_of, as_of)

        summaries = []
        for ledger in ledgers.values():
            totals = snapshots.get((ledger.portfolio_id, as_of))
            if totals is not None:
                summaries.append(_build_summary(ledger, as_of, totals, SOURCE_SNAPSHOT))
                continue

            totals = self._history_calc.calculate_totals(ledger, as_of)
            summaries.append(_build_summary(ledger, as_of, totals, SOURCE_CALCULATED))
        return summaries

    def _fetch_snapshots(
            self,
            db: Session,
            portfolio_ids: list[int],
            start: date,
            end: date,
    ) -> dict[tuple[int, date], PortfolioTotals]:
        if not self._use_snapshots:
            return {}
        return self._snapshot_repo.fetch(db, portfolio_ids, start, end)

    @staticmethod
    def _validate_request(start_date: date | None, end_date: date | None, interval: str) -> None:
        if interval not in HISTORY_INTERVALS:
            raise InvalidIntervalError(interval)

        effective_end = end_date or date.today()
        if start_date is not None and start_date > effective_end:
            raise InvalidDateRangeError(start_date, effective_end)

    @staticmethod
    def _effective_end(end_date: date | None) -> date:
        today = date.today()
        return min(end_date, today) if end_date else today

    @staticmethod
    def _resolve_range(
            ledgers,
            start_date: date | None,
            end: date,
            interval: str,
    ) -> tuple[date, date, list[date]]:
        """
        Clamp the start to the earliest transaction of the ledgers and sample.

        Returns:
            (start, end, dates); dates is empty when nothing was ever traded
            or the clamped start falls after end
        """
        first_dates = [
            ledger.first_transaction_date
            for ledger in ledgers
            if ledger.first_transaction_date is not None
        ]
        if not first_dates:
            return start_date or end, end, []

        earliest = min(first_dates)
        start = max(start_date or earliest, earliest)
        return start, end, generate_dates(start, end, interval)
