# fundfolio/services/valuation/snapshots.py
"""
Persistence of materialized portfolio history snapshots.

A snapshot row is a cache of PortfolioTotals for (portfolio, date). Rows are
only ever written from HistoryCalculator output, and are deleted (not
patched) when the underlying ledger changes.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence
from datetime import date, datetime, timezone

from sqlalchemy import delete, select, and_
from sqlalchemy.orm import Session

from fundfolio.models import PortfolioHistorySnapshot
from fundfolio.services.valuation.types import PortfolioTotals

logger = logging.getLogger(__name__)


class SnapshotRepository:
    """Reads, replaces and invalidates snapshot rows."""

    def fetch(
            self,
            db: Session,
            portfolio_ids: Sequence[int],
            start_date: date,
            end_date: date,
    ) -> dict[tuple[int, date], PortfolioTotals]:
        """
        Load snapshots for the portfolios within [start_date, end_date].

        Returns:
            PortfolioTotals keyed by (portfolio_id, date); missing keys mean
            "not materialized"
        """
        if not portfolio_ids or start_date > end_date:
            return {}

        query = (
            select(PortfolioHistorySnapshot)
            .where(
                and_(
                    PortfolioHistorySnapshot.portfolio_id.in_(list(portfolio_ids)),
                    PortfolioHistorySnapshot.date >= start_date,
                    PortfolioHistorySnapshot.date <= end_date,
                )
            )
        )
        snapshots = {
            (row.portfolio_id, row.date): self._to_totals(row)
            for row in db.scalars(query)
        }
        logger.debug(
            f"Fetched {len(snapshots)} snapshot(s) for {len(portfolio_ids)} portfolio(s) "
            f"{start_date}..{end_date}"
        )
        return snapshots

    def replace(
            self,
            db: Session,
            portfolio_id: int,
            start_date: date,
            end_date: date,
            points: Iterable[tuple[date, PortfolioTotals]],
    ) -> int:
        """
        Replace every snapshot of the portfolio within [start_date, end_date].

        Flushes but does not commit; the caller owns the transaction.

        Returns:
            Number of rows written
        """
        db.execute(
            delete(PortfolioHistorySnapshot).where(
                and_(
                    PortfolioHistorySnapshot.portfolio_id == portfolio_id,
                    PortfolioHistorySnapshot.date >= start_date,
                    PortfolioHistorySnapshot.date <= end_date,
                )
            )
        )

        calculated_at = datetime.now(timezone.utc)
        rows = [
            PortfolioHistorySnapshot(
                portfolio_id=portfolio_id,
                date=point_date,
                calculated_at=calculated_at,
                **totals.as_dict(),
            )
            for point_date, totals in points
        ]
        db.add_all(rows)
        db.flush()
        return len(rows)

    def invalidate(self, db: Session, portfolio_id: int, from_date: date | None = None) -> int:
        """
        Delete snapshots of the portfolio on or after from_date (all if None).

        Flushes but does not commit.

        Returns:
            Number of rows deleted
        """
        stmt = delete(PortfolioHistorySnapshot).where(PortfolioHistorySnapshot.portfolio_id == portfolio_id)
        if from_date is not None:
            stmt = stmt.where(PortfolioHistorySnapshot.date >= from_date)

        result = db.execute(stmt)
        db.flush()
        return result.rowcount or 0

    @staticmethod
    def _to_totals(row: PortfolioHistorySnapshot) -> PortfolioTotals:
        return PortfolioTotals(**{name: getattr(row, name) for name in PortfolioTotals.field_names()})
