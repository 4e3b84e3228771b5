# fundfolio/services/valuation/history_calculator.py
"""
History Calculator - the one place fund figures are computed.

Point-in-time summaries, the fund breakdown, on-the-fly history and the
snapshot materializer all get their numbers from PortfolioReplay, so a
materialized snapshot can never disagree with a fresh calculation.

Rolling State pattern:
    Dates are visited in ascending order. For each date, only the ledger
    entries that became effective since the previous date are applied
    (transactions, realized gains, dividends), so a series of D dates over
    T ledger entries costs O(D + T) instead of O(D × T).

    Advancing is cheap (cursor moves); computing the figures for a date
    costs one price lookup per fund. Callers that already hold a snapshot
    for a date advance without computing.

Usage:
    calculator = HistoryCalculator()

    for as_of, funds in calculator.iter_points(ledger, dates):
        ...                     # per-fund figures

    for as_of, totals in calculator.iter_totals(ledger, dates):
        ...                     # portfolio totals
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Iterator
from datetime import date
from decimal import Decimal

from fundfolio.services.constants import ZERO
from fundfolio.services.valuation.calculators import (
    CostBasisCalculator,
    DividendCalculator,
    PriceResolver,
    RealizedGainCalculator,
    ValuationAssembler,
)
from fundfolio.services.valuation.types import (
    FundLedger,
    FundMetrics,
    FundPosition,
    PortfolioLedger,
    PortfolioTotals,
    RealizedGainTotals,
)

logger = logging.getLogger(__name__)


class _FundCursor:
    """
    Rolling state of one fund ledger.

    Holds the position, realized totals and dividend sum as of the last
    date the cursor was advanced to.
    """

    def __init__(self, ledger: FundLedger) -> None:
        self.ledger = ledger
        self.position = FundPosition()
        self.realized = RealizedGainTotals()
        self.dividends: Decimal = ZERO
        self.as_of: date | None = None
        self._txn_index = 0
        self._gain_index = 0
        self._dividend_index = 0

    def advance(
            self,
            target_date: date,
            cost_calc: CostBasisCalculator,
            realized_calc: RealizedGainCalculator,
            dividend_calc: DividendCalculator,
    ) -> None:
        if self.as_of is not None and target_date < self.as_of:
            raise ValueError(
                f"Cannot move fund cursor backwards from {self.as_of} to {target_date}"
            )
        ledger = self.ledger

        transactions = ledger.transactions
        while self._txn_index < len(transactions) and transactions[self._txn_index].date <= target_date:
            cost_calc.apply_transaction(
                self.position, transactions[self._txn_index], ledger.portfolio_fund_id
            )
            self._txn_index += 1

        gains = ledger.realized_gains
        start = self._gain_index
        while self._gain_index < len(gains) and gains[self._gain_index].transaction_date <= target_date:
            self._gain_index += 1
        if self._gain_index > start:
            self.realized = realized_calc.accumulate(self.realized, gains[start:self._gain_index])

        dividends = ledger.dividends
        start = self._dividend_index
        while self._dividend_index < len(dividends) and dividends[self._dividend_index].record_date <= target_date:
            self._dividend_index += 1
        if self._dividend_index > start:
            self.dividends += dividend_calc.calculate(dividends[start:self._dividend_index])

        self.as_of = target_date


class PortfolioReplay:
    """
    Replays one PortfolioLedger forward through time.

    Call advance(d) with non-decreasing dates, then fund_metrics() for the
    figures as of the last advanced date.

    Realized gains of funds the portfolio no longer links to are tracked
    beside the fund cursors and only show up in totals().
    """

    def __init__(
            self,
            ledger: PortfolioLedger,
            cost_calc: CostBasisCalculator,
            realized_calc: RealizedGainCalculator,
            dividend_calc: DividendCalculator,
            price_resolver: PriceResolver,
            assembler: ValuationAssembler,
    ) -> None:
        self.ledger = ledger
        self._cost_calc = cost_calc
        self._realized_calc = realized_calc
        self._dividend_calc = dividend_calc
        self._price_resolver = price_resolver
        self._assembler = assembler
        self._cursors = [_FundCursor(fund) for fund in ledger.funds]
        self.unlinked_realized = RealizedGainTotals()
        self._unlinked_index = 0
        self.as_of: date | None = None

    def advance(self, target_date: date) -> None:
        """
        Apply every ledger entry effective on or before target_date.

        Raises:
            DataIntegrityError: If a transaction cannot be replayed
        """
        for cursor in self._cursors:
            cursor.advance(target_date, self._cost_calc, self._realized_calc, self._dividend_calc)

        gains = self.ledger.realized_gains
        start = self._unlinked_index
        while self._unlinked_index < len(gains) and gains[self._unlinked_index].transaction_date <= target_date:
            self._unlinked_index += 1
        if self._unlinked_index > start:
            self.unlinked_realized = self._realized_calc.accumulate(
                self.unlinked_realized, gains[start:self._unlinked_index]
            )

        self.as_of = target_date

    def fund_metrics(self, started_only: bool = False) -> list[FundMetrics]:
        """
        Raw figures of every fund as of the last advanced date.

        Args:
            started_only: Skip funds whose first transaction is still in the
                          future (used for per-fund history)
        """
        if self.as_of is None:
            raise ValueError("advance() must be called before fund_metrics()")

        metrics = []
        for cursor in self._cursors:
            ledger = cursor.ledger
            if started_only and (
                    ledger.first_transaction_date is None or ledger.first_transaction_date > self.as_of
            ):
                continue

            price = self._price_resolver.resolve(ledger.price_dates, ledger.prices, self.as_of)
            metrics.append(
                self._assembler.fund_metrics(
                    portfolio_fund_id=ledger.portfolio_fund_id,
                    fund_id=ledger.fund_id,
                    fund_name=ledger.fund_name,
                    as_of=self.as_of,
                    position=cursor.position,
                    price=price,
                    realized=cursor.realized,
                    dividends=cursor.dividends,
                    isin=ledger.isin,
                    symbol=ledger.symbol,
                    currency=ledger.currency,
                )
            )
        return metrics

    def totals(self) -> PortfolioTotals:
        """Rounded portfolio totals as of the last advanced date."""
        return self._assembler.roll_up(self.fund_metrics(), self.unlinked_realized)


class HistoryCalculator:
    """
    Produces per-date fund figures for a portfolio ledger.

    Attributes:
        _cost_calc: Calculator for shares and cost basis
        _realized_calc: Calculator for realized gains
        _dividend_calc: Calculator for dividend cash
        _price_resolver: As-of price lookup
        _assembler: Builds FundMetrics and roll-ups
    """

    def __init__(
            self,
            cost_calc: CostBasisCalculator | None = None,
            realized_calc: RealizedGainCalculator | None = None,
            dividend_calc: DividendCalculator | None = None,
            price_resolver: PriceResolver | None = None,
            assembler: ValuationAssembler | None = None,
    ) -> None:
        self._cost_calc = cost_calc or CostBasisCalculator()
        self._realized_calc = realized_calc or RealizedGainCalculator()
        self._dividend_calc = dividend_calc or DividendCalculator()
        self._price_resolver = price_resolver or PriceResolver()
        self._assembler = assembler or ValuationAssembler()

    @property
    def assembler(self) -> ValuationAssembler:
        return self._assembler

    def replay(self, ledger: PortfolioLedger) -> PortfolioReplay:
        """Fresh replay positioned before the first ledger entry."""
        return PortfolioReplay(
            ledger=ledger,
            cost_calc=self._cost_calc,
            realized_calc=self._realized_calc,
            dividend_calc=self._dividend_calc,
            price_resolver=self._price_resolver,
            assembler=self._assembler,
        )

    def iter_points(
            self,
            ledger: PortfolioLedger,
            dates: Iterable[date],
            started_only: bool = False,
    ) -> Iterator[tuple[date, list[FundMetrics]]]:
        """
        Yield (date, fund figures) for each date, in ascending order.

        Duplicate dates are collapsed. Generator: nothing is computed until
        iterated, and each call starts a fresh replay.
        """
        replay = self.replay(ledger)
        for target_date in sorted(set(dates)):
            replay.advance(target_date)
            yield target_date, replay.fund_metrics(started_only=started_only)

    def calculate_point(self, ledger: PortfolioLedger, as_of: date) -> list[FundMetrics]:
        """Fund figures for a single date."""
        _, metrics = next(self.iter_points(ledger, [as_of]))
        return metrics

    def iter_totals(
            self,
            ledger: PortfolioLedger,
            dates: Iterable[date],
    ) -> Iterator[tuple[date, PortfolioTotals]]:
        """
        Yield (date, portfolio totals) for each date, in ascending order.

        Same replay as iter_points(), plus realized gains of funds the
        portfolio no longer links to.
        """
        replay = self.replay(ledger)
        for target_date in sorted(set(dates)):
            replay.advance(target_date)
            yield target_date, replay.totals()

    def calculate_totals(self, ledger: PortfolioLedger, as_of: date) -> PortfolioTotals:
        """Portfolio totals for a single date."""
        _, totals = next(self.iter_totals(ledger, [as_of]))
        return totals
