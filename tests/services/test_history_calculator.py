# tests/services/test_history_calculator.py
"""
Unit tests for HistoryCalculator and PortfolioReplay.

The rolling-state replay must give, for every date, exactly what a
from-scratch calculation as of that date gives. These tests build ledgers
in memory; no database is involved.
"""

from datetime import date, timedelta
from decimal import Decimal

import pytest

from fundfolio.models import TransactionType
from fundfolio.services.exceptions import DataIntegrityError
from fundfolio.services.valuation.calculators import (
    CostBasisCalculator,
    RealizedGainCalculator,
    ValuationAssembler,
)
from fundfolio.services.valuation.history_calculator import HistoryCalculator
from fundfolio.services.valuation.types import (
    DividendRecord,
    FundLedger,
    PortfolioLedger,
    RealizedGainRecord,
    TransactionRecord,
)


# =============================================================================
# FIXTURES
# =============================================================================

@pytest.fixture
def ledger() -> PortfolioLedger:
    """
    Two funds:
        Fund A: buy 100 @ 10 on Jan 2, sell 30 @ 15 on Feb 1, dividend Mar 1
        Fund B: buy 50 @ 20 on Mar 15, no prices at all
    """
    fund_a = FundLedger(
        portfolio_fund_id=1,
        fund_id=10,
        fund_name="Fund A",
        transactions=[
            TransactionRecord(1, date(2024, 1, 2), TransactionType.BUY, Decimal("100"), Decimal("10")),
            TransactionRecord(2, date(2024, 2, 1), TransactionType.SELL, Decimal("30"), Decimal("15")),
        ],
        price_dates=[date(2024, 1, 2), date(2024, 1, 31), date(2024, 3, 1)],
        prices=[Decimal("10"), Decimal("14"), Decimal("12")],
        dividends=[DividendRecord(1, date(2024, 3, 1), Decimal("70"), Decimal("0.50"))],
        realized_gains=[
            RealizedGainRecord(1, date(2024, 2, 1), Decimal("30"), Decimal("300"), Decimal("450")),
        ],
    )
    fund_b = FundLedger(
        portfolio_fund_id=2,
        fund_id=20,
        fund_name="Fund B",
        transactions=[
            TransactionRecord(3, date(2024, 3, 15), TransactionType.BUY, Decimal("50"), Decimal("20")),
        ],
    )
    return PortfolioLedger(portfolio_id=1, name="Test", funds=[fund_a, fund_b])


@pytest.fixture
def calculator() -> HistoryCalculator:
    return HistoryCalculator()


# =============================================================================
# POINT CALCULATION TESTS
# =============================================================================

class TestCalculatePoint:
    """Tests for single-date calculation."""

    def test_before_any_transaction(self, calculator, ledger):
        """Before the first transaction every figure is zero."""
        totals = calculator.assembler.roll_up(calculator.calculate_point(ledger, date(2024, 1, 1)))

        assert all(v == Decimal("0") for v in totals.as_dict().values())

    def test_after_sell(self, calculator, ledger):
        """On Feb 1 the sell and its realized gain are both applied."""
        totals = calculator.assembler.roll_up(calculator.calculate_point(ledger, date(2024, 2, 1)))

        assert totals.total_cost == Decimal("700")
        assert totals.total_value == Decimal("980")  # 70 × 14 (Jan 31 price)
        assert totals.total_realized_gain_loss == Decimal("150")
        assert totals.total_unrealized_gain_loss == Decimal("280")
        assert totals.total_gain_loss == Decimal("430")

    def test_fund_without_price_contributes_cost_only(self, calculator, ledger):
        """Fund B has no price: value 0, cost counted."""
        funds = calculator.calculate_point(ledger, date(2024, 3, 31))
        fund_b = next(m for m in funds if m.fund_id == 20)

        assert fund_b.value == Decimal("0")
        assert fund_b.cost == Decimal("1000")
        assert fund_b.price is None

    def test_dividend_cash_does_not_touch_cost(self, calculator, ledger):
        """Dividend cash shows up in dividends only."""
        funds = calculator.calculate_point(ledger, date(2024, 3, 1))
        fund_a = next(m for m in funds if m.fund_id == 10)

        assert fund_a.dividends == Decimal("35")
        assert fund_a.cost == Decimal("700")
        assert fund_a.shares == Decimal("70")


# =============================================================================
# ROLLING STATE TESTS
# =============================================================================

class TestIterPoints:
    """Tests for the rolling-state series."""

    def test_rolling_matches_point_calculation(self, calculator, ledger):
        """Every date of a daily replay equals a from-scratch calculation."""
        assembler = ValuationAssembler()
        dates = [date(2024, 1, 1) + timedelta(days=i) for i in range(100)]

        for as_of, metrics in calculator.iter_points(ledger, dates):
            expected = assembler.roll_up(calculator.calculate_point(ledger, as_of))
            assert assembler.roll_up(metrics) == expected, as_of

    def test_dates_are_sorted_and_deduplicated(self, calculator, ledger):
        """Unordered input with duplicates yields each date once, ascending."""
        dates = [date(2024, 3, 1), date(2024, 1, 5), date(2024, 3, 1)]

        result = [d for d, _ in calculator.iter_points(ledger, dates)]

        assert result == [date(2024, 1, 5), date(2024, 3, 1)]

    def test_series_is_restartable(self, calculator, ledger):
        """Two calls over the same ledger give identical results."""
        dates = [date(2024, 1, 31), date(2024, 2, 29), date(2024, 3, 31)]

        first = list(calculator.iter_points(ledger, dates))
        second = list(calculator.iter_points(ledger, dates))

        assert first == second

    def test_started_only_skips_future_funds(self, calculator, ledger):
        """With started_only, Fund B is absent before its first buy."""
        points = dict(calculator.iter_points(
            ledger, [date(2024, 3, 14), date(2024, 3, 15)], started_only=True
        ))

        assert [m.fund_id for m in points[date(2024, 3, 14)]] == [10]
        assert [m.fund_id for m in points[date(2024, 3, 15)]] == [10, 20]

    def test_integrity_error_propagates(self, calculator):
        """An oversell in the ledger surfaces as DataIntegrityError."""
        bad = PortfolioLedger(
            portfolio_id=1,
            name="Bad",
            funds=[
                FundLedger(
                    portfolio_fund_id=7,
                    fund_id=1,
                    fund_name="F",
                    transactions=[
                        TransactionRecord(1, date(2024, 1, 1), TransactionType.BUY, Decimal("1"), Decimal("1")),
                        TransactionRecord(2, date(2024, 1, 2), TransactionType.SELL, Decimal("2"), Decimal("1")),
                    ],
                )
            ],
        )

        with pytest.raises(DataIntegrityError):
            list(calculator.iter_points(bad, [date(2024, 1, 1), date(2024, 1, 2)]))


class TestPortfolioReplay:
    """Tests for PortfolioReplay guards."""

    def test_cannot_move_backwards(self, calculator, ledger):
        """Advancing to an earlier date is a programming error."""
        replay = calculator.replay(ledger)
        replay.advance(date(2024, 2, 1))

        with pytest.raises(ValueError):
            replay.advance(date(2024, 1, 1))

    def test_metrics_require_advance(self, calculator, ledger):
        """fund_metrics() before advance() is rejected."""
        with pytest.raises(ValueError):
            calculator.replay(ledger).fund_metrics()


# =============================================================================
# PORTFOLIO TOTALS TESTS
# =============================================================================

class TestPortfolioTotals:
    """Tests for iter_totals() / calculate_totals()."""

    def test_totals_match_fund_roll_up(self, calculator, ledger):
        """Without portfolio-level gains, totals are the roll-up of the funds."""
        as_of = date(2024, 3, 31)

        totals = calculator.calculate_totals(ledger, as_of)

        assert totals == calculator.assembler.roll_up(calculator.calculate_point(ledger, as_of))

    def test_unlinked_gains_counted_from_their_date(self, calculator, ledger):
        """Gains of a removed holding join the totals on their sell date."""
        ledger.realized_gains = [
            RealizedGainRecord(9, date(2024, 2, 15), Decimal("10"), Decimal("100"), Decimal("40")),
        ]
        dates = [date(2024, 2, 14), date(2024, 2, 15)]

        points = dict(calculator.iter_totals(ledger, dates))

        assert points[date(2024, 2, 14)].total_realized_gain_loss == Decimal("150")
        assert points[date(2024, 2, 15)].total_realized_gain_loss == Decimal("90")
        assert points[date(2024, 2, 15)].total_sale_proceeds == Decimal("490")

    def test_unlinked_gains_not_in_fund_metrics(self, calculator, ledger):
        ledger.realized_gains = [
            RealizedGainRecord(9, date(2024, 2, 15), Decimal("10"), Decimal("100"), Decimal("40")),
        ]

        funds = calculator.calculate_point(ledger, date(2024, 3, 31))

        assert sum(m.realized.realized_gain_loss for m in funds) == Decimal("150")

    def test_ledger_with_only_unlinked_gains(self, calculator):
        """A portfolio that holds nothing any more still reports its gains."""
        ledger = PortfolioLedger(
            portfolio_id=2,
            name="Closed",
            realized_gains=[
                RealizedGainRecord(1, date(2024, 1, 10), Decimal("5"), Decimal("50"), Decimal("80")),
            ],
        )

        totals = calculator.calculate_totals(ledger, date(2024, 1, 31))

        assert ledger.first_transaction_date == date(2024, 1, 10)
        assert totals.total_realized_gain_loss == Decimal("30")
        assert totals.total_value == Decimal("0")


# =============================================================================
# WRAPPER CONSISTENCY TESTS
# =============================================================================

class TestWholeListCalculators:
    """The one-shot calculate() helpers agree with the rolling replay."""

    def test_cost_basis_matches_replay(self, calculator, ledger):
        cost_calc = CostBasisCalculator()
        fund_a = ledger.funds[0]

        for as_of in (date(2024, 1, 1), date(2024, 1, 2), date(2024, 2, 1), date(2024, 3, 31)):
            position = cost_calc.calculate(fund_a.transactions, as_of=as_of, portfolio_fund_id=1)
            metrics = next(m for m in calculator.calculate_point(ledger, as_of) if m.fund_id == 10)

            assert (position.shares, position.cost, position.fees) == (
                metrics.shares, metrics.cost, metrics.fees
            ), as_of

    def test_realized_gains_match_replay(self, calculator, ledger):
        realized_calc = RealizedGainCalculator()
        fund_a = ledger.funds[0]

        for as_of in (date(2024, 1, 31), date(2024, 2, 1)):
            totals = realized_calc.calculate(fund_a.realized_gains, as_of=as_of)
            metrics = next(m for m in calculator.calculate_point(ledger, as_of) if m.fund_id == 10)

            assert totals == metrics.realized, as_of
