# fundfolio/services/valuation/calculators.py
"""
Point-in-time valuation calculators.

Each calculator does one thing:
- PriceResolver: Latest price on or before a date
- CostBasisCalculator: Replays transactions into shares / cost / fees
- RealizedGainCalculator: Sums recorded realized gain/loss rows
- DividendCalculator: Sums dividend cash amounts
- ValuationAssembler: Turns raw fund figures into rounded fund valuations
  and portfolio totals

Design Principles:
- Stateless (no instance state)
- Inputs are ledger records, outputs are types from valuation.types
- Decimal for ALL financial calculations
- Every "as of" cut-off is inclusive

Usage:
    cost_calc = CostBasisCalculator()
    position = FundPosition()
    for txn in transactions:
        cost_calc.apply_transaction(position, txn)
"""

from __future__ import annotations

import bisect
import logging
from collections.abc import Iterable, Sequence
from datetime import date
from decimal import Decimal, ROUND_HALF_UP

from fundfolio.models import TransactionType
from fundfolio.services.constants import CURRENCY_PRECISION, SHARE_PRECISION, ZERO
from fundfolio.services.exceptions import DataIntegrityError
from fundfolio.services.valuation.types import (
    DividendRecord,
    FundMetrics,
    FundPosition,
    FundValuation,
    PortfolioTotals,
    PriceResult,
    RealizedGainRecord,
    RealizedGainTotals,
    TransactionRecord,
)

logger = logging.getLogger(__name__)


def round_money(value: Decimal) -> Decimal:
    """Round to cents, halves away from zero."""
    return value.quantize(CURRENCY_PRECISION, rounding=ROUND_HALF_UP)


def round_shares(value: Decimal) -> Decimal:
    return value.quantize(SHARE_PRECISION, rounding=ROUND_HALF_UP)


# =============================================================================
# PRICE RESOLVER
# =============================================================================

class PriceResolver:
    """
    Finds the price that applies to a fund on a date.

    The applicable price is the observation with the greatest date that is
    not after the target date. There is no interpolation and no look-back
    limit. No observation means "no price": callers value the holding at
    zero, which is not an error.
    """

    def resolve(
            self,
            price_dates: Sequence[date],
            prices: Sequence[Decimal],
            as_of: date,
    ) -> PriceResult | None:
        """
        Resolve against in-memory price lists.

        Args:
            price_dates: Observation dates, sorted ascending
            prices: Prices, parallel to price_dates
            as_of: Target date (inclusive)

        Returns:
            PriceResult, or None if every observation is after as_of
        """
        index = bisect.bisect_right(price_dates, as_of)
        if index == 0:
            return None
        return PriceResult(price=prices[index - 1], date=price_dates[index - 1])


# =============================================================================
# COST BASIS CALCULATOR
# =============================================================================

class CostBasisCalculator:
    """
    Average-cost tracking of shares and cost basis.

    Transitions per transaction type:
        BUY, DIVIDEND (reinvestment):
            shares += s
            cost   += s × cost_per_share
        SELL:
            cost   -= cost × s / shares_held     (average cost unchanged)
            shares -= s
        FEE:
            cost   += cost_per_share             (the fee amount)
            fees   += cost_per_share

    A sell is rejected with DataIntegrityError when nothing is held or when
    it exceeds the shares held; so is an unknown transaction type.
    """

    def calculate(
            self,
            transactions: Iterable[TransactionRecord],
            as_of: date | None = None,
            portfolio_fund_id: int | None = None,
    ) -> FundPosition:
        """
        Replay transactions (sorted by date, then id) up to as_of inclusive.

        Convenience wrapper over apply_transaction(), the transition the
        rolling replay in HistoryCalculator applies; both give the same
        position for the same ledger and date.

        Args:
            transactions: Ledger of one portfolio fund
            as_of: Cut-off date; None replays everything
            portfolio_fund_id: Only used to label integrity errors

        Returns:
            FundPosition after the last applied transaction

        Raises:
            DataIntegrityError: If the ledger cannot be replayed
        """
        position = FundPosition()
        for txn in transactions:
            if as_of is not None and txn.date > as_of:
                break
            self.apply_transaction(position, txn, portfolio_fund_id)
        return position

    def apply_transaction(
            self,
            position: FundPosition,
            txn: TransactionRecord,
            portfolio_fund_id: int | None = None,
    ) -> None:
        """
        Apply a single transaction to a position (mutates position).

        Used directly by the rolling state pattern in HistoryCalculator.
        """
        if txn.type in (TransactionType.BUY, TransactionType.DIVIDEND):
            position.shares += txn.shares
            position.cost += txn.shares * txn.cost_per_share

        elif txn.type == TransactionType.SELL:
            held = position.shares
            if held <= ZERO:
                raise DataIntegrityError(
                    f"Sell transaction {txn.id} on {txn.date} sells {txn.shares} shares "
                    f"but no shares are held (cost basis {position.cost})",
                    portfolio_fund_id=portfolio_fund_id,
                    transaction_id=txn.id,
                )
            if txn.shares > held:
                raise DataIntegrityError(
                    f"Sell transaction {txn.id} on {txn.date} sells {txn.shares} shares "
                    f"but only {held} are held",
                    portfolio_fund_id=portfolio_fund_id,
                    transaction_id=txn.id,
                )

            position.cost -= position.cost * txn.shares / held
            position.shares = held - txn.shares
            if position.shares == ZERO:
                # Selling out clears any residue left by division
                position.cost = ZERO

        elif txn.type == TransactionType.FEE:
            position.cost += txn.cost_per_share
            position.fees += txn.cost_per_share

        else:
            raise DataIntegrityError(
                f"Transaction {txn.id} has unknown type {txn.type!r}",
                portfolio_fund_id=portfolio_fund_id,
                transaction_id=txn.id,
            )


# =============================================================================
# REALIZED GAIN CALCULATOR
# =============================================================================

class RealizedGainCalculator:
    """
    Sums realized gain/loss rows recorded when sells were booked.

    Nothing is re-derived from transactions: the rows are the record of
    what each sell realized.
    """

    def calculate(
            self,
            gains: Iterable[RealizedGainRecord],
            as_of: date | None = None,
    ) -> RealizedGainTotals:
        """
        Sum rows up to as_of in one pass.

        Convenience wrapper over the same RealizedGainTotals.add() step that
        accumulate() applies during the rolling replay.

        Args:
            gains: Realized gain rows, sorted by transaction_date
            as_of: Sell-date cut-off (inclusive); None sums all rows

        Returns:
            RealizedGainTotals with net gain, proceeds and original cost
        """
        totals = RealizedGainTotals()
        for gain in gains:
            if as_of is not None and gain.transaction_date > as_of:
                break
            totals = totals.add(gain)
        return totals

    def accumulate(
            self,
            totals: RealizedGainTotals,
            gains: Iterable[RealizedGainRecord],
    ) -> RealizedGainTotals:
        """Add rows to running totals (rolling state use)."""
        for gain in gains:
            totals = totals.add(gain)
        return totals


# =============================================================================
# DIVIDEND CALCULATOR
# =============================================================================

class DividendCalculator:
    """
    Sums dividend cash (shares_owned × dividend_per_share).

    This is income only. It never touches shares or cost: a reinvested
    dividend shows up there through its own DIVIDEND transaction.
    """

    def calculate(
            self,
            dividends: Iterable[DividendRecord],
            as_of: date | None = None,
    ) -> Decimal:
        total = ZERO
        for dividend in dividends:
            if as_of is not None and dividend.record_date > as_of:
                break
            total += dividend.amount
        return total


# =============================================================================
# VALUATION ASSEMBLER
# =============================================================================

class ValuationAssembler:
    """
    Combines position, price, realized gains and dividends into valuations.

    Rounding rules:
        - Money: 2 decimals, ROUND_HALF_UP
        - Shares, price, average cost: 8 decimals
        - Portfolio totals are summed from unrounded fund figures, then rounded
        - Derived figures (unrealized, realized, total gain) are computed from
          the rounded components, so the identities hold on every output
    """

    def fund_metrics(
            self,
            portfolio_fund_id: int,
            fund_id: int,
            fund_name: str,
            as_of: date,
            position: FundPosition,
            price: PriceResult | None,
            realized: RealizedGainTotals,
            dividends: Decimal,
            isin: str | None = None,
            symbol: str | None = None,
            currency: str = "EUR",
    ) -> FundMetrics:
        """Raw figures for one fund; value is 0 when no price is known."""
        if price is None:
            value = ZERO
            if position.shares != ZERO:
                logger.debug(
                    f"No price for fund {fund_id} on or before {as_of}; "
                    f"{position.shares} shares valued at 0"
                )
        else:
            value = position.shares * price.price

        return FundMetrics(
            portfolio_fund_id=portfolio_fund_id,
            fund_id=fund_id,
            fund_name=fund_name,
            as_of=as_of,
            shares=position.shares,
            cost=position.cost,
            fees=position.fees,
            price=price,
            value=value,
            realized=realized,
            dividends=dividends,
            isin=isin,
            symbol=symbol,
            currency=currency,
        )

    def assemble_fund(self, metrics: FundMetrics) -> FundValuation:
        """Round one fund's raw figures into a FundValuation."""
        current_value = round_money(metrics.value)
        total_cost = round_money(metrics.cost)
        sale_proceeds = round_money(metrics.realized.sale_proceeds)
        original_cost = round_money(metrics.realized.original_cost)

        unrealized = current_value - total_cost
        realized = sale_proceeds - original_cost

        if metrics.shares == ZERO:
            average_cost = ZERO
        else:
            average_cost = round_shares(metrics.cost / metrics.shares)

        return FundValuation(
            portfolio_fund_id=metrics.portfolio_fund_id,
            fund_id=metrics.fund_id,
            fund_name=metrics.fund_name,
            isin=metrics.isin,
            symbol=metrics.symbol,
            currency=metrics.currency,
            as_of=metrics.as_of,
            total_shares=round_shares(metrics.shares),
            latest_price=round_shares(metrics.price.price) if metrics.price else None,
            price_date=metrics.price.date if metrics.price else None,
            average_cost=average_cost,
            total_cost=total_cost,
            current_value=current_value,
            unrealized_gain_loss=unrealized,
            realized_gain_loss=realized,
            total_gain_loss=unrealized + realized,
            sale_proceeds=sale_proceeds,
            original_cost=original_cost,
            total_dividends=round_money(metrics.dividends),
            total_fees=round_money(metrics.fees),
        )

    def roll_up(
            self,
            funds: Iterable[FundMetrics],
            unlinked_realized: RealizedGainTotals | None = None,
    ) -> PortfolioTotals:
        """
        Sum raw fund figures into rounded portfolio totals.

        An empty iterable yields all-zero totals.

        Args:
            funds: Figures of every fund the portfolio links to
            unlinked_realized: Realized gains of funds the portfolio no
                               longer links to; added to the realized figures
        """
        value = cost = dividends = proceeds = original_cost = ZERO
        if unlinked_realized is not None:
            proceeds = unlinked_realized.sale_proceeds
            original_cost = unlinked_realized.original_cost
        for metrics in funds:
            value += metrics.value
            cost += metrics.cost
            dividends += metrics.dividends
            proceeds += metrics.realized.sale_proceeds
            original_cost += metrics.realized.original_cost

        total_value = round_money(value)
        total_cost = round_money(cost)
        total_sale_proceeds = round_money(proceeds)
        total_original_cost = round_money(original_cost)

        unrealized = total_value - total_cost
        realized = total_sale_proceeds - total_original_cost

        return PortfolioTotals(
            total_value=total_value,
            total_cost=total_cost,
            total_realized_gain_loss=realized,
            total_unrealized_gain_loss=unrealized,
            total_dividends=round_money(dividends),
            total_sale_proceeds=total_sale_proceeds,
            total_original_cost=total_original_cost,
            total_gain_loss=unrealized + realized,
        )
