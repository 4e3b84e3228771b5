# fundfolio/services/valuation/ledger.py
"""
Ledger Reader - batch loading of everything a valuation needs.

For a set of portfolios and a cut-off date, loads in five queries:
    1. Portfolio funds joined with their funds
    2. Transactions (ordered by date, then id for same-day ties)
    3. Fund prices (ascending by date)
    4. Dividends (by record date)
    5. Realized gain/loss rows (by sell date)

Rows are copied into frozen ledger records, so the result is a snapshot of
the store at load time: calculators can replay it any number of times, in
any thread, after the session is gone.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from collections.abc import Sequence
from datetime import date

from sqlalchemy import select, and_
from sqlalchemy.orm import Session

from fundfolio.models import (
    Dividend,
    Fund,
    FundPrice,
    Portfolio,
    PortfolioFund,
    RealizedGainLoss,
    Transaction,
)
from fundfolio.services.valuation.types import (
    DividendRecord,
    FundLedger,
    PortfolioLedger,
    RealizedGainRecord,
    TransactionRecord,
)

logger = logging.getLogger(__name__)


class LedgerReader:
    """
    Loads PortfolioLedgers from the database.

    Stateless; one instance can be shared.
    """

    def load(
            self,
            db: Session,
            portfolios: Sequence[Portfolio],
            end_date: date,
    ) -> dict[int, PortfolioLedger]:
        """
        Load ledgers for the given portfolios, up to and including end_date.

        Args:
            db: Database session
            portfolios: Portfolio rows (their flags are copied as-is)
            end_date: Cut-off; later transactions, prices, dividends and
                      realized gains are not loaded

        Returns:
            PortfolioLedger per portfolio_id, in the order given. Portfolios
            without funds get an empty ledger.
        """
        ledgers = {
            p.id: PortfolioLedger(
                portfolio_id=p.id,
                name=p.name,
                description=p.description,
                is_archived=bool(p.is_archived),
                exclude_from_overview=bool(p.exclude_from_overview),
            )
            for p in portfolios
        }
        if not ledgers:
            return ledgers

        fund_ledgers = self._load_fund_ledgers(db, ledgers)
        if fund_ledgers:
            self._attach_transactions(db, fund_ledgers, end_date)
            self._attach_prices(db, fund_ledgers, end_date)
            self._attach_dividends(db, fund_ledgers, end_date)

        # Realized gains outlive the portfolio fund link, so load them even
        # for portfolios that hold nothing any more
        self._attach_realized_gains(db, ledgers, end_date)

        logger.debug(
            f"Loaded ledgers for {len(ledgers)} portfolio(s), "
            f"{len(fund_ledgers)} fund holding(s) up to {end_date}"
        )
        return ledgers

    def load_one(self, db: Session, portfolio: Portfolio, end_date: date) -> PortfolioLedger:
        return self.load(db, [portfolio], end_date)[portfolio.id]

    # =========================================================================
    # LOADERS
    # =========================================================================

    def _load_fund_ledgers(
            self,
            db: Session,
            ledgers: dict[int, PortfolioLedger],
    ) -> dict[int, FundLedger]:
        """Create one FundLedger per portfolio fund, keyed by portfolio_fund_id."""
        query = (
            select(PortfolioFund, Fund)
            .join(Fund, PortfolioFund.fund_id == Fund.id)
            .where(PortfolioFund.portfolio_id.in_(list(ledgers)))
            .order_by(PortfolioFund.id)
        )

        fund_ledgers: dict[int, FundLedger] = {}
        for portfolio_fund, fund in db.execute(query).all():
            fund_ledger = FundLedger(
                portfolio_fund_id=portfolio_fund.id,
                fund_id=fund.id,
                fund_name=fund.name,
                isin=fund.isin,
                symbol=fund.symbol,
                currency=fund.currency,
            )
            fund_ledgers[portfolio_fund.id] = fund_ledger
            ledgers[portfolio_fund.portfolio_id].funds.append(fund_ledger)

        return fund_ledgers

    def _attach_transactions(
            self,
            db: Session,
            fund_ledgers: dict[int, FundLedger],
            end_date: date,
    ) -> None:
        query = (
            select(Transaction)
            .where(
                and_(
                    Transaction.portfolio_fund_id.in_(list(fund_ledgers)),
                    Transaction.date <= end_date,
                )
            )
            .order_by(Transaction.date, Transaction.id)
        )

        for txn in db.scalars(query):
            fund_ledgers[txn.portfolio_fund_id].transactions.append(
                TransactionRecord(
                    id=txn.id,
                    date=txn.date,
                    type=txn.type,
                    shares=txn.shares,
                    cost_per_share=txn.cost_per_share,
                )
            )

    def _attach_prices(
            self,
            db: Session,
            fund_ledgers: dict[int, FundLedger],
            end_date: date,
    ) -> None:
        """Prices are per fund; every holding of the same fund shares the lists."""
        holdings_by_fund: dict[int, list[FundLedger]] = defaultdict(list)
        for fund_ledger in fund_ledgers.values():
            holdings_by_fund[fund_ledger.fund_id].append(fund_ledger)

        query = (
            select(FundPrice.fund_id, FundPrice.date, FundPrice.price)
            .where(
                and_(
                    FundPrice.fund_id.in_(list(holdings_by_fund)),
                    FundPrice.date <= end_date,
                )
            )
            .order_by(FundPrice.fund_id, FundPrice.date)
        )

        dates_by_fund: dict[int, list[date]] = defaultdict(list)
        prices_by_fund: dict[int, list] = defaultdict(list)
        for fund_id, price_date, price in db.execute(query).all():
            dates_by_fund[fund_id].append(price_date)
            prices_by_fund[fund_id].append(price)

        for fund_id, holdings in holdings_by_fund.items():
            for fund_ledger in holdings:
                fund_ledger.price_dates = dates_by_fund.get(fund_id, [])
                fund_ledger.prices = prices_by_fund.get(fund_id, [])

    def _attach_dividends(
            self,
            db: Session,
            fund_ledgers: dict[int, FundLedger],
            end_date: date,
    ) -> None:
        query = (
            select(Dividend)
            .where(
                and_(
                    Dividend.portfolio_fund_id.in_(list(fund_ledgers)),
                    Dividend.record_date <= end_date,
                )
            )
            .order_by(Dividend.record_date, Dividend.id)
        )

        for dividend in db.scalars(query):
            fund_ledgers[dividend.portfolio_fund_id].dividends.append(
                DividendRecord(
                    id=dividend.id,
                    record_date=dividend.record_date,
                    shares_owned=dividend.shares_owned,
                    dividend_per_share=dividend.dividend_per_share,
                    reinvestment_transaction_id=dividend.reinvestment_transaction_id,
                )
            )

    def _attach_realized_gains(
            self,
            db: Session,
            ledgers: dict[int, PortfolioLedger],
            end_date: date,
    ) -> None:
        """
        Realized gains are keyed by (portfolio, fund), not by portfolio fund,
        so they are matched to holdings through that pair. Rows of a fund
        the portfolio no longer links to go on the PortfolioLedger itself.
        """
        holding_by_key: dict[tuple[int, int], FundLedger] = {}
        for portfolio_id, ledger in ledgers.items():
            for fund_ledger in ledger.funds:
                holding_by_key[(portfolio_id, fund_ledger.fund_id)] = fund_ledger

        query = (
            select(RealizedGainLoss)
            .where(
                and_(
                    RealizedGainLoss.portfolio_id.in_(list(ledgers)),
                    RealizedGainLoss.transaction_date <= end_date,
                )
            )
            .order_by(RealizedGainLoss.transaction_date, RealizedGainLoss.id)
        )

        for gain in db.scalars(query):
            record = RealizedGainRecord(
                id=gain.id,
                transaction_date=gain.transaction_date,
                shares_sold=gain.shares_sold,
                cost_basis=gain.cost_basis,
                sale_proceeds=gain.sale_proceeds,
            )

            fund_ledger = holding_by_key.get((gain.portfolio_id, gain.fund_id))
            if fund_ledger is not None:
                fund_ledger.realized_gains.append(record)
                continue

            logger.debug(
                f"Realized gain {gain.id} of fund {gain.fund_id} is no longer linked to "
                f"portfolio {gain.portfolio_id}; counted at portfolio level"
            )
            ledgers[gain.portfolio_id].realized_gains.append(record)
