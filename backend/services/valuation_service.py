"""Valuation service - point-in-time account values.

An account's value is its cash balance (the "fixed" part, from the
ledger) plus its holdings at market (the "variable" part). Holdings as
of a date are rebuilt from the purchases, sales and splits dated on or
before it, so history can be valued after later activity.
"""

import logging
from collections import defaultdict
from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from typing import Optional

from sqlalchemy.orm import Session

from models import StockLot
from services.ledger_service import LedgerService
from services.lot_ledger_service import LotLedgerService
from services.quote_service import QuoteService

logger = logging.getLogger(__name__)


def _recorded_at(record) -> datetime:
    # SQLite hands back naive datetimes; freshly flushed rows still hold aware ones
    return record.created_at.replace(tzinfo=None)


@dataclass
class AccountValue:
    """Current value of an account."""

    account_id: str
    cash_value: Decimal
    holdings_value: Decimal

    @property
    def total_value(self) -> Decimal:
        return self.cash_value + self.holdings_value


class ValuationService:
    """Values accounts as of a date, or now."""

    def __init__(self, quote_service: Optional[QuoteService] = None):
        self._quote_service = quote_service

    @property
    def quote_service(self) -> QuoteService:
        if self._quote_service is None:
            self._quote_service = QuoteService()
        return self._quote_service

    def fixed_value_as_of(self, db: Session, account_id: str, as_of: date) -> Decimal:
        """Cash balance at the end of ``as_of``."""
        return LedgerService.get_cumulative_total_before(db, account_id, as_of)

    def holdings_as_of(self, db: Session, account_id: str, as_of: date) -> dict[str, Decimal]:
        """Shares held per ticker at the end of ``as_of``.

        Events are replayed oldest first; same-day events keep the order
        they were recorded in. A sale removes the shares actually
        allocated to lots.
        """
        events: list[tuple[date, object, str, object]] = []
        lots = db.query(StockLot).filter(StockLot.account_id == account_id).all()
        for lot in lots:
            events.append((lot.purchase_date, _recorded_at(lot), "purchase", lot))
        for sale in LotLedgerService.get_sales_for_account(db, account_id):
            events.append((sale.sale_date, _recorded_at(sale), "sale", sale))
        for split in LotLedgerService.get_splits_for_account(db, account_id):
            events.append((split.split_date, _recorded_at(split), "split", split))

        holdings: dict[str, Decimal] = defaultdict(lambda: Decimal("0"))
        for event_date, _, kind, record in sorted(events, key=lambda e: (e[0], e[1])):
            if event_date > as_of:
                break
            if kind == "purchase":
                holdings[record.ticker] += record.shares_purchased
            elif kind == "sale":
                holdings[record.ticker] -= sum(
                    (a.quantity for a in record.allocations), Decimal("0")
                )
            else:
                holdings[record.ticker] *= record.split_factor

        return {ticker: shares for ticker, shares in holdings.items() if shares > 0}

    def variable_value_as_of(self, db: Session, account_id: str, as_of: date) -> Decimal:
        """Market value of holdings at the close of ``as_of``."""
        total = Decimal("0")
        for ticker, shares in sorted(self.holdings_as_of(db, account_id, as_of).items()):
            total += shares * self.quote_service.close_on(ticker, as_of)
        return total

    def value_as_of(self, db: Session, account_id: str, as_of: date) -> Decimal:
        return self.fixed_value_as_of(db, account_id, as_of) + self.variable_value_as_of(
            db, account_id, as_of
        )

    def current_value(self, db: Session, account_id: str) -> AccountValue:
        """Cash plus remaining lot shares at the latest close."""
        LedgerService.get_account(db, account_id)
        cash = self.fixed_value_as_of(db, account_id, date.today())
        holdings_value = Decimal("0")
        for ticker, shares in LotLedgerService.get_positions(db, account_id).items():
            holdings_value += shares * self.quote_service.latest_close(ticker)
        return AccountValue(account_id=account_id, cash_value=cash, holdings_value=holdings_value)
