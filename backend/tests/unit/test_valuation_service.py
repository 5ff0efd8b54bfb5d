"""Tests for the ValuationService."""

from datetime import date
from decimal import Decimal

import pytest
from sqlalchemy.orm import Session

from models import Account
from services.exceptions import NotFoundError, UpstreamUnavailableError
from services.lot_ledger_service import LotLedgerService
from tests.fixtures import buy, deposit
from utils.trading_calendar import previous_trading_day


@pytest.fixture
def history(db: Session, account: Account) -> Account:
    """Deposit, two purchases, a sale and a 2-for-1 split through Q1 2024."""
    deposit(db, account, date(2024, 1, 2), "5000")
    buy(db, account, "AAPL", date(2024, 1, 2), "10", "100")
    buy(db, account, "MSFT", date(2024, 1, 3), "5", "300")
    LotLedgerService.record_sale_event(
        db, account.id, "AAPL", date(2024, 2, 1), Decimal("4"), Decimal("120")
    )
    LotLedgerService.record_split_event(db, account.id, "AAPL", date(2024, 3, 1), Decimal("2"))
    return account


class TestHoldingsAsOf:
    def test_before_any_activity(self, db: Session, history: Account, valuation_service):
        assert valuation_service.holdings_as_of(db, history.id, date(2024, 1, 1)) == {}

    def test_replays_purchases(self, db: Session, history: Account, valuation_service):
        assert valuation_service.holdings_as_of(db, history.id, date(2024, 1, 3)) == {
            "AAPL": Decimal("10"),
            "MSFT": Decimal("5"),
        }

    def test_replays_sales(self, db: Session, history: Account, valuation_service):
        holdings = valuation_service.holdings_as_of(db, history.id, date(2024, 2, 15))
        assert holdings["AAPL"] == Decimal("6")

    def test_replays_splits(self, db: Session, history: Account, valuation_service):
        holdings = valuation_service.holdings_as_of(db, history.id, date(2024, 3, 1))
        assert holdings["AAPL"] == Decimal("12")

    def test_matches_lots_today(self, db: Session, history: Account, valuation_service):
        assert valuation_service.holdings_as_of(
            db, history.id, date(2099, 1, 1)
        ) == LotLedgerService.get_positions(db, history.id)


class TestValueAsOf:
    def test_fixed_value(self, db: Session, history: Account, valuation_service):
        # 5000 - 1000 - 1500 + 480
        assert valuation_service.fixed_value_as_of(
            db, history.id, date(2024, 2, 1)
        ) == Decimal("2980")

    def test_variable_value(
        self, db: Session, history: Account, market_data, valuation_service
    ):
        market_data.set_close("AAPL", date(2024, 2, 1), "125")
        market_data.set_close("MSFT", date(2024, 2, 1), "400")

        assert valuation_service.variable_value_as_of(
            db, history.id, date(2024, 2, 1)
        ) == Decimal("2750")

    def test_total_value_resolves_weekend(
        self, db: Session, history: Account, market_data, valuation_service
    ):
        # Saturday 2024-02-03 is valued at Friday's closes
        market_data.set_close("AAPL", date(2024, 2, 2), "125")
        market_data.set_close("MSFT", date(2024, 2, 2), "400")

        assert valuation_service.value_as_of(
            db, history.id, date(2024, 2, 3)
        ) == Decimal("5730")

    def test_missing_quote(self, db: Session, history: Account, valuation_service):
        with pytest.raises(UpstreamUnavailableError):
            valuation_service.value_as_of(db, history.id, date(2024, 2, 1))


class TestCurrentValue:
    def test_uses_latest_close(
        self, db: Session, history: Account, market_data, valuation_service
    ):
        last_session = previous_trading_day(date.today())
        market_data.set_close("AAPL", last_session, "60")
        market_data.set_close("MSFT", last_session, "410")

        value = valuation_service.current_value(db, history.id)

        assert value.cash_value == Decimal("2980")
        assert value.holdings_value == Decimal("2770")
        assert value.total_value == Decimal("5750")

    def test_unknown_account(self, db: Session, valuation_service):
        with pytest.raises(NotFoundError):
            valuation_service.current_value(db, "missing")
