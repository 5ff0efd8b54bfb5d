"""Tests for the LotLedgerService."""

from datetime import date
from decimal import Decimal

import pytest
from sqlalchemy.orm import Session

from config import settings
from models import (
    Account,
    LedgerTransaction,
    SaleAllocation,
    Security,
    SplitAllocation,
    StockLot,
    StockSale,
    StockSplit,
    TransferType,
)
from services.exceptions import (
    InconsistentStateError,
    InvalidArgumentError,
    NotFoundError,
)
from services.lot_ledger_service import LotLedgerService
from tests.fixtures import buy


# --- Purchases ---


class TestRecordPurchase:
    def test_creates_lot_and_ledger_row(self, db: Session, account: Account):
        lot = LotLedgerService.record_purchase(
            db, account.id, "aapl", date(2024, 3, 1), Decimal("5"), Decimal("170.00")
        )

        assert lot.ticker == "AAPL"
        assert lot.shares_purchased == Decimal("5")
        assert lot.shares_remaining == Decimal("5")
        assert lot.cost_basis_per_share == Decimal("170.00")
        assert lot.purchase_date == date(2024, 3, 1)

        txn = lot.ledger_transaction
        assert txn.transfer_type == TransferType.WITHDRAWAL_INTERNAL.value
        assert txn.amount == Decimal("850.00")
        assert txn.participant.name == "AAPL"
        assert txn.participant.participant_type == "payee"
        assert txn.category.name == "Bought"

    def test_creates_security_on_first_purchase(self, db: Session, account: Account):
        buy(db, account, "NVDA", date(2024, 1, 2), "1", "500")
        assert db.query(Security).filter_by(ticker="NVDA").count() == 1

    def test_reuses_existing_security(self, db: Session, account: Account, security: Security):
        lot = buy(db, account, "AAPL", date(2024, 1, 2), "1", "180")
        assert lot.security_id == security.id

    def test_rejects_non_positive_shares(self, db: Session, account: Account):
        with pytest.raises(InvalidArgumentError):
            buy(db, account, "AAPL", date(2024, 1, 2), "0", "180")
        assert db.query(LedgerTransaction).count() == 0

    def test_rejects_invalid_ticker(self, db: Session, account: Account):
        with pytest.raises(InvalidArgumentError):
            buy(db, account, "AA PL", date(2024, 1, 2), "1", "180")
        assert db.query(LedgerTransaction).count() == 0
        assert db.query(StockLot).count() == 0

    def test_unknown_account(self, db: Session):
        with pytest.raises(NotFoundError):
            LotLedgerService.record_purchase(
                db, "missing", "AAPL", date(2024, 1, 2), Decimal("1"), Decimal("1")
            )

    def test_overwrite_keeps_transaction_id(self, db: Session, account: Account):
        original = buy(db, account, "AAPL", date(2024, 1, 2), "1", "180")
        txn_id = original.ledger_transaction_id
        db.delete(original)
        db.flush()

        lot = LotLedgerService.record_purchase(
            db, account.id, "AAPL", date(2024, 1, 3), Decimal("2"), Decimal("181"),
            overwrite_transaction_id=txn_id,
        )

        assert lot.ledger_transaction_id == txn_id
        assert db.query(LedgerTransaction).count() == 1
        txn = db.query(LedgerTransaction).one()
        assert txn.date == date(2024, 1, 3)
        assert txn.amount == Decimal("362")


class TestRemoveLot:
    def test_removes_lot_and_ledger_row(self, db: Session, account: Account):
        lot = buy(db, account, "AAPL", date(2024, 1, 2), "1", "180")
        LotLedgerService.remove_lot(db, lot.id)

        assert db.query(StockLot).count() == 0
        assert db.query(LedgerTransaction).count() == 0

    def test_refuses_lot_with_sales(self, db: Session, account: Account):
        lot = buy(db, account, "AAPL", date(2024, 1, 2), "10", "180")
        LotLedgerService.record_sale_event(
            db, account.id, "AAPL", date(2024, 2, 1), Decimal("3"), Decimal("190")
        )

        with pytest.raises(InconsistentStateError):
            LotLedgerService.remove_lot(db, lot.id)
        assert db.query(StockLot).count() == 1

    def test_refreshes_post_split_total(self, db: Session, account: Account):
        kept = buy(db, account, "AAPL", date(2024, 1, 2), "10", "100")
        removed = buy(db, account, "AAPL", date(2024, 2, 1), "10", "110")
        split = LotLedgerService.record_split_event(
            db, account.id, "AAPL", date(2024, 6, 10), Decimal("2")
        )
        assert split.ledger_transaction.ancillary_numeric == Decimal("40")

        LotLedgerService.remove_lot(db, removed.id)

        assert kept.shares_remaining == Decimal("20")
        assert split.ledger_transaction.ancillary_numeric == Decimal("20")
        assert db.query(SplitAllocation).filter_by(split_id=split.id).count() == 1

    def test_missing_lot(self, db: Session):
        with pytest.raises(NotFoundError):
            LotLedgerService.remove_lot(db, "nope")


# --- Sales ---


class TestRecordSaleEvent:
    def test_creates_sale_allocations_and_ledger_row(self, db: Session, account: Account):
        first = buy(db, account, "AAPL", date(2024, 1, 2), "10", "100")
        second = buy(db, account, "AAPL", date(2024, 2, 1), "10", "110")

        sale = LotLedgerService.record_sale_event(
            db, account.id, "AAPL", date(2024, 3, 1), Decimal("12"), Decimal("130"), "LIFO"
        )

        assert sale.allocation_method == "LIFO"
        assert sale.sale_date == date(2024, 3, 1)
        assert first.shares_remaining == Decimal("0")
        assert second.shares_remaining == Decimal("8")
        assert sum(a.quantity for a in sale.allocations) == Decimal("12")

        txn = sale.ledger_transaction
        assert txn.transfer_type == TransferType.DEPOSIT_INTERNAL.value
        assert txn.amount == Decimal("1560")
        assert txn.participant.participant_type == "payer"
        assert txn.category.name == "Sold"

    def test_default_method_from_settings(self, db: Session, account: Account, monkeypatch):
        monkeypatch.setattr(settings, "DEFAULT_ALLOCATION_METHOD", "FIFO")
        buy(db, account, "AAPL", date(2024, 1, 2), "10", "100")
        newest = buy(db, account, "AAPL", date(2024, 2, 1), "10", "110")

        sale = LotLedgerService.record_sale_event(
            db, account.id, "AAPL", date(2024, 3, 1), Decimal("4"), Decimal("130")
        )

        assert sale.allocation_method == "FIFO"
        assert newest.shares_remaining == Decimal("6")

    def test_unknown_method_rejected(self, db: Session, account: Account):
        buy(db, account, "AAPL", date(2024, 1, 2), "10", "100")
        with pytest.raises(InvalidArgumentError):
            LotLedgerService.record_sale_event(
                db, account.id, "AAPL", date(2024, 3, 1), Decimal("4"), Decimal("130"), "HIFO"
            )
        assert db.query(StockSale).count() == 0

    def test_ticker_without_lots_is_not_found(self, db: Session, account: Account):
        with pytest.raises(NotFoundError):
            LotLedgerService.record_sale_event(
                db, account.id, "TSLA", date(2024, 3, 1), Decimal("1"), Decimal("200")
            )
        assert db.query(LedgerTransaction).count() == 0

    def test_oversold_sale_is_partially_allocated(self, db: Session, account: Account):
        lot = buy(db, account, "AAPL", date(2024, 1, 2), "5", "100")
        sale = LotLedgerService.record_sale_event(
            db, account.id, "AAPL", date(2024, 3, 1), Decimal("8"), Decimal("130")
        )

        assert lot.shares_remaining == Decimal("0")
        assert sum(a.quantity for a in sale.allocations) == Decimal("5")


class TestRemoveSaleEvent:
    def test_restores_lots_and_deletes_rows(self, db: Session, account: Account):
        lot = buy(db, account, "AAPL", date(2024, 1, 2), "10", "100")
        sale = LotLedgerService.record_sale_event(
            db, account.id, "AAPL", date(2024, 3, 1), Decimal("4"), Decimal("130")
        )

        LotLedgerService.remove_sale_event(db, sale.id)

        assert lot.shares_remaining == Decimal("10")
        assert db.query(StockSale).count() == 0
        assert db.query(SaleAllocation).count() == 0
        assert db.query(LedgerTransaction).count() == 1

    def test_later_split_is_replayed(self, db: Session, account: Account):
        lot = buy(db, account, "AAPL", date(2024, 1, 2), "100", "10")
        sale = LotLedgerService.record_sale_event(
            db, account.id, "AAPL", date(2024, 2, 1), Decimal("50"), Decimal("12")
        )
        split = LotLedgerService.record_split_event(
            db, account.id, "AAPL", date(2024, 6, 10), Decimal("2")
        )
        assert lot.shares_remaining == Decimal("100")

        LotLedgerService.remove_sale_event(db, sale.id)

        assert lot.shares_remaining == Decimal("200")
        assert lot.cost_basis_per_share == Decimal("5")
        assert split.ledger_transaction.ancillary_numeric == Decimal("200")

    def test_missing_sale(self, db: Session):
        with pytest.raises(NotFoundError):
            LotLedgerService.remove_sale_event(db, "nope")


# --- Splits ---


class TestRecordSplitEvent:
    def test_rescales_lots_and_records_total(self, db: Session, account: Account):
        lot = buy(db, account, "AAPL", date(2024, 1, 2), "10", "100")
        split = LotLedgerService.record_split_event(
            db, account.id, "AAPL", date(2024, 6, 10), Decimal("4")
        )

        assert lot.shares_remaining == Decimal("40")
        assert lot.cost_basis_per_share == Decimal("25")
        assert split.split_date == date(2024, 6, 10)

        txn = split.ledger_transaction
        assert txn.transfer_type == TransferType.ZERO_SUM_CHANGE.value
        assert txn.amount == Decimal("0")
        assert txn.ancillary_numeric == Decimal("40")
        assert txn.category.name == "Split"

    def test_reverse_split(self, db: Session, account: Account):
        lot = buy(db, account, "AAPL", date(2024, 1, 2), "10", "100")
        LotLedgerService.record_split_event(
            db, account.id, "AAPL", date(2024, 6, 10), Decimal("0.5")
        )
        assert lot.shares_remaining == Decimal("5")
        assert lot.cost_basis_per_share == Decimal("200")

    @pytest.mark.parametrize("factor", ["0", "-2"])
    def test_non_positive_factor_rejected(self, db: Session, account: Account, factor):
        lot = buy(db, account, "AAPL", date(2024, 1, 2), "10", "100")
        with pytest.raises(InvalidArgumentError):
            LotLedgerService.record_split_event(
                db, account.id, "AAPL", date(2024, 6, 10), Decimal(factor)
            )
        assert lot.shares_remaining == Decimal("10")
        assert db.query(StockSplit).count() == 0
        assert db.query(LedgerTransaction).count() == 1

    def test_ticker_without_lots_is_not_found(self, db: Session, account: Account):
        with pytest.raises(NotFoundError):
            LotLedgerService.record_split_event(
                db, account.id, "TSLA", date(2024, 6, 10), Decimal("3")
            )


class TestRemoveSplitEvent:
    def test_restores_lots_and_deletes_rows(self, db: Session, account: Account):
        lot = buy(db, account, "AAPL", date(2024, 1, 2), "10", "100")
        split = LotLedgerService.record_split_event(
            db, account.id, "AAPL", date(2024, 6, 10), Decimal("2")
        )

        LotLedgerService.remove_split_event(db, split.id)

        assert lot.shares_remaining == Decimal("10")
        assert lot.cost_basis_per_share == Decimal("100")
        assert db.query(StockSplit).count() == 0
        assert db.query(SplitAllocation).count() == 0
        assert db.query(LedgerTransaction).count() == 1

    def test_later_sale_is_reallocated_in_unsplit_shares(
        self, db: Session, account: Account
    ):
        lot = buy(db, account, "AAPL", date(2024, 1, 2), "100", "10")
        split = LotLedgerService.record_split_event(
            db, account.id, "AAPL", date(2024, 2, 1), Decimal("2")
        )
        sale = LotLedgerService.record_sale_event(
            db, account.id, "AAPL", date(2024, 3, 1), Decimal("200"), Decimal("6")
        )

        LotLedgerService.remove_split_event(db, split.id)

        # only the unsplit 100 shares can cover the sale now
        assert lot.shares_remaining == Decimal("0")
        assert lot.cost_basis_per_share == Decimal("10")
        allocation = db.query(SaleAllocation).filter_by(sale_id=sale.id).one()
        assert allocation.quantity == Decimal("100")

        LotLedgerService.remove_sale_event(db, sale.id)

        assert lot.shares_remaining == lot.shares_purchased == Decimal("100")

    def test_earlier_split_stays_applied(self, db: Session, account: Account):
        lot = buy(db, account, "AAPL", date(2024, 1, 2), "10", "100")
        first = LotLedgerService.record_split_event(
            db, account.id, "AAPL", date(2024, 2, 1), Decimal("2")
        )
        second = LotLedgerService.record_split_event(
            db, account.id, "AAPL", date(2024, 3, 1), Decimal("4")
        )

        LotLedgerService.remove_split_event(db, second.id)

        assert lot.shares_remaining == Decimal("20")
        assert lot.cost_basis_per_share == Decimal("50")
        assert db.query(SplitAllocation).filter_by(split_id=first.id).count() == 1


# --- Queries ---


class TestQueries:
    def test_get_lots_for_ticker_excludes_closed(self, db: Session, account: Account):
        buy(db, account, "AAPL", date(2024, 1, 2), "5", "100")
        open_lot = buy(db, account, "AAPL", date(2024, 2, 1), "5", "110")
        LotLedgerService.record_sale_event(
            db, account.id, "AAPL", date(2024, 3, 1), Decimal("5"), Decimal("120"), "LIFO"
        )

        lots = LotLedgerService.get_lots_for_ticker(db, account.id, "aapl", include_closed=False)
        assert [lot.id for lot in lots] == [open_lot.id]
        assert len(LotLedgerService.get_lots_for_ticker(db, account.id, "AAPL")) == 2

    def test_positions(self, db: Session, account: Account):
        buy(db, account, "MSFT", date(2024, 1, 2), "3", "400")
        buy(db, account, "AAPL", date(2024, 1, 2), "10", "100")
        LotLedgerService.record_sale_event(
            db, account.id, "AAPL", date(2024, 3, 1), Decimal("4"), Decimal("120")
        )

        assert LotLedgerService.get_positions(db, account.id) == {
            "AAPL": Decimal("6"),
            "MSFT": Decimal("3"),
        }

    def test_get_tickers(self, db: Session, account: Account):
        buy(db, account, "MSFT", date(2024, 1, 2), "3", "400")
        buy(db, account, "AAPL", date(2024, 1, 2), "10", "100")
        assert LotLedgerService.get_tickers(db, account.id) == ["AAPL", "MSFT"]

    def test_lot_summary(self, db: Session, account: Account):
        buy(db, account, "AAPL", date(2024, 1, 2), "10", "100")
        buy(db, account, "AAPL", date(2024, 2, 1), "10", "120")
        LotLedgerService.record_sale_event(
            db, account.id, "AAPL", date(2024, 3, 1), Decimal("5"), Decimal("150"), "LIFO"
        )

        summary = LotLedgerService.get_lot_summary(
            db, account.id, "AAPL", market_price=Decimal("160")
        )

        assert summary["lotted_quantity"] == Decimal("15")
        assert summary["lot_count"] == 2
        assert summary["total_cost_basis"] == Decimal("1700")
        assert summary["unrealized_gain_loss"] == Decimal("700")
        assert summary["realized_gain_loss"] == Decimal("250")

    def test_realized_gain_ignores_later_splits(self, db: Session, account: Account):
        buy(db, account, "AAPL", date(2024, 1, 2), "100", "10")
        LotLedgerService.record_sale_event(
            db, account.id, "AAPL", date(2024, 2, 1), Decimal("50"), Decimal("12")
        )
        before = LotLedgerService.get_lot_summary(db, account.id, "AAPL")["realized_gain_loss"]

        LotLedgerService.record_split_event(
            db, account.id, "AAPL", date(2024, 6, 10), Decimal("2")
        )
        after = LotLedgerService.get_lot_summary(db, account.id, "AAPL")

        assert before == Decimal("100")
        assert after["realized_gain_loss"] == Decimal("100")
        assert after["lotted_quantity"] == Decimal("100")
        assert after["total_cost_basis"] == Decimal("500")

    def test_lot_summary_unknown_ticker(self, db: Session, account: Account):
        with pytest.raises(NotFoundError):
            LotLedgerService.get_lot_summary(db, account.id, "ZZZ")
