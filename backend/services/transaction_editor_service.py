"""Transaction editor - reversible edits and removals of ledger rows.

An edit of an investment row never mutates lots in place. The prior
record's effects are reversed, the record is deleted and the matching
creation operation runs again with the changed values, writing back
over the same ledger row. Effects stacked on the record later are
unwound first and replayed afterwards. Removal reverses effects and
deletes both the record and the row. Rows with no investment record
are plain cash rows and are handled by the LedgerService.
"""

import logging
from dataclasses import dataclass
from typing import Union

from sqlalchemy.orm import Session

from database import atomic
from models import LedgerTransaction, StockLot, StockSale, StockSplit
from schemas.ledger import TransactionUpdate
from services.allocation_service import AllocationService
from services.exceptions import InvalidInputError, NotFoundError
from services.ledger_service import LedgerService
from services.lot_ledger_service import LotLedgerService

logger = logging.getLogger(__name__)

EDITOR_ACTIONS = ("update", "remove")


@dataclass
class PurchaseRecord:
    transaction: LedgerTransaction
    lot: StockLot
    kind: str = "purchase"


@dataclass
class SaleRecord:
    transaction: LedgerTransaction
    sale: StockSale
    kind: str = "sale"


@dataclass
class SplitRecord:
    transaction: LedgerTransaction
    split: StockSplit
    kind: str = "split"


@dataclass
class NonInvestmentRecord:
    transaction: LedgerTransaction
    kind: str = "cash"


InvestmentRecord = Union[PurchaseRecord, SaleRecord, SplitRecord, NonInvestmentRecord]


class TransactionEditorService:
    """Classifies, edits and removes ledger rows and their typed records."""

    @staticmethod
    def classify(db: Session, transaction_id: str) -> InvestmentRecord:
        """Resolve a ledger row into the record that owns it, in one query."""
        row = (
            db.query(LedgerTransaction, StockLot, StockSale, StockSplit)
            .outerjoin(StockLot, StockLot.ledger_transaction_id == LedgerTransaction.id)
            .outerjoin(StockSale, StockSale.ledger_transaction_id == LedgerTransaction.id)
            .outerjoin(StockSplit, StockSplit.ledger_transaction_id == LedgerTransaction.id)
            .filter(LedgerTransaction.id == transaction_id)
            .first()
        )
        if row is None:
            raise NotFoundError(
                f"Transaction not found: {transaction_id}",
                entity="transaction",
                entity_id=transaction_id,
            )

        txn, lot, sale, split = row
        if lot is not None:
            return PurchaseRecord(transaction=txn, lot=lot)
        if sale is not None:
            return SaleRecord(transaction=txn, sale=sale)
        if split is not None:
            return SplitRecord(transaction=txn, split=split)
        return NonInvestmentRecord(transaction=txn)

    @staticmethod
    def apply(
        db: Session,
        transaction_id: str,
        action: str,
        changes: TransactionUpdate | None = None,
    ) -> InvestmentRecord | None:
        """Dispatch an editor action by name ("update" or "remove")."""
        normalized = (action or "").strip().lower()
        if normalized == "update":
            if changes is None:
                raise InvalidInputError("The update action requires changes")
            return TransactionEditorService.update(db, transaction_id, changes)
        if normalized == "remove":
            TransactionEditorService.remove(db, transaction_id)
            return None
        raise InvalidInputError(
            f"Unknown editor action: {action!r}. Expected one of {', '.join(EDITOR_ACTIONS)}"
        )

    @staticmethod
    def update(
        db: Session, transaction_id: str, changes: TransactionUpdate
    ) -> InvestmentRecord:
        """Re-create the record behind a ledger row with ``changes`` applied.

        Unset fields default to the prior record's values. The ledger row
        keeps its id. ``changes.kind`` can turn a purchase into a sale or a
        sale into a purchase.
        """
        record = TransactionEditorService.classify(db, transaction_id)

        if isinstance(record, NonInvestmentRecord):
            LedgerService.update_transaction(db, transaction_id, changes)
            return TransactionEditorService.classify(db, transaction_id)

        txn = record.transaction
        account_id = txn.account_id
        new_date = changes.date or txn.date

        with atomic(db):
            if isinstance(record, PurchaseRecord):
                lot = record.lot
                old_lot_id, old_ticker = lot.id, lot.ticker
                effects = AllocationService.unwind(db, account_id, old_ticker, lot.created_at)
                # with its effects unwound the lot is back to its purchase terms
                ticker = changes.ticker or lot.ticker
                shares = changes.shares or lot.shares_purchased
                price = changes.price if changes.price is not None else lot.cost_basis_per_share
                kind = changes.kind or "purchase"
                db.delete(lot)
                db.flush()
                created = TransactionEditorService._recreate(
                    db, kind, account_id, ticker, new_date, shares, price,
                    changes.allocation_method, transaction_id,
                )
                stand_in = (
                    created
                    if isinstance(created, StockLot) and created.ticker == old_ticker
                    else None
                )
                AllocationService.replay(db, effects, {old_lot_id: stand_in})

            elif isinstance(record, SaleRecord):
                sale = record.sale
                ticker = changes.ticker or sale.ticker
                shares = changes.shares or sale.shares_sold
                price = changes.price if changes.price is not None else sale.sale_price_per_share
                kind = changes.kind or "sale"
                method = changes.allocation_method or sale.allocation_method
                effects = AllocationService.unwind(
                    db, account_id, sale.ticker, AllocationService.applied_at(db, sale)
                )
                db.delete(sale)
                db.flush()
                TransactionEditorService._recreate(
                    db, kind, account_id, ticker, new_date, shares, price,
                    method, transaction_id,
                )
                AllocationService.replay(db, [e for e in effects if e.record is not sale])

            else:
                split = record.split
                ticker = changes.ticker or split.ticker
                factor = (
                    changes.split_factor
                    if changes.split_factor is not None
                    else split.split_factor
                )
                effects = AllocationService.unwind(
                    db, account_id, split.ticker, AllocationService.applied_at(db, split)
                )
                db.delete(split)
                db.flush()
                LotLedgerService.record_split_event(
                    db, account_id, ticker, new_date, factor,
                    overwrite_transaction_id=transaction_id,
                )
                AllocationService.replay(db, [e for e in effects if e.record is not split])

        logger.info("Updated %s transaction %s", record.kind, transaction_id)
        return TransactionEditorService.classify(db, transaction_id)

    @staticmethod
    def remove(db: Session, transaction_id: str) -> None:
        """Reverse a record's effects and delete it together with its ledger row."""
        record = TransactionEditorService.classify(db, transaction_id)

        if isinstance(record, NonInvestmentRecord):
            LedgerService.delete_transaction(db, transaction_id)
            return

        with atomic(db):
            if isinstance(record, PurchaseRecord):
                lot = record.lot
                lot_id = lot.id
                effects = AllocationService.unwind(db, lot.account_id, lot.ticker, lot.created_at)
                db.delete(lot)
                db.flush()
                db.delete(record.transaction)
                db.flush()
                AllocationService.replay(db, effects, {lot_id: None})
            elif isinstance(record, SaleRecord):
                LotLedgerService.remove_sale_event(db, record.sale.id)
            else:
                LotLedgerService.remove_split_event(db, record.split.id)

        logger.info("Removed %s transaction %s", record.kind, transaction_id)

    # ------------------------------------------------------------------
    # Private
    # ------------------------------------------------------------------

    @staticmethod
    def _recreate(
        db: Session,
        kind: str,
        account_id: str,
        ticker: str,
        new_date,
        shares,
        price,
        method: str | None,
        transaction_id: str,
    ) -> StockLot | StockSale:
        if kind == "purchase":
            return LotLedgerService.record_purchase(
                db, account_id, ticker, new_date, shares, price,
                overwrite_transaction_id=transaction_id,
            )
        return LotLedgerService.record_sale_event(
            db, account_id, ticker, new_date, shares, price, method,
            overwrite_transaction_id=transaction_id,
        )

