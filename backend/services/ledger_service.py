"""Cash ledger service.

CRUD for ledger transactions, participants and categories, plus the
aggregate queries the valuation and return calculations depend on.
Investment rows (purchases, sales, splits) are written through here by
the lot ledger but edited and removed only through the transaction editor.
"""

import logging
from datetime import date
from decimal import Decimal

from sqlalchemy.orm import Session, joinedload

from models import Account, Category, LedgerTransaction, Participant, StockLot, StockSale, StockSplit, TransferType
from schemas.account import AccountCreate
from schemas.ledger import CashTransactionCreate, TransactionUpdate
from services.exceptions import InconsistentStateError, InvalidArgumentError, NotFoundError

logger = logging.getLogger(__name__)


class LedgerService:
    """Manages accounts, ledger rows and cash aggregates."""

    # --- Accounts ---

    @staticmethod
    def create_account(db: Session, data: AccountCreate) -> Account:
        if db.query(Account).filter_by(name=data.name).first():
            raise InvalidArgumentError(f"Account already exists: {data.name}")
        account = Account(
            name=data.name,
            institution_name=data.institution_name,
            account_type=data.account_type,
            is_active=True,
        )
        db.add(account)
        db.flush()
        logger.info("Created account: %s (id=%s)", account.name, account.id)
        return account

    @staticmethod
    def list_accounts(db: Session) -> list[Account]:
        return db.query(Account).order_by(Account.name.asc()).all()

    @staticmethod
    def get_account(db: Session, account_id: str) -> Account:
        """Get an account by ID, raising NotFoundError if it doesn't exist."""
        account = db.query(Account).filter(Account.id == account_id).first()
        if not account:
            raise NotFoundError(
                f"Account not found: {account_id}", entity="account", entity_id=account_id
            )
        return account

    # --- Participants / categories ---

    @staticmethod
    def check_and_add_participant(
        db: Session, account_id: str, name: str, participant_type: str
    ) -> Participant:
        """Return the named payee/payer for an account, creating it if needed."""
        if participant_type not in ("payee", "payer"):
            raise InvalidArgumentError(f"Invalid participant type: {participant_type}")
        participant = (
            db.query(Participant)
            .filter_by(account_id=account_id, name=name, participant_type=participant_type)
            .first()
        )
        if not participant:
            participant = Participant(
                account_id=account_id, name=name, participant_type=participant_type
            )
            db.add(participant)
            db.flush()
        return participant

    @staticmethod
    def check_and_add_category(db: Session, account_id: str, name: str) -> Category:
        """Return the named category for an account, creating it if needed."""
        category = db.query(Category).filter_by(account_id=account_id, name=name).first()
        if not category:
            category = Category(account_id=account_id, name=name)
            db.add(category)
            db.flush()
        return category

    # --- Transactions ---

    @staticmethod
    def write_transaction(
        db: Session,
        account_id: str,
        *,
        transaction_date: date,
        amount: Decimal,
        transfer_type: TransferType,
        participant: str | None = None,
        participant_type: str = "payee",
        category: str | None = None,
        description: str | None = None,
        ancillary_numeric: Decimal | None = None,
        transaction_id: str | None = None,
    ) -> LedgerTransaction:
        """Insert a ledger row, or overwrite the row ``transaction_id`` in place.

        Overwriting keeps the row's id so records that reference it stay
        valid across an edit.
        """
        if transaction_id is not None:
            txn = LedgerService.get_transaction(db, transaction_id)
            if txn.account_id != account_id:
                raise InvalidArgumentError(
                    f"Transaction {transaction_id} does not belong to account {account_id}"
                )
        else:
            txn = LedgerTransaction(account_id=account_id)
            db.add(txn)

        txn.date = transaction_date
        txn.amount = amount
        txn.transfer_type = TransferType(transfer_type).value
        txn.participant_id = (
            LedgerService.check_and_add_participant(
                db, account_id, participant, participant_type
            ).id
            if participant
            else None
        )
        txn.category_id = (
            LedgerService.check_and_add_category(db, account_id, category).id
            if category
            else None
        )
        txn.description = description
        txn.ancillary_numeric = ancillary_numeric
        db.flush()
        return txn

    @staticmethod
    def record_cash_transaction(
        db: Session, account_id: str, data: CashTransactionCreate
    ) -> LedgerTransaction:
        """Record an external deposit into or withdrawal from an account."""
        LedgerService.get_account(db, account_id)
        transfer_type = TransferType(data.transfer_type)
        participant_type = "payer" if transfer_type.is_deposit else "payee"
        txn = LedgerService.write_transaction(
            db,
            account_id,
            transaction_date=data.date,
            amount=data.amount,
            transfer_type=transfer_type,
            participant=data.participant,
            participant_type=participant_type,
            category=data.category,
            description=data.description,
        )
        logger.info(
            "Recorded %s of %s on %s in account %s",
            transfer_type.value,
            data.amount,
            data.date,
            account_id,
        )
        return txn

    @staticmethod
    def get_transaction(db: Session, transaction_id: str) -> LedgerTransaction:
        txn = db.query(LedgerTransaction).filter_by(id=transaction_id).first()
        if not txn:
            raise NotFoundError(
                f"Transaction not found: {transaction_id}",
                entity="transaction",
                entity_id=transaction_id,
            )
        return txn

    @staticmethod
    def is_investment_transaction(db: Session, transaction_id: str) -> bool:
        """True when a purchase, sale or split owns the ledger row."""
        return any(
            db.query(model).filter_by(ledger_transaction_id=transaction_id).count()
            for model in (StockLot, StockSale, StockSplit)
        )

    @staticmethod
    def update_transaction(
        db: Session, transaction_id: str, changes: TransactionUpdate
    ) -> LedgerTransaction:
        """Apply date/amount/description changes to a non-investment row."""
        txn = LedgerService.get_transaction(db, transaction_id)
        if LedgerService.is_investment_transaction(db, txn.id):
            raise InconsistentStateError(
                f"Transaction {transaction_id} is an investment record; "
                "edit it through the transaction editor"
            )
        if changes.date is not None:
            txn.date = changes.date
        if changes.amount is not None:
            if changes.amount < 0:
                raise InvalidArgumentError("Amount must not be negative")
            txn.amount = changes.amount
        if changes.description is not None:
            txn.description = changes.description
        db.flush()
        logger.info("Updated transaction: %s", transaction_id)
        return txn

    @staticmethod
    def delete_transaction(db: Session, transaction_id: str) -> None:
        """Delete a non-investment ledger row."""
        txn = LedgerService.get_transaction(db, transaction_id)
        if LedgerService.is_investment_transaction(db, txn.id):
            raise InconsistentStateError(
                f"Transaction {transaction_id} is an investment record; "
                "remove it through the transaction editor"
            )
        logger.info(
            "Deleting transaction: %s (%s %s on %s)",
            transaction_id,
            txn.transfer_type,
            txn.amount,
            txn.date,
        )
        db.delete(txn)
        db.flush()

    # --- Queries ---

    @staticmethod
    def get_transactions_between(
        db: Session, account_id: str, start: date, end: date
    ) -> list[LedgerTransaction]:
        """Ledger rows with ``start <= date <= end``, oldest first.

        Rows sharing a date keep the order they were recorded in.
        """
        return (
            db.query(LedgerTransaction)
            .options(
                joinedload(LedgerTransaction.participant),
                joinedload(LedgerTransaction.category),
            )
            .filter(
                LedgerTransaction.account_id == account_id,
                LedgerTransaction.date >= start,
                LedgerTransaction.date <= end,
            )
            .order_by(
                LedgerTransaction.date.asc(),
                LedgerTransaction.created_at.asc(),
                LedgerTransaction.id.asc(),
            )
            .all()
        )

    @staticmethod
    def get_cumulative_total_before(db: Session, account_id: str, as_of: date) -> Decimal:
        """Cash balance of an account at the end of ``as_of``.

        Deposits (external and internal) add, withdrawals subtract and
        zero-sum changes contribute nothing.
        """
        rows = (
            db.query(LedgerTransaction.transfer_type, LedgerTransaction.amount)
            .filter(
                LedgerTransaction.account_id == account_id,
                LedgerTransaction.date <= as_of,
            )
            .all()
        )
        total = Decimal("0")
        for transfer_type, amount in rows:
            kind = TransferType(transfer_type)
            if kind.is_deposit:
                total += amount
            elif kind.is_withdrawal:
                total -= amount
        return total
