"""Ledger transaction API endpoints (cash rows and the transaction editor)."""

import logging
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from api.helpers import get_or_404, raise_http_error, transaction_response_dict
from database import get_db
from models import Account, LedgerTransaction
from schemas import CashTransactionCreate, LedgerTransactionResponse, TransactionUpdate
from services.exceptions import LedgerError
from services.ledger_service import LedgerService
from services.transaction_editor_service import NonInvestmentRecord, TransactionEditorService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/accounts", tags=["transactions"])


def _record_kind(db: Session, txn_id: str) -> str | None:
    record = TransactionEditorService.classify(db, txn_id)
    return None if isinstance(record, NonInvestmentRecord) else record.kind


def _get_account_transaction(db: Session, account_id: str, txn_id: str) -> LedgerTransaction:
    txn = db.query(LedgerTransaction).filter_by(id=txn_id).first()
    if not txn or txn.account_id != account_id:
        raise HTTPException(status_code=404, detail="Transaction not found")
    return txn


@router.get("/{account_id}/transactions", response_model=list[LedgerTransactionResponse])
def list_transactions(
    account_id: str,
    start: Optional[date] = Query(default=None, description="Start date (inclusive)"),
    end: Optional[date] = Query(default=None, description="End date (inclusive)"),
    db: Session = Depends(get_db),
):
    """List an account's ledger rows, oldest first."""
    get_or_404(db, Account, account_id, "Account not found")
    txns = LedgerService.get_transactions_between(
        db, account_id, start or date.min, end or date.max
    )
    return [transaction_response_dict(t, _record_kind(db, t.id)) for t in txns]


@router.post(
    "/{account_id}/transactions",
    response_model=LedgerTransactionResponse,
    status_code=201,
)
def create_cash_transaction(
    account_id: str,
    txn_data: CashTransactionCreate,
    db: Session = Depends(get_db),
):
    """Record an external deposit or withdrawal."""
    get_or_404(db, Account, account_id, "Account not found")
    try:
        txn = LedgerService.record_cash_transaction(db, account_id, txn_data)
        db.commit()
        db.refresh(txn)
        return transaction_response_dict(txn)
    except LedgerError as e:
        raise_http_error(e)


@router.put(
    "/{account_id}/transactions/{txn_id}",
    response_model=LedgerTransactionResponse,
)
def update_transaction(
    account_id: str,
    txn_id: str,
    changes: TransactionUpdate,
    db: Session = Depends(get_db),
):
    """Edit a ledger row; purchases, sales and splits are re-allocated."""
    get_or_404(db, Account, account_id, "Account not found")
    _get_account_transaction(db, account_id, txn_id)
    try:
        TransactionEditorService.update(db, txn_id, changes)
        db.commit()
    except LedgerError as e:
        raise_http_error(e)
    txn = _get_account_transaction(db, account_id, txn_id)
    return transaction_response_dict(txn, _record_kind(db, txn_id))


@router.delete("/{account_id}/transactions/{txn_id}", status_code=204)
def delete_transaction(
    account_id: str,
    txn_id: str,
    db: Session = Depends(get_db),
):
    """Remove a ledger row and reverse its effect on lots."""
    get_or_404(db, Account, account_id, "Account not found")
    _get_account_transaction(db, account_id, txn_id)
    try:
        TransactionEditorService.remove(db, txn_id)
        db.commit()
    except LedgerError as e:
        raise_http_error(e)
