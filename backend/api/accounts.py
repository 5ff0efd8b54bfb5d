"""Accounts API endpoints."""

import logging

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from api.helpers import get_or_404, raise_http_error
from database import get_db
from models import Account
from schemas import AccountCreate, AccountResponse, AccountUpdate, AccountValueResponse
from services.exceptions import LedgerError
from services.ledger_service import LedgerService
from services.valuation_service import ValuationService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/accounts", tags=["accounts"])


def get_valuation_service() -> ValuationService:
    """Get a ValuationService instance (overridable in tests)."""
    return ValuationService()


@router.get("", response_model=list[AccountResponse])
def list_accounts(db: Session = Depends(get_db)):
    """List all accounts."""
    return LedgerService.list_accounts(db)


@router.post("", response_model=AccountResponse, status_code=201)
def create_account(account_data: AccountCreate, db: Session = Depends(get_db)):
    """Create a ledger account."""
    try:
        account = LedgerService.create_account(db, account_data)
        db.commit()
        db.refresh(account)
        return account
    except LedgerError as e:
        raise_http_error(e)


@router.get("/{account_id}", response_model=AccountResponse)
def get_account(account_id: str, db: Session = Depends(get_db)):
    """Get a specific account."""
    return get_or_404(db, Account, account_id, "Account not found")


@router.patch("/{account_id}", response_model=AccountResponse)
def update_account(
    account_id: str,
    account_data: AccountUpdate,
    db: Session = Depends(get_db),
):
    """Rename, re-label or (de)activate an account."""
    account = get_or_404(db, Account, account_id, "Account not found")
    if account_data.name is not None:
        account.name = account_data.name
    if account_data.institution_name is not None:
        account.institution_name = account_data.institution_name
    if account_data.is_active is not None:
        account.is_active = account_data.is_active
    db.commit()
    db.refresh(account)
    logger.info("Account updated: %s (id=%s)", account.name, account.id)
    return account


@router.get("/{account_id}/value", response_model=AccountValueResponse)
def get_account_value(
    account_id: str,
    db: Session = Depends(get_db),
    service: ValuationService = Depends(get_valuation_service),
):
    """Current cash, holdings and total value of an account."""
    get_or_404(db, Account, account_id, "Account not found")
    try:
        value = service.current_value(db, account_id)
    except LedgerError as e:
        raise_http_error(e)
    return {
        "account_id": account_id,
        "cash_value": value.cash_value,
        "holdings_value": value.holdings_value,
        "total_value": value.total_value,
    }
