"""Test fixtures and sample data."""
import pytest
from datetime import date
from decimal import Decimal

from sqlalchemy.orm import Session

from models import Account, Security, StockLot, TransferType
from services.ledger_service import LedgerService
from services.lot_ledger_service import LotLedgerService


def deposit(db: Session, account: Account, on: date, amount: str) -> None:
    """Record an external cash deposit (helper, not a fixture)."""
    LedgerService.write_transaction(
        db,
        account.id,
        transaction_date=on,
        amount=Decimal(amount),
        transfer_type=TransferType.DEPOSIT_EXTERNAL,
        participant="Payroll",
        participant_type="payer",
    )


def withdraw(db: Session, account: Account, on: date, amount: str) -> None:
    """Record an external cash withdrawal (helper, not a fixture)."""
    LedgerService.write_transaction(
        db,
        account.id,
        transaction_date=on,
        amount=Decimal(amount),
        transfer_type=TransferType.WITHDRAWAL_EXTERNAL,
        participant="Landlord",
        participant_type="payee",
    )


def buy(
    db: Session, account: Account, ticker: str, on: date, shares: str, price: str
) -> StockLot:
    """Record a purchase through the lot ledger (helper, not a fixture)."""
    return LotLedgerService.record_purchase(
        db, account.id, ticker, on, Decimal(shares), Decimal(price)
    )


@pytest.fixture
def account(db: Session) -> Account:
    """Create a test account."""
    acc = Account(
        name="Brokerage",
        institution_name="Test Brokerage",
        account_type="brokerage",
        is_active=True,
    )
    db.add(acc)
    db.commit()
    db.refresh(acc)
    return acc


@pytest.fixture
def second_account(db: Session) -> Account:
    """Create a second account to check per-account isolation."""
    acc = Account(name="Retirement", is_active=True)
    db.add(acc)
    db.commit()
    db.refresh(acc)
    return acc


@pytest.fixture
def security(db: Session) -> Security:
    """Create a test security."""
    sec = Security(ticker="AAPL", name="Apple Inc.")
    db.add(sec)
    db.commit()
    db.refresh(sec)
    return sec
