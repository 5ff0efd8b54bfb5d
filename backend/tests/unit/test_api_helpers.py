"""Tests for the shared route helpers."""

from datetime import date
from decimal import Decimal

import pytest
from fastapi import HTTPException
from sqlalchemy.orm import Session

from api.helpers import get_or_404, raise_http_error, transaction_response_dict
from models import Account, LedgerTransaction
from services.exceptions import (
    InconsistentStateError,
    InvalidInputError,
    LedgerError,
    NotFoundError,
    NoValidPeriodsError,
    UpstreamUnavailableError,
)
from tests.fixtures import withdraw


class TestGetOr404:
    def test_found(self, db: Session, account: Account):
        assert get_or_404(db, Account, account.id) is account

    def test_missing(self, db: Session):
        with pytest.raises(HTTPException) as exc_info:
            get_or_404(db, Account, "missing", "Account not found")
        assert exc_info.value.status_code == 404
        assert exc_info.value.detail == "Account not found"


class TestRaiseHttpError:
    @pytest.mark.parametrize(
        "error, status_code",
        [
            (NotFoundError("Lot not found", entity="lot", entity_id="x"), 404),
            (InvalidInputError("bad"), 400),
            (InconsistentStateError("stale"), 409),
            (NoValidPeriodsError("nothing to chain"), 409),
            (UpstreamUnavailableError("no close", ticker="AAPL"), 502),
            (LedgerError("boom"), 500),
        ],
    )
    def test_status_mapping(self, error, status_code):
        with pytest.raises(HTTPException) as exc_info:
            raise_http_error(error)
        assert exc_info.value.status_code == status_code
        assert exc_info.value.detail == str(error)
        assert exc_info.value.__cause__ is error


def test_transaction_response_dict(db: Session, account: Account):
    withdraw(db, account, date(2024, 1, 3), "42.50")
    txn = db.query(LedgerTransaction).one()

    data = transaction_response_dict(txn)

    assert data["amount"] == Decimal("42.50")
    assert data["participant_name"] == "Landlord"
    assert data["category_name"] is None
    assert data["record_kind"] is None
