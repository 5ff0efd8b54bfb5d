"""Shared API helpers for route handlers.

Common query patterns, error mapping and response builders used across
multiple route files.
"""

from typing import NoReturn, TypeVar

from fastapi import HTTPException
from sqlalchemy.orm import Session

from database import Base
from models import LedgerTransaction
from services.exceptions import (
    InconsistentStateError,
    InvalidArgumentError,
    LedgerError,
    NotFoundError,
    UpstreamUnavailableError,
)

T = TypeVar("T", bound=Base)


def get_or_404(db: Session, model: type[T], entity_id: str, detail: str = "Not found") -> T:
    """Fetch a single entity by primary key or raise 404.

    Args:
        db: Database session.
        model: SQLAlchemy model class.
        entity_id: Primary key value.
        detail: Error message for the 404 response.

    Returns:
        The entity instance.

    Raises:
        HTTPException: 404 if the entity doesn't exist.
    """
    entity = db.query(model).filter(model.id == entity_id).first()
    if not entity:
        raise HTTPException(status_code=404, detail=detail)
    return entity


def raise_http_error(exc: LedgerError) -> NoReturn:
    """Re-raise a ledger error as the matching HTTPException.

    NotFound -> 404, InvalidArgument -> 400, InconsistentState -> 409,
    UpstreamUnavailable -> 502.
    """
    if isinstance(exc, NotFoundError):
        status_code = 404
    elif isinstance(exc, InvalidArgumentError):
        status_code = 400
    elif isinstance(exc, InconsistentStateError):
        status_code = 409
    elif isinstance(exc, UpstreamUnavailableError):
        status_code = 502
    else:
        status_code = 500
    raise HTTPException(status_code=status_code, detail=str(exc)) from exc


def transaction_response_dict(txn: LedgerTransaction, record_kind: str | None = None) -> dict:
    """Build a LedgerTransactionResponse-compatible dict from a LedgerTransaction.

    Args:
        txn: A LedgerTransaction with participant/category relationships loaded.
        record_kind: "purchase", "sale", "split" or None for cash rows.

    Returns:
        Dict matching the LedgerTransactionResponse schema.
    """
    return {
        "id": txn.id,
        "account_id": txn.account_id,
        "date": txn.date,
        "amount": txn.amount,
        "transfer_type": txn.transfer_type,
        "participant_id": txn.participant_id,
        "category_id": txn.category_id,
        "description": txn.description,
        "ancillary_numeric": txn.ancillary_numeric,
        "created_at": txn.created_at,
        "participant_name": txn.participant.name if txn.participant else None,
        "category_name": txn.category.name if txn.category else None,
        "record_kind": record_kind,
    }
