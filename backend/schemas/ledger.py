"""Pydantic schemas for ledger transactions and edits."""

import datetime as dt
from decimal import Decimal
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field


class CashTransactionCreate(BaseModel):
    """Schema for recording an external deposit or withdrawal."""

    date: dt.date
    amount: Decimal = Field(gt=0)
    transfer_type: Literal["deposit_external", "withdrawal_external"]
    participant: str | None = None
    category: str | None = None
    description: str | None = None


class TransactionUpdate(BaseModel):
    """Partial changes to an existing transaction.

    Unset fields keep their previous values. ``kind`` converts a purchase
    into a sale or the reverse; ``price`` is the cost basis for purchases
    and the sale price for sales.
    """

    kind: Literal["purchase", "sale"] | None = None
    date: dt.date | None = None
    ticker: str | None = None
    shares: Decimal | None = Field(default=None, gt=0)
    price: Decimal | None = Field(default=None, ge=0)
    split_factor: Decimal | None = None
    allocation_method: Literal["LIFO", "FIFO"] | None = None

    # Non-investment rows only
    amount: Decimal | None = None
    description: str | None = None


class LedgerTransactionResponse(BaseModel):
    """Schema for LedgerTransaction API response."""

    id: str
    account_id: str
    date: dt.date
    amount: Decimal
    transfer_type: str
    participant_id: str | None = None
    category_id: str | None = None
    description: str | None = None
    ancillary_numeric: Decimal | None = None
    created_at: dt.datetime

    # Computed fields - populated from relationships
    participant_name: str | None = None
    category_name: str | None = None
    record_kind: str | None = None  # "purchase" / "sale" / "split" / None

    model_config = ConfigDict(from_attributes=True)
