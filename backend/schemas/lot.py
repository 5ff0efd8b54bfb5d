"""Pydantic schemas for stock lots, sales and splits."""

import datetime as dt
from decimal import Decimal
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field


class PurchaseCreate(BaseModel):
    """Schema for recording a share purchase."""

    ticker: str
    date: dt.date
    shares: Decimal = Field(gt=0)
    cost_basis_per_share: Decimal = Field(ge=0)


class SaleCreate(BaseModel):
    """Schema for recording a share sale."""

    ticker: str
    date: dt.date
    shares: Decimal = Field(gt=0)
    price_per_share: Decimal = Field(ge=0)
    allocation_method: Literal["LIFO", "FIFO"] | None = None  # settings default


class SplitCreate(BaseModel):
    """Schema for recording a stock split (2 for a 2-for-1 split)."""

    ticker: str
    date: dt.date
    split_factor: Decimal


class SaleAllocationResponse(BaseModel):
    """Schema for SaleAllocation API response."""

    id: str
    lot_id: str
    sale_id: str
    quantity: Decimal
    cost_basis_per_share: Decimal

    model_config = ConfigDict(from_attributes=True)


class StockLotResponse(BaseModel):
    """Schema for StockLot API response."""

    id: str
    account_id: str
    security_id: str
    ledger_transaction_id: str
    ticker: str
    purchase_date: dt.date | None
    shares_purchased: Decimal
    cost_basis_per_share: Decimal
    shares_remaining: Decimal
    is_closed: bool
    created_at: dt.datetime

    model_config = ConfigDict(from_attributes=True)


class StockSaleResponse(BaseModel):
    """Schema for StockSale API response."""

    id: str
    account_id: str
    ledger_transaction_id: str
    ticker: str
    sale_date: dt.date | None
    shares_sold: Decimal
    sale_price_per_share: Decimal
    allocation_method: str
    allocations: list[SaleAllocationResponse] = []

    # Computed by the API layer: shares the lots could not cover
    unallocated_shares: Decimal = Decimal("0")

    model_config = ConfigDict(from_attributes=True)


class StockSplitResponse(BaseModel):
    """Schema for StockSplit API response."""

    id: str
    account_id: str
    ledger_transaction_id: str
    ticker: str
    split_date: dt.date | None
    split_factor: Decimal
    shares_after_split: Decimal | None = None

    model_config = ConfigDict(from_attributes=True)


class PositionResponse(BaseModel):
    """Net shares held of one ticker."""

    ticker: str
    shares: Decimal


class LotSummaryResponse(BaseModel):
    """Aggregated lot summary for a ticker within an account."""

    ticker: str
    security_name: str | None = None
    lotted_quantity: Decimal
    lot_count: int
    total_cost_basis: Decimal | None = None
    unrealized_gain_loss: Decimal | None = None
    realized_gain_loss: Decimal
