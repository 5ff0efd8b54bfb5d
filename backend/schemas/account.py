"""Pydantic schemas for account API request/response validation."""

from datetime import datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict


class AccountCreate(BaseModel):
    """Schema for creating a ledger account."""

    name: str
    institution_name: Optional[str] = None
    account_type: Optional[str] = None


class AccountUpdate(BaseModel):
    """Schema for updating an account."""

    name: Optional[str] = None
    institution_name: Optional[str] = None
    is_active: Optional[bool] = None


class AccountResponse(BaseModel):
    """Schema for Account API response."""

    id: str
    name: str
    institution_name: Optional[str] = None
    account_type: Optional[str] = None
    is_active: bool
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class AccountValueResponse(BaseModel):
    """Current value of an account split into cash and holdings."""

    account_id: str
    cash_value: Decimal
    holdings_value: Decimal
    total_value: Decimal
