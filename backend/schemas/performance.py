"""Pydantic schemas for performance API responses."""

from datetime import date
from decimal import Decimal

from pydantic import BaseModel


class TimeWeightedReturnResponse(BaseModel):
    """Time-weighted return over an explicit date range."""

    account_id: str
    start_date: date
    end_date: date
    twr_percent: Decimal


class PeriodReturn(BaseModel):
    """Return calculation for a single named period."""

    period: str  # "1M", "QTD", "YTD", etc.
    twr_percent: Decimal | None
    start_date: date
    end_date: date
    has_sufficient_data: bool


class PeriodReturnsResponse(BaseModel):
    """Returns for one account over several named periods."""

    account_id: str
    account_name: str
    periods: list[PeriodReturn]
