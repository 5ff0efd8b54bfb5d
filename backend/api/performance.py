"""Performance API endpoints."""

import logging
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from api.helpers import get_or_404, raise_http_error
from database import get_db
from models import Account
from schemas import PeriodReturnsResponse, TimeWeightedReturnResponse
from services.exceptions import LedgerError
from services.performance_service import PerformanceService
from utils.query_params import parse_periods

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/accounts", tags=["performance"])


def get_performance_service() -> PerformanceService:
    """Get a PerformanceService instance (overridable in tests)."""
    return PerformanceService()


@router.get("/{account_id}/performance/twr", response_model=TimeWeightedReturnResponse)
def get_time_weighted_return(
    account_id: str,
    start: date = Query(..., description="First day of the period (inclusive)"),
    end: date = Query(..., description="Last day of the period (inclusive)"),
    db: Session = Depends(get_db),
    service: PerformanceService = Depends(get_performance_service),
):
    """Time-weighted return, in percent, over an explicit date range."""
    get_or_404(db, Account, account_id, "Account not found")
    try:
        twr = service.time_weighted_return(db, account_id, start, end)
    except LedgerError as e:
        raise_http_error(e)
    return {
        "account_id": account_id,
        "start_date": start,
        "end_date": end,
        "twr_percent": twr,
    }


@router.get("/{account_id}/performance/returns", response_model=PeriodReturnsResponse)
def get_period_returns(
    account_id: str,
    periods: Optional[str] = Query(
        default=None, description="Comma-separated periods, e.g. 1M,YTD"
    ),
    end_date: Optional[date] = Query(default=None),
    db: Session = Depends(get_db),
    service: PerformanceService = Depends(get_performance_service),
):
    """Time-weighted returns over named periods (1M, 3M, QTD, YTD, 1Y, 3Y, LQ, LY)."""
    account = get_or_404(db, Account, account_id, "Account not found")
    try:
        results = service.get_period_returns(
            db, account_id, parse_periods(periods), end_date=end_date
        )
    except LedgerError as e:
        raise_http_error(e)
    return {
        "account_id": account_id,
        "account_name": account.name,
        "periods": [
            {
                "period": r.period,
                "twr_percent": r.twr,
                "start_date": r.start_date,
                "end_date": r.end_date,
                "has_sufficient_data": r.has_sufficient_data,
            }
            for r in results
        ],
    }
