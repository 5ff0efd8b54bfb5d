"""Investment API endpoints: purchases, sales, splits, lots and positions."""

import logging
from decimal import Decimal

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from api.helpers import get_or_404, raise_http_error
from database import get_db
from models import Account, StockLot, StockSale, StockSplit
from schemas import (
    LotSummaryResponse,
    PositionResponse,
    PurchaseCreate,
    SaleCreate,
    SplitCreate,
    StockLotResponse,
    StockSaleResponse,
    StockSplitResponse,
)
from services.exceptions import LedgerError
from services.lot_ledger_service import LotLedgerService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/accounts", tags=["investments"])


def _lot_response_dict(lot: StockLot) -> dict:
    return {
        "id": lot.id,
        "account_id": lot.account_id,
        "security_id": lot.security_id,
        "ledger_transaction_id": lot.ledger_transaction_id,
        "ticker": lot.ticker,
        "purchase_date": lot.purchase_date,
        "shares_purchased": lot.shares_purchased,
        "cost_basis_per_share": lot.cost_basis_per_share,
        "shares_remaining": lot.shares_remaining,
        "is_closed": lot.is_closed,
        "created_at": lot.created_at,
    }


def _sale_response_dict(sale: StockSale) -> dict:
    """Build a StockSaleResponse-compatible dict, including any uncovered shares."""
    allocated = sum((a.quantity for a in sale.allocations), Decimal("0"))
    return {
        "id": sale.id,
        "account_id": sale.account_id,
        "ledger_transaction_id": sale.ledger_transaction_id,
        "ticker": sale.ticker,
        "sale_date": sale.sale_date,
        "shares_sold": sale.shares_sold,
        "sale_price_per_share": sale.sale_price_per_share,
        "allocation_method": sale.allocation_method,
        "allocations": [
            {"id": a.id, "lot_id": a.lot_id, "sale_id": a.sale_id, "quantity": a.quantity}
            for a in sale.allocations
        ],
        "unallocated_shares": sale.shares_sold - allocated,
    }


def _split_response_dict(split: StockSplit) -> dict:
    txn = split.ledger_transaction
    return {
        "id": split.id,
        "account_id": split.account_id,
        "ledger_transaction_id": split.ledger_transaction_id,
        "ticker": split.ticker,
        "split_date": split.split_date,
        "split_factor": split.split_factor,
        "shares_after_split": txn.ancillary_numeric if txn else None,
    }


@router.post(
    "/{account_id}/investments/purchases",
    response_model=StockLotResponse,
    status_code=201,
)
def record_purchase(
    account_id: str,
    purchase: PurchaseCreate,
    db: Session = Depends(get_db),
):
    """Record a share purchase as a new lot."""
    get_or_404(db, Account, account_id, "Account not found")
    try:
        lot = LotLedgerService.record_purchase(
            db,
            account_id,
            purchase.ticker,
            purchase.date,
            purchase.shares,
            purchase.cost_basis_per_share,
        )
        db.commit()
        db.refresh(lot)
        return _lot_response_dict(lot)
    except LedgerError as e:
        raise_http_error(e)


@router.post(
    "/{account_id}/investments/sales",
    response_model=StockSaleResponse,
    status_code=201,
)
def record_sale(
    account_id: str,
    sale_data: SaleCreate,
    db: Session = Depends(get_db),
):
    """Record a share sale and allocate it across lots."""
    get_or_404(db, Account, account_id, "Account not found")
    try:
        sale = LotLedgerService.record_sale_event(
            db,
            account_id,
            sale_data.ticker,
            sale_data.date,
            sale_data.shares,
            sale_data.price_per_share,
            sale_data.allocation_method,
        )
        db.commit()
        db.refresh(sale)
        return _sale_response_dict(sale)
    except LedgerError as e:
        raise_http_error(e)


@router.post(
    "/{account_id}/investments/splits",
    response_model=StockSplitResponse,
    status_code=201,
)
def record_split(
    account_id: str,
    split_data: SplitCreate,
    db: Session = Depends(get_db),
):
    """Record a stock split and rescale the ticker's lots."""
    get_or_404(db, Account, account_id, "Account not found")
    try:
        split = LotLedgerService.record_split_event(
            db,
            account_id,
            split_data.ticker,
            split_data.date,
            split_data.split_factor,
        )
        db.commit()
        db.refresh(split)
        return _split_response_dict(split)
    except LedgerError as e:
        raise_http_error(e)


@router.get("/{account_id}/investments/lots", response_model=list[StockLotResponse])
def get_lots(
    account_id: str,
    ticker: str | None = Query(default=None),
    include_closed: bool = Query(default=True),
    db: Session = Depends(get_db),
):
    """Get lots for an account, optionally for a single ticker."""
    get_or_404(db, Account, account_id, "Account not found")
    if ticker:
        lots = LotLedgerService.get_lots_for_ticker(
            db, account_id, ticker, include_closed=include_closed
        )
    else:
        lots = LotLedgerService.get_lots_for_account(db, account_id, include_closed)
    return [_lot_response_dict(lot) for lot in lots]


@router.get(
    "/{account_id}/investments/lots/summary/{ticker}",
    response_model=LotSummaryResponse,
)
def get_lot_summary(
    account_id: str,
    ticker: str,
    db: Session = Depends(get_db),
):
    """Aggregated cost basis and realized gain/loss for one ticker."""
    get_or_404(db, Account, account_id, "Account not found")
    try:
        return LotLedgerService.get_lot_summary(db, account_id, ticker)
    except LedgerError as e:
        raise_http_error(e)


@router.get("/{account_id}/investments/positions", response_model=list[PositionResponse])
def get_positions(account_id: str, db: Session = Depends(get_db)):
    """Net shares held per ticker."""
    get_or_404(db, Account, account_id, "Account not found")
    positions = LotLedgerService.get_positions(db, account_id)
    return [{"ticker": ticker, "shares": shares} for ticker, shares in positions.items()]
