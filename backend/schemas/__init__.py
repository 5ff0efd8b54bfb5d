"""Pydantic schemas for API request/response validation."""

from .account import AccountCreate, AccountResponse, AccountUpdate, AccountValueResponse
from .ledger import CashTransactionCreate, LedgerTransactionResponse, TransactionUpdate
from .lot import (
    LotSummaryResponse,
    PositionResponse,
    PurchaseCreate,
    SaleAllocationResponse,
    SaleCreate,
    SplitCreate,
    StockLotResponse,
    StockSaleResponse,
    StockSplitResponse,
)
from .performance import PeriodReturn, PeriodReturnsResponse, TimeWeightedReturnResponse

__all__ = [
    "AccountCreate",
    "AccountResponse",
    "AccountUpdate",
    "AccountValueResponse",
    "CashTransactionCreate",
    "LedgerTransactionResponse",
    "LotSummaryResponse",
    "PeriodReturn",
    "PeriodReturnsResponse",
    "PositionResponse",
    "PurchaseCreate",
    "SaleAllocationResponse",
    "SaleCreate",
    "SplitCreate",
    "StockLotResponse",
    "StockSaleResponse",
    "StockSplitResponse",
    "TimeWeightedReturnResponse",
    "TransactionUpdate",
]
