"""SQLAlchemy ORM models."""

from .account import Account
from .category import Category
from .ledger_transaction import LedgerTransaction, TransferType
from .participant import Participant
from .sale_allocation import SaleAllocation
from .security import Security
from .stock_lot import StockLot
from .stock_sale import StockSale
from .stock_split import SplitAllocation, StockSplit
from .utils import generate_uuid, utc_now

__all__ = ["Account", "Category", "LedgerTransaction", "Participant", "SaleAllocation", "Security", "SplitAllocation", "StockLot", "StockSale", "StockSplit", "TransferType", "generate_uuid", "utc_now"]
