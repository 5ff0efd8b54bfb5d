"""StockSplit and SplitAllocation models."""

from sqlalchemy import CheckConstraint, Column, DateTime, ForeignKey, Numeric, String
from sqlalchemy.orm import relationship

from database import Base
from models.utils import generate_uuid, utc_now


class StockSplit(Base):
    """A split of one ticker by ``split_factor`` (2 for a 2-for-1 split)."""

    __tablename__ = "stock_splits"
    __table_args__ = (
        CheckConstraint("split_factor > 0", name="ck_stock_split_factor_positive"),
    )

    id = Column(String(36), primary_key=True, default=generate_uuid)
    account_id = Column(String(36), ForeignKey("accounts.id"), nullable=False, index=True)
    security_id = Column(String(36), ForeignKey("securities.id"), nullable=False, index=True)
    ledger_transaction_id = Column(
        String(36), ForeignKey("ledger_transactions.id"), nullable=False, unique=True
    )
    ticker = Column(String, nullable=False, index=True)
    split_factor = Column(Numeric(18, 8), nullable=False)
    created_at = Column(DateTime, default=utc_now)

    # Relationships
    account = relationship("Account", back_populates="stock_splits")
    security = relationship("Security", back_populates="stock_splits")
    ledger_transaction = relationship("LedgerTransaction")
    allocations = relationship(
        "SplitAllocation", back_populates="split", cascade="all, delete-orphan"
    )

    @property
    def split_date(self):
        return self.ledger_transaction.date if self.ledger_transaction else None


class SplitAllocation(Base):
    """Marks a lot as rescaled by a split so the split can be undone."""

    __tablename__ = "split_allocations"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    split_id = Column(String(36), ForeignKey("stock_splits.id"), nullable=False, index=True)
    lot_id = Column(String(36), ForeignKey("stock_lots.id"), nullable=False, index=True)
    created_at = Column(DateTime, default=utc_now)

    # Relationships
    split = relationship("StockSplit", back_populates="allocations")
    lot = relationship("StockLot", back_populates="split_allocations")
