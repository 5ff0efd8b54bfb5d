"""StockLot model - persistent record of one share purchase."""

from decimal import Decimal

from sqlalchemy import CheckConstraint, Column, DateTime, ForeignKey, Numeric, String
from sqlalchemy.orm import relationship

from database import Base
from models.utils import generate_uuid, utc_now


class StockLot(Base):
    """A lot of shares bought in a single purchase.

    ``shares_remaining`` starts equal to ``shares_purchased``, drops as
    sales are allocated against the lot and is rescaled by splits. The
    purchase date is the date of the owning ledger transaction.
    """

    __tablename__ = "stock_lots"
    __table_args__ = (
        CheckConstraint("cost_basis_per_share >= 0", name="ck_stock_lot_cost_basis_non_negative"),
        CheckConstraint("shares_purchased > 0", name="ck_stock_lot_shares_purchased_positive"),
        CheckConstraint("shares_remaining >= 0", name="ck_stock_lot_shares_remaining_non_negative"),
    )

    id = Column(String(36), primary_key=True, default=generate_uuid)
    account_id = Column(String(36), ForeignKey("accounts.id"), nullable=False, index=True)
    security_id = Column(String(36), ForeignKey("securities.id"), nullable=False, index=True)
    ledger_transaction_id = Column(
        String(36), ForeignKey("ledger_transactions.id"), nullable=False, unique=True
    )
    ticker = Column(String, nullable=False, index=True)
    shares_purchased = Column(Numeric(18, 8), nullable=False)
    cost_basis_per_share = Column(Numeric(18, 6), nullable=False, default=Decimal("0"))
    shares_remaining = Column(Numeric(18, 8), nullable=False)
    created_at = Column(DateTime, default=utc_now)
    updated_at = Column(
        DateTime,
        default=utc_now,
        onupdate=utc_now,
    )

    # Relationships
    account = relationship("Account", back_populates="stock_lots")
    security = relationship("Security", back_populates="stock_lots")
    ledger_transaction = relationship("LedgerTransaction")
    sale_allocations = relationship("SaleAllocation", back_populates="lot")
    split_allocations = relationship(
        "SplitAllocation", back_populates="lot", cascade="all, delete-orphan"
    )

    @property
    def purchase_date(self):
        return self.ledger_transaction.date if self.ledger_transaction else None

    @property
    def is_closed(self) -> bool:
        return self.shares_remaining is not None and self.shares_remaining <= 0
