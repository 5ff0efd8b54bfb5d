"""StockSale model."""

from sqlalchemy import CheckConstraint, Column, DateTime, ForeignKey, Numeric, String
from sqlalchemy.orm import relationship

from database import Base
from models.utils import generate_uuid, utc_now


class StockSale(Base):
    """A sale of shares of one ticker, allocated across that ticker's lots."""

    __tablename__ = "stock_sales"
    __table_args__ = (
        CheckConstraint("shares_sold > 0", name="ck_stock_sale_shares_sold_positive"),
        CheckConstraint("sale_price_per_share >= 0", name="ck_stock_sale_price_non_negative"),
    )

    id = Column(String(36), primary_key=True, default=generate_uuid)
    account_id = Column(String(36), ForeignKey("accounts.id"), nullable=False, index=True)
    security_id = Column(String(36), ForeignKey("securities.id"), nullable=False, index=True)
    ledger_transaction_id = Column(
        String(36), ForeignKey("ledger_transactions.id"), nullable=False, unique=True
    )
    ticker = Column(String, nullable=False, index=True)
    shares_sold = Column(Numeric(18, 8), nullable=False)
    sale_price_per_share = Column(Numeric(18, 6), nullable=False)
    allocation_method = Column(String, nullable=False)  # "LIFO" / "FIFO"
    created_at = Column(DateTime, default=utc_now)

    # Relationships
    account = relationship("Account", back_populates="stock_sales")
    security = relationship("Security", back_populates="stock_sales")
    ledger_transaction = relationship("LedgerTransaction")
    allocations = relationship(
        "SaleAllocation", back_populates="sale", cascade="all, delete-orphan"
    )

    @property
    def sale_date(self):
        return self.ledger_transaction.date if self.ledger_transaction else None
