"""SaleAllocation model - shares of one lot consumed by one sale."""

from sqlalchemy import CheckConstraint, Column, DateTime, ForeignKey, Numeric, String
from sqlalchemy.orm import relationship

from database import Base
from models.utils import generate_uuid, utc_now


class SaleAllocation(Base):
    """Records a quantity taken from a stock lot by a sale.

    A single sale can create several allocations across lots. Removing
    the allocations and adding each quantity back to its lot restores
    the lots exactly.
    """

    __tablename__ = "sale_allocations"
    __table_args__ = (
        CheckConstraint("quantity > 0", name="ck_sale_allocation_quantity_positive"),
    )

    id = Column(String(36), primary_key=True, default=generate_uuid)
    lot_id = Column(String(36), ForeignKey("stock_lots.id"), nullable=False, index=True)
    sale_id = Column(String(36), ForeignKey("stock_sales.id"), nullable=False, index=True)
    quantity = Column(Numeric(18, 8), nullable=False)
    # lot cost basis when the shares were taken, in the same units as quantity
    cost_basis_per_share = Column(Numeric(18, 6), nullable=False)
    created_at = Column(DateTime, default=utc_now)

    # Relationships
    lot = relationship("StockLot", back_populates="sale_allocations")
    sale = relationship("StockSale", back_populates="allocations")
