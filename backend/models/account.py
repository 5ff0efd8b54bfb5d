"""Account model - a ledger that owns cash transactions and stock lots."""

from sqlalchemy import Boolean, Column, DateTime, String
from sqlalchemy.orm import relationship

from database import Base
from models.utils import generate_uuid, utc_now


class Account(Base):
    """A single ledger account.

    Cash movements live in ledger transactions; brokerage accounts also
    carry stock lots, sales and splits, each tied to one ledger row.
    """

    __tablename__ = "accounts"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    name = Column(String, nullable=False, unique=True)
    institution_name = Column(String, nullable=True)  # e.g., "Vanguard"
    account_type = Column(String, nullable=True)  # e.g., "brokerage", "checking"
    is_active = Column(Boolean, default=True)
    created_at = Column(DateTime, default=utc_now)
    updated_at = Column(
        DateTime,
        default=utc_now,
        onupdate=utc_now,
    )

    # Relationships
    transactions = relationship(
        "LedgerTransaction", back_populates="account", cascade="all, delete-orphan"
    )
    participants = relationship(
        "Participant", back_populates="account", cascade="all, delete-orphan"
    )
    categories = relationship(
        "Category", back_populates="account", cascade="all, delete-orphan"
    )
    stock_lots = relationship("StockLot", back_populates="account")
    stock_sales = relationship("StockSale", back_populates="account")
    stock_splits = relationship("StockSplit", back_populates="account")
