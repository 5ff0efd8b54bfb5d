"""LedgerTransaction model - one dated cash movement in an account."""

from enum import Enum

from sqlalchemy import Column, Date, DateTime, ForeignKey, Numeric, String
from sqlalchemy.orm import relationship

from database import Base
from models.utils import generate_uuid, utc_now


class TransferType(str, Enum):
    """Direction and scope of a ledger movement.

    Only the external types are cash flows for return calculations.
    Internal types move value between cash and holdings inside the
    account; zero-sum changes (splits) move nothing.
    """

    WITHDRAWAL_EXTERNAL = "withdrawal_external"
    DEPOSIT_EXTERNAL = "deposit_external"
    WITHDRAWAL_INTERNAL = "withdrawal_internal"
    DEPOSIT_INTERNAL = "deposit_internal"
    ZERO_SUM_CHANGE = "zero_sum_change"

    @property
    def is_deposit(self) -> bool:
        return self in (TransferType.DEPOSIT_EXTERNAL, TransferType.DEPOSIT_INTERNAL)

    @property
    def is_withdrawal(self) -> bool:
        return self in (TransferType.WITHDRAWAL_EXTERNAL, TransferType.WITHDRAWAL_INTERNAL)


class LedgerTransaction(Base):
    """A ledger row.

    Purchases, sales and splits each own exactly one ledger row; the
    typed record and the row are created and removed together.
    """

    __tablename__ = "ledger_transactions"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    account_id = Column(String(36), ForeignKey("accounts.id"), nullable=False, index=True)
    date = Column(Date, nullable=False, index=True)
    amount = Column(Numeric(18, 4), nullable=False)
    transfer_type = Column(String, nullable=False)  # TransferType value
    participant_id = Column(String(36), ForeignKey("participants.id"), nullable=True)
    category_id = Column(String(36), ForeignKey("categories.id"), nullable=True)
    description = Column(String, nullable=True)
    ancillary_numeric = Column(Numeric(18, 8), nullable=True)  # post-split share total
    created_at = Column(DateTime, default=utc_now)
    updated_at = Column(
        DateTime,
        default=utc_now,
        onupdate=utc_now,
    )

    # Relationships
    account = relationship("Account", back_populates="transactions")
    participant = relationship("Participant")
    category = relationship("Category")
    stock_lot = relationship("StockLot", uselist=False, viewonly=True)
    stock_sale = relationship("StockSale", uselist=False, viewonly=True)
    stock_split = relationship("StockSplit", uselist=False, viewonly=True)
