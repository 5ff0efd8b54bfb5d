"""Participant model - payees and payers referenced by ledger rows."""

from sqlalchemy import CheckConstraint, Column, ForeignKey, String, UniqueConstraint
from sqlalchemy.orm import relationship

from database import Base
from models.utils import generate_uuid


class Participant(Base):
    """The other side of a ledger transaction.

    For investment transactions the participant is the ticker itself: the
    payee of a purchase, the payer of a sale or split.
    """

    __tablename__ = "participants"
    __table_args__ = (
        UniqueConstraint(
            "account_id", "name", "participant_type",
            name="uix_participant_account_name_type",
        ),
        CheckConstraint(
            "participant_type IN ('payee', 'payer')",
            name="ck_participant_type",
        ),
    )

    id = Column(String(36), primary_key=True, default=generate_uuid)
    account_id = Column(String(36), ForeignKey("accounts.id"), nullable=False, index=True)
    name = Column(String, nullable=False)
    participant_type = Column(String, nullable=False)  # "payee" / "payer"

    # Relationships
    account = relationship("Account", back_populates="participants")
