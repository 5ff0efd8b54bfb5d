"""Category model."""

from sqlalchemy import Column, ForeignKey, String, UniqueConstraint
from sqlalchemy.orm import relationship

from database import Base
from models.utils import generate_uuid


class Category(Base):
    """A per-account transaction category (e.g., "Bought", "Sold", "Split")."""

    __tablename__ = "categories"
    __table_args__ = (
        UniqueConstraint("account_id", "name", name="uix_category_account_name"),
    )

    id = Column(String(36), primary_key=True, default=generate_uuid)
    account_id = Column(String(36), ForeignKey("accounts.id"), nullable=False, index=True)
    name = Column(String, nullable=False)

    # Relationships
    account = relationship("Account", back_populates="categories")
