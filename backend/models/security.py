"""Security model - master ticker list."""

from sqlalchemy import Column, DateTime, String
from sqlalchemy.orm import relationship

from database import Base
from models.utils import generate_uuid, utc_now


class Security(Base):
    """A ticker that has been bought, sold or split in some account.

    Tickers are stored normalized (see ``utils.ticker``); lots, sales and
    splits keep a denormalized copy of the ticker for ordering queries.
    """

    __tablename__ = "securities"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    ticker = Column(String, nullable=False, unique=True)
    name = Column(String, nullable=True)
    created_at = Column(DateTime, default=utc_now)
    updated_at = Column(DateTime, default=utc_now, onupdate=utc_now)

    stock_lots = relationship("StockLot", back_populates="security")
    stock_sales = relationship("StockSale", back_populates="security")
    stock_splits = relationship("StockSplit", back_populates="security")

    def __repr__(self) -> str:
        return f"<Security {self.ticker}>"
