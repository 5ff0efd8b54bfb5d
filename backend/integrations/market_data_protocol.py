"""Interface for closing-price feeds used to value holdings.

The quote service only depends on this protocol, so tests swap in an
in-memory provider and production uses the Yahoo Finance client.
"""

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Protocol


@dataclass
class PriceResult:
    """One daily close of a ticker."""

    symbol: str
    price_date: date  # trading day the close belongs to, not the day asked for
    close_price: Decimal
    source: str


class MarketDataProvider(Protocol):
    """A source of daily closing prices."""

    @property
    def provider_name(self) -> str:
        ...

    def get_price_history(
        self, symbols: list[str], start_date: date, end_date: date
    ) -> dict[str, list[PriceResult]]:
        """Daily closes per symbol for ``start_date..end_date`` inclusive.

        Every requested symbol is a key of the result; a symbol with no
        data maps to an empty list rather than raising.
        """
        ...
