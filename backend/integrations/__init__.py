"""External API integrations.

This package contains:
- Market data protocol: Common interface for closing-price providers
- Yahoo Finance client: yfinance-backed implementation of that interface
"""

from integrations.market_data_protocol import MarketDataProvider, PriceResult

__all__ = [
    "MarketDataProvider",
    "PriceResult",
]
