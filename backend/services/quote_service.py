"""Quote service - closing prices for valuation.

Thin layer over a MarketDataProvider that resolves non-trading days to
the most recent prior trading day, memoises closes per (ticker, date)
and turns an empty answer into UpstreamUnavailableError.
"""

import logging
from datetime import date
from decimal import Decimal
from typing import Optional

from integrations.market_data_protocol import MarketDataProvider
from services.exceptions import UpstreamUnavailableError
from utils.trading_calendar import previous_trading_day

logger = logging.getLogger(__name__)


class QuoteService:
    """Closing-price lookups for the valuation and performance services."""

    def __init__(self, provider: Optional[MarketDataProvider] = None):
        """Initialize with an optional provider for dependency injection.

        Args:
            provider: Market data provider. If None, a YahooFinanceClient
                     is created on first use.
        """
        self._provider = provider
        self._cache: dict[tuple[str, date], Decimal] = {}

    @property
    def provider(self) -> MarketDataProvider:
        """Get the market data provider, creating if not provided."""
        if self._provider is None:
            from integrations.yahoo_finance_client import YahooFinanceClient

            self._provider = YahooFinanceClient()
        return self._provider

    def close_on(self, ticker: str, on_date: date) -> Decimal:
        """Closing price of ``ticker`` on ``on_date``.

        Weekends and market holidays resolve to the previous trading day.
        """
        symbol = ticker.upper()
        trading_day = previous_trading_day(on_date)
        key = (symbol, trading_day)
        if key in self._cache:
            return self._cache[key]

        try:
            prices = self.provider.get_price_history([symbol], trading_day, trading_day)
        except Exception as exc:
            raise UpstreamUnavailableError(
                f"Price lookup failed for {symbol} on {trading_day}", ticker=symbol
            ) from exc

        results = [pr for pr in prices.get(symbol, []) if pr.price_date <= trading_day]
        if not results:
            raise UpstreamUnavailableError(
                f"No closing price for {symbol} on {trading_day}", ticker=symbol
            )

        close = results[-1].close_price
        self._cache[key] = close
        logger.debug("Close for %s on %s: %s", symbol, trading_day, close)
        return close

    def latest_close(self, ticker: str) -> Decimal:
        """Most recent closing price of ``ticker``."""
        return self.close_on(ticker, date.today())
