"""Yahoo Finance closing-price provider (yfinance)."""

import logging
from datetime import date, timedelta
from decimal import Decimal

import pandas as pd
import yfinance as yf

from config import settings
from integrations.market_data_protocol import PriceResult

logger = logging.getLogger(__name__)

SOURCE = "yahoo"


def _close_series(df: pd.DataFrame, symbol: str) -> pd.Series | None:
    """Pull one symbol's Close column out of a yfinance frame.

    Recent yfinance releases return (field, symbol) MultiIndex columns even
    for a single ticker; older ones return flat columns.
    """
    if df.columns.nlevels > 1:
        key = ("Close", symbol)
    else:
        key = "Close"
    if key not in df.columns:
        return None
    closes = df[key].dropna()
    return None if closes.empty else closes


def _price_result(symbol: str, ts: pd.Timestamp, close) -> PriceResult:
    return PriceResult(
        symbol=symbol,
        price_date=ts.date(),
        close_price=Decimal(str(round(float(close), 6))),
        source=SOURCE,
    )


class YahooFinanceClient:
    """MarketDataProvider backed by ``yfinance.download``.

    Closes are requested with ``auto_adjust=False``: the ledger values a
    holding at the price it actually traded at, not a dividend-adjusted one.
    """

    def __init__(self, lookback_days: int | None = None):
        self._lookback_days = (
            lookback_days if lookback_days is not None else settings.QUOTE_LOOKBACK_DAYS
        )

    @property
    def provider_name(self) -> str:
        return SOURCE

    def get_price_history(
        self, symbols: list[str], start_date: date, end_date: date
    ) -> dict[str, list[PriceResult]]:
        """Fetch daily closes for ``symbols`` between two dates, inclusive.

        A single-date request (``start_date == end_date``) downloads a
        lookback window so weekends and holidays still resolve, and returns
        only the latest close on or before that date.

        Download or parse failures are logged and leave the affected
        symbols with an empty list.
        """
        if not symbols:
            return {}

        result: dict[str, list[PriceResult]] = {s: [] for s in symbols}
        single_date = start_date == end_date
        window_start = (
            start_date - timedelta(days=self._lookback_days) if single_date else start_date
        )

        logger.info(
            "Yahoo Finance: fetching closes for %s (%s to %s)",
            ", ".join(symbols), window_start, end_date,
        )

        try:
            # yfinance treats end as exclusive
            df = yf.download(
                tickers=symbols,
                start=window_start.isoformat(),
                end=(end_date + timedelta(days=1)).isoformat(),
                auto_adjust=False,
                progress=False,
            )
        except Exception:
            logger.warning("yfinance download failed for %s", symbols, exc_info=True)
            return result

        if df is None or df.empty:
            logger.warning("yfinance returned no data for %s", symbols)
            return result

        for symbol in symbols:
            try:
                closes = _close_series(df, symbol)
                if closes is None:
                    continue
                if single_date:
                    closes = closes[closes.index.date <= end_date]
                    if closes.empty:
                        continue
                    result[symbol].append(
                        _price_result(symbol, closes.index[-1], closes.iloc[-1])
                    )
                else:
                    result[symbol].extend(
                        _price_result(symbol, ts, close) for ts, close in closes.items()
                    )
            except Exception:
                logger.warning("Failed to parse closes for %s", symbol, exc_info=True)

        return result
