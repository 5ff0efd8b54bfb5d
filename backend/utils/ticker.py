"""Utility functions for handling ticker symbols."""

import re

_TICKER_RE = re.compile(r"^[A-Z0-9][A-Z0-9.\-^=]*$")


def normalize_ticker(ticker: str) -> str:
    """Return the canonical (stripped, uppercase) form of a ticker.

    Raises ValueError for blank tickers or ones containing characters
    Yahoo Finance symbols never use.
    """
    normalized = (ticker or "").strip().upper()
    if not normalized:
        raise ValueError("Ticker must not be blank")
    if not _TICKER_RE.match(normalized):
        raise ValueError(f"Invalid ticker symbol: {ticker!r}")
    return normalized
