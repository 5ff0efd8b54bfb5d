"""Fixtures for tests that call the live Yahoo Finance API."""

import pytest

from integrations.yahoo_finance_client import YahooFinanceClient
from services.quote_service import QuoteService


@pytest.fixture
def yahoo_client():
    return YahooFinanceClient()


@pytest.fixture
def live_quotes(yahoo_client):
    return QuoteService(provider=yahoo_client)
