"""Pytest configuration and fixtures."""

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from api.accounts import get_valuation_service
from api.performance import get_performance_service
from database import Base, configure_sqlite, get_db
from main import app
from services.performance_service import PerformanceService
from services.quote_service import QuoteService
from services.valuation_service import ValuationService
# Pytest fixtures - imported to make them available to tests
from tests.fixtures import (  # noqa: F401
    account,
    second_account,
    security,
)
from tests.fixtures.mocks import MockMarketDataProvider


@pytest.fixture(name="db")
def db_fixture():
    """Create an in-memory SQLite database for testing."""
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    configure_sqlite(engine)
    Base.metadata.create_all(bind=engine)

    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    session = TestingSessionLocal()

    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


@pytest.fixture(name="market_data")
def market_data_fixture():
    """An empty in-memory price feed; tests add closes with ``set_close``."""
    return MockMarketDataProvider()


@pytest.fixture(name="valuation_service")
def valuation_service_fixture(market_data):
    return ValuationService(quote_service=QuoteService(provider=market_data))


@pytest.fixture(name="performance_service")
def performance_service_fixture(valuation_service):
    return PerformanceService(valuation_service=valuation_service)


@pytest.fixture(name="client")
def client_fixture(db, valuation_service, performance_service):
    """Create a test client with the test database and the mock price feed."""

    def override_get_db():
        try:
            yield db
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_valuation_service] = lambda: valuation_service
    app.dependency_overrides[get_performance_service] = lambda: performance_service
    client = TestClient(app)
    yield client
    app.dependency_overrides.clear()
