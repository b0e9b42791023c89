"""Pytest configuration and fixtures."""

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from api.helpers import get_market_data_service
from database import Base, get_db
from main import app
from services.market_data_service import MarketDataService
# Pytest fixtures - imported to make them available to tests
from tests.fixtures import (  # noqa: F401
    OWNER_ID,
    account,
    account_with_lots,
    funded_account,
)
from tests.fixtures.mocks import (
    SAMPLE_CRYPTO_PRICES,
    SAMPLE_EQUITY_PRICES,
    MockPriceProvider,
)


@pytest.fixture(name="db")
def db_fixture():
    """Create an in-memory SQLite database for testing."""
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)

    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    session = TestingSessionLocal()

    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture(name="mock_market_data")
def mock_market_data_fixture():
    """MarketDataService backed by mock providers with sample prices."""
    return MarketDataService(
        provider=MockPriceProvider(SAMPLE_EQUITY_PRICES, name="mock-equity"),
        crypto_provider=MockPriceProvider(SAMPLE_CRYPTO_PRICES, name="mock-crypto"),
        timeout=2.0,
        max_workers=2,
    )


@pytest.fixture(name="failing_market_data")
def failing_market_data_fixture():
    """MarketDataService whose providers are unreachable."""
    return MarketDataService(
        provider=MockPriceProvider(should_fail=True, name="mock-equity"),
        crypto_provider=MockPriceProvider(should_fail=True, name="mock-crypto"),
        timeout=2.0,
        max_workers=2,
    )


def _make_client(db, market_data: MarketDataService) -> TestClient:
    def override_get_db():
        try:
            yield db
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_market_data_service] = lambda: market_data
    return TestClient(app, headers={"X-User-Id": OWNER_ID})


@pytest.fixture(name="client")
def client_fixture(db, mock_market_data):
    """Create a test client with the test database, acting as OWNER_ID."""
    client = _make_client(db, mock_market_data)
    yield client
    app.dependency_overrides.clear()


@pytest.fixture(name="client_with_failing_prices")
def client_with_failing_prices_fixture(db, failing_market_data):
    """Create a test client whose price lookups always fail."""
    client = _make_client(db, failing_market_data)
    yield client
    app.dependency_overrides.clear()
