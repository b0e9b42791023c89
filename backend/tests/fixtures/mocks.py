"""Mock price providers for testing."""

import time
from datetime import datetime
from decimal import Decimal

from integrations.exceptions import ProviderConnectionError, ProviderDataError
from integrations.market_data_protocol import PriceResult


class MockPriceProvider:
    """Mock market data provider with canned prices.

    Unknown symbols raise ProviderDataError. Symbols in ``failing`` (or
    every symbol, when ``should_fail`` is set) raise
    ProviderConnectionError. ``delay`` makes every lookup sleep first,
    for timeout tests.
    """

    def __init__(
        self,
        prices: dict[str, Decimal] | None = None,
        should_fail: bool = False,
        failing: set[str] | None = None,
        delay: float = 0.0,
        name: str = "mock",
    ):
        self.prices = dict(prices or {})
        self.should_fail = should_fail
        self.failing = set(failing or ())
        self.delay = delay
        self.name = name
        self.calls: list[str] = []

    @property
    def provider_name(self) -> str:
        return self.name

    def get_latest_price(self, symbol: str) -> PriceResult:
        self.calls.append(symbol)
        if self.delay:
            time.sleep(self.delay)
        if self.should_fail or symbol in self.failing:
            raise ProviderConnectionError(f"{self.name} unreachable", self.name)
        if symbol not in self.prices:
            raise ProviderDataError(f"No price for {symbol}", self.name)
        return PriceResult(
            symbol=symbol,
            price=Decimal(str(self.prices[symbol])),
            as_of=datetime(2024, 6, 3, 20, 0),
            source=self.name,
        )


SAMPLE_EQUITY_PRICES = {
    "AAPL": Decimal("130.00"),
    "MSFT": Decimal("410.50"),
    "VTI": Decimal("250.25"),
}

SAMPLE_CRYPTO_PRICES = {
    "BTC": Decimal("65000.00"),
    "ETH": Decimal("3200.00"),
}
