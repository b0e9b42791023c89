"""Market data provider protocol definitions.

Defines the interface for price feeds consulted when refreshing
holding prices.
"""

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Protocol


@dataclass
class PriceResult:
    """The latest known price for a symbol."""

    symbol: str
    price: Decimal
    as_of: datetime  # Naive UTC time the quote refers to
    source: str  # e.g., "yahoo"


class MarketDataProvider(Protocol):
    """Protocol for market data providers.

    Implementations fetch price data from external sources.
    """

    @property
    def provider_name(self) -> str:
        """Return the provider name (e.g., 'yahoo')."""
        ...

    def get_latest_price(self, symbol: str) -> PriceResult:
        """Fetch the most recent price for a symbol.

        Raises:
            ProviderError: (or a subclass) when the symbol is unknown,
                the provider is unreachable, or the response is unusable.
        """
        ...
