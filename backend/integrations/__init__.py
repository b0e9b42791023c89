"""External API integrations.

This package contains:
- Market data protocol: Common interface for price providers
- Yahoo Finance client: Equity prices via yfinance
- CoinGecko client: Crypto prices via the CoinGecko REST API
"""

from integrations.exceptions import (
    ProviderAPIError,
    ProviderConnectionError,
    ProviderDataError,
    ProviderError,
)
from integrations.market_data_protocol import MarketDataProvider, PriceResult

__all__ = [
    "MarketDataProvider",
    "PriceResult",
    "ProviderAPIError",
    "ProviderConnectionError",
    "ProviderDataError",
    "ProviderError",
]
