"""CoinGecko market data provider for cryptocurrency prices."""

import logging
import time as time_module
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation
from typing import Optional

import httpx

from integrations.exceptions import (
    ProviderAPIError,
    ProviderConnectionError,
    ProviderDataError,
)
from integrations.market_data_protocol import PriceResult

logger = logging.getLogger(__name__)

# Mapping for the most common crypto symbols.
# Covers the vast majority of real portfolios without a /search call.
_KNOWN_COIN_IDS: dict[str, str] = {
    "BTC": "bitcoin",
    "ETH": "ethereum",
    "SOL": "solana",
    "DOGE": "dogecoin",
    "ADA": "cardano",
    "XRP": "ripple",
    "DOT": "polkadot",
    "AVAX": "avalanche-2",
    "POL": "matic-network",
    "LINK": "chainlink",
    "LTC": "litecoin",
    "ATOM": "cosmos",
    "XLM": "stellar",
    "USDC": "usd-coin",
    "USDT": "tether",
    "BNB": "binancecoin",
    "SHIB": "shiba-inu",
    "UNI": "uniswap",
}

# Max retries for rate-limited requests
_MAX_RETRIES = 3
_BASE_DELAY_SECONDS = 1.0


class CoinGeckoClient:
    """Market data provider using the CoinGecko API for crypto prices."""

    def __init__(self, api_key: Optional[str] = None, timeout: float = 10.0):
        """Initialize with optional API key.

        Args:
            api_key: CoinGecko demo API key. If provided, uses the
                     x-cg-demo-api-key header for higher rate limits.
                     If None, uses the keyless public API.
            timeout: Per-request HTTP timeout in seconds.
        """
        headers: dict[str, str] = {}
        if api_key:
            headers["x-cg-demo-api-key"] = api_key
        self._client = httpx.Client(
            base_url="https://api.coingecko.com/api/v3",
            headers=headers,
            timeout=timeout,
        )
        self._resolved_ids: dict[str, str] = dict(_KNOWN_COIN_IDS)

    def close(self) -> None:
        """Close the underlying HTTP client."""
        self._client.close()

    @property
    def provider_name(self) -> str:
        return "coingecko"

    def _resolve_coin_id(self, symbol: str) -> str:
        """Resolve a ticker symbol to a CoinGecko coin ID.

        Checks the cached mapping first, then falls back to the
        /search endpoint, picking the exact symbol match with the best
        market cap rank.

        Raises:
            ProviderDataError: No coin matches the symbol.
        """
        upper = symbol.upper()
        if upper in self._resolved_ids:
            return self._resolved_ids[upper]

        response = self._request_with_retry("GET", "/search", params={"query": symbol})
        coins = [
            coin for coin in self._json(response).get("coins", [])
            if coin.get("symbol", "").upper() == upper
        ]
        if not coins:
            raise ProviderDataError(f"No CoinGecko coin for symbol {symbol}", self.provider_name)

        ranked = [c for c in coins if c.get("market_cap_rank") is not None]
        best = min(ranked, key=lambda c: c["market_cap_rank"]) if ranked else coins[0]

        coin_id = best["id"]
        self._resolved_ids[upper] = coin_id
        logger.info("CoinGecko: resolved %s -> %s", symbol, coin_id)
        return coin_id

    def _json(self, response: httpx.Response) -> dict:
        try:
            data = response.json()
        except ValueError as e:
            raise ProviderDataError(f"CoinGecko returned invalid JSON: {e}", self.provider_name) from e
        if not isinstance(data, dict):
            raise ProviderDataError("CoinGecko returned an unexpected payload", self.provider_name)
        return data

    def _request_with_retry(
        self, method: str, path: str, **kwargs
    ) -> httpx.Response:
        """Make an HTTP request with retry on 429 rate limit responses.

        Raises:
            ProviderConnectionError: Network failure or timeout.
            ProviderAPIError: Non-2xx response, or still rate limited
                after the last retry.
        """
        for attempt in range(_MAX_RETRIES):
            try:
                response = self._client.request(method, path, **kwargs)
            except httpx.TimeoutException as e:
                raise ProviderConnectionError(
                    f"CoinGecko request timed out: {path}", self.provider_name
                ) from e
            except httpx.HTTPError as e:
                raise ProviderConnectionError(
                    f"CoinGecko request failed: {e}", self.provider_name
                ) from e

            if response.status_code == 429 and attempt < _MAX_RETRIES - 1:
                delay = _BASE_DELAY_SECONDS * (2 ** attempt)
                logger.warning(
                    "CoinGecko: rate limited, retrying in %.1fs (attempt %d/%d)",
                    delay, attempt + 1, _MAX_RETRIES,
                )
                time_module.sleep(delay)
                continue

            try:
                response.raise_for_status()
            except httpx.HTTPStatusError as e:
                raise ProviderAPIError(
                    f"CoinGecko returned HTTP {response.status_code} for {path}",
                    self.provider_name,
                    status_code=response.status_code,
                ) from e
            return response

        raise ProviderAPIError(
            "CoinGecko: max retries exceeded", self.provider_name, status_code=429
        )

    def get_latest_price(self, symbol: str) -> PriceResult:
        """Fetch the current USD price for a crypto symbol from /simple/price.

        Raises:
            ProviderError: Resolution, transport, or payload failure.
        """
        coin_id = self._resolve_coin_id(symbol)
        response = self._request_with_retry(
            "GET",
            "/simple/price",
            params={
                "ids": coin_id,
                "vs_currencies": "usd",
                "include_last_updated_at": "true",
            },
        )
        quote = self._json(response).get(coin_id)
        if not quote or "usd" not in quote:
            raise ProviderDataError(f"No CoinGecko price for {symbol} ({coin_id})", self.provider_name)

        try:
            price = Decimal(str(quote["usd"]))
        except (InvalidOperation, ValueError) as e:
            raise ProviderDataError(
                f"Unparseable CoinGecko price for {symbol}: {quote['usd']!r}", self.provider_name
            ) from e

        updated = quote.get("last_updated_at")
        if updated:
            as_of = datetime.fromtimestamp(updated, tz=timezone.utc).replace(tzinfo=None)
        else:
            as_of = datetime.now(timezone.utc).replace(tzinfo=None)

        return PriceResult(symbol=symbol, price=price, as_of=as_of, source=self.provider_name)
