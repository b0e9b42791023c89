"""Market data service: routes price lookups to the equity or crypto provider."""

import logging
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeoutError
from decimal import ROUND_HALF_UP
from typing import Optional, Union

from config import settings
from integrations.exceptions import ProviderError
from integrations.market_data_protocol import MarketDataProvider, PriceResult
from models import AssetKind
from services.exceptions import PriceUnavailableError
from services.lot_ledger_service import QUANTUM

logger = logging.getLogger(__name__)

LookupOutcome = Union[PriceResult, PriceUnavailableError]


class MarketDataService:
    """Orchestrates price lookups via pluggable providers.

    Routes crypto holdings to a dedicated crypto provider (CoinGecko)
    and equities to the default provider (Yahoo Finance). Every lookup
    is bounded by a timeout, and every failure mode (unknown symbol,
    network error, rate limit, timeout, non-positive quote) surfaces as
    PriceUnavailableError. A failed lookup never yields a zero price.
    """

    def __init__(
        self,
        provider: Optional[MarketDataProvider] = None,
        crypto_provider: Optional[MarketDataProvider] = None,
        timeout: Optional[float] = None,
        max_workers: Optional[int] = None,
    ):
        """Initialize with optional providers for dependency injection.

        Args:
            provider: Default market data provider (equities). If None,
                     a YahooFinanceClient is created on first use.
            crypto_provider: Crypto market data provider. If None,
                            a CoinGeckoClient is created on first use.
            timeout: Seconds allowed per lookup. Defaults to
                     PRICE_LOOKUP_TIMEOUT_SECONDS.
            max_workers: Concurrent lookups in a batch. Defaults to
                     PRICE_REFRESH_MAX_WORKERS.
        """
        self._provider = provider
        self._crypto_provider = crypto_provider
        self.timeout = timeout if timeout is not None else settings.PRICE_LOOKUP_TIMEOUT_SECONDS
        self.max_workers = max_workers or settings.PRICE_REFRESH_MAX_WORKERS

    @property
    def provider(self) -> MarketDataProvider:
        """Get the default market data provider, creating if not provided."""
        if self._provider is None:
            from integrations.yahoo_finance_client import YahooFinanceClient

            self._provider = YahooFinanceClient(timeout=self.timeout)
        return self._provider

    @property
    def crypto_provider(self) -> MarketDataProvider:
        """Get the crypto market data provider, creating if not provided."""
        if self._crypto_provider is None:
            from integrations.coingecko_client import CoinGeckoClient

            self._crypto_provider = CoinGeckoClient(
                api_key=settings.COINGECKO_API_KEY or None,
                timeout=self.timeout,
            )
        return self._crypto_provider

    def provider_for(self, asset_kind: AssetKind | str) -> MarketDataProvider:
        if AssetKind(asset_kind) == AssetKind.CRYPTO:
            return self.crypto_provider
        return self.provider

    def lookup_price(self, identifier: str, asset_kind: AssetKind | str) -> PriceResult:
        """Look up the current price of one security.

        Raises:
            PriceUnavailableError: The provider failed, timed out, or
                returned a price that is not strictly positive.
        """
        provider = self.provider_for(asset_kind)
        executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="price-lookup")
        try:
            future = executor.submit(provider.get_latest_price, identifier)
            result = future.result(timeout=self.timeout)
        except FutureTimeoutError:
            logger.warning(
                "Price lookup for %s timed out after %.1fs (%s)",
                identifier, self.timeout, provider.provider_name,
            )
            raise PriceUnavailableError(
                f"Price lookup for {identifier} timed out",
                identifier=identifier,
                provider=provider.provider_name,
                reason="timeout",
            )
        except ProviderError as e:
            logger.warning("Price lookup for %s failed (%s): %s", identifier, provider.provider_name, e)
            raise PriceUnavailableError(
                f"Price unavailable for {identifier}: {e}",
                identifier=identifier,
                provider=provider.provider_name,
                reason=type(e).__name__,
            ) from e
        except Exception as e:
            logger.warning(
                "Price lookup for %s raised unexpectedly (%s)",
                identifier, provider.provider_name, exc_info=True,
            )
            raise PriceUnavailableError(
                f"Price unavailable for {identifier}: {e}",
                identifier=identifier,
                provider=provider.provider_name,
                reason=type(e).__name__,
            ) from e
        finally:
            # Do not block on a lookup that overran its timeout
            executor.shutdown(wait=False)

        if (
            result.price is None
            or not result.price.is_finite()
            # Rounds to zero at the stored scale
            or result.price.quantize(QUANTUM, rounding=ROUND_HALF_UP) <= 0
        ):
            logger.warning("Price lookup for %s returned unusable price %s", identifier, result.price)
            raise PriceUnavailableError(
                f"Price unavailable for {identifier}: provider returned {result.price}",
                identifier=identifier,
                provider=provider.provider_name,
                reason="non_positive_price",
            )
        return result

    def lookup_prices(
        self, requests: list[tuple[str, AssetKind | str]]
    ) -> dict[str, LookupOutcome]:
        """Look up many prices concurrently.

        Each lookup succeeds or fails on its own; a failure is returned
        in place of that identifier's PriceResult, never raised.
        """
        if not requests:
            return {}

        outcomes: dict[str, LookupOutcome] = {}
        with ThreadPoolExecutor(
            max_workers=min(self.max_workers, len(requests)),
            thread_name_prefix="price-refresh",
        ) as executor:
            futures = {
                identifier: executor.submit(self.lookup_price, identifier, asset_kind)
                for identifier, asset_kind in requests
            }
            for identifier, future in futures.items():
                try:
                    outcomes[identifier] = future.result()
                except PriceUnavailableError as e:
                    outcomes[identifier] = e
        return outcomes
