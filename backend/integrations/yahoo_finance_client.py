"""Yahoo Finance market data provider implementation."""

import logging
import math
from datetime import date, datetime, timedelta
from decimal import Decimal

import yfinance as yf

from integrations.exceptions import ProviderConnectionError, ProviderDataError
from integrations.market_data_protocol import PriceResult

logger = logging.getLogger(__name__)

# Look back far enough to cover weekends and market holidays
_LOOKBACK_DAYS = 10


class YahooFinanceClient:
    """Market data provider using Yahoo Finance (yfinance library).

    Handles equities, ETFs, and other traditional securities.
    Crypto symbols are routed to a dedicated crypto provider
    (e.g., CoinGecko) by the MarketDataService.
    """

    def __init__(self, timeout: float = 10.0):
        self._timeout = timeout

    @property
    def provider_name(self) -> str:
        return "yahoo"

    def get_latest_price(self, symbol: str) -> PriceResult:
        """Fetch the most recent daily close for a symbol.

        Downloads a short window ending today and returns the last
        close in it, so a request on a weekend or holiday yields the
        previous trading day's close.

        Raises:
            ProviderConnectionError: The download itself failed.
            ProviderDataError: No usable close for the symbol.
        """
        end = date.today() + timedelta(days=1)  # yfinance end is exclusive
        start = end - timedelta(days=_LOOKBACK_DAYS)
        logger.debug("Yahoo Finance: fetching latest close for %s", symbol)

        try:
            df = yf.download(
                tickers=symbol,
                start=start.isoformat(),
                end=end.isoformat(),
                auto_adjust=True,
                progress=False,
                timeout=self._timeout,
            )
        except Exception as e:
            raise ProviderConnectionError(
                f"yfinance download failed for {symbol}: {e}", self.provider_name
            ) from e

        if df is None or df.empty or "Close" not in df.columns:
            raise ProviderDataError(f"No price data for {symbol}", self.provider_name)

        closes = df["Close"]
        if hasattr(closes, "columns"):
            # MultiIndex columns: (metric, symbol)
            if symbol not in closes.columns:
                raise ProviderDataError(f"No price data for {symbol}", self.provider_name)
            closes = closes[symbol]
        closes = closes.dropna()
        if closes.empty:
            raise ProviderDataError(f"No price data for {symbol}", self.provider_name)

        last = float(closes.iloc[-1])
        if not math.isfinite(last):
            raise ProviderDataError(f"Unusable close for {symbol}: {last}", self.provider_name)

        last_date = closes.index[-1].date()
        return PriceResult(
            symbol=symbol,
            price=Decimal(str(round(last, 6))),
            as_of=datetime(last_date.year, last_date.month, last_date.day),
            source=self.provider_name,
        )
