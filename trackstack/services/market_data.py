"""
Market Data Provider

Fetches current asset prices and exchange rates from Alpha Vantage.

Endpoints:
- GLOBAL_QUOTE: stocks, ETFs, mutual funds
- CURRENCY_EXCHANGE_RATE: fiat pairs and crypto priced in a currency

The free tier allows 5 requests/minute and 500/day. Usage is counted in
Redis so every running instance shares the same quota.

API Documentation: https://www.alphavantage.co/documentation/
"""
from abc import ABC, abstractmethod
from decimal import Decimal
from typing import Any, Dict, Optional
import httpx
from loguru import logger

from trackstack.config import settings
from trackstack.db.models.investment import AssetType
from trackstack.db.redis_client import RedisClient, redis_client
from trackstack.utils import decimal_utils as dec
from trackstack.utils.exceptions import (
    DataProviderError,
    ProviderTimeoutError,
    RateLimitExceededError,
)

PROVIDER_NAME = "alpha_vantage"


class MarketDataProvider(ABC):
    """Source of current prices and exchange rates. Every call may fail."""

    @abstractmethod
    async def fetch_price(
        self,
        ticker: str,
        asset_type: AssetType,
        currency: str = "USD",
    ) -> Decimal:
        """Current price of one unit of ticker."""

    @abstractmethod
    async def fetch_exchange_rate(self, from_currency: str, to_currency: str) -> Decimal:
        """Current rate: 1 from_currency = rate to_currency."""


class AlphaVantageProvider(MarketDataProvider):
    """
    Alpha Vantage client over httpx.

    Usage:
        provider = AlphaVantageProvider(api_key="demo")
        price = await provider.fetch_price("AAPL", AssetType.STOCK)
        rate = await provider.fetch_exchange_rate("USD", "EUR")
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        redis: Optional[RedisClient] = None,
        requests_per_minute: Optional[int] = None,
        requests_per_day: Optional[int] = None,
    ):
        self.api_key = settings.ALPHA_VANTAGE_API_KEY if api_key is None else api_key
        self.base_url = base_url or settings.ALPHA_VANTAGE_BASE_URL
        self.timeout = timeout or settings.MARKET_DATA_TIMEOUT_SECONDS
        self._redis = redis or redis_client
        self.requests_per_minute = requests_per_minute or settings.ALPHA_VANTAGE_REQUESTS_PER_MINUTE
        self.requests_per_day = requests_per_day or settings.ALPHA_VANTAGE_REQUESTS_PER_DAY

    # ==================== Public API ====================

    async def fetch_price(
        self,
        ticker: str,
        asset_type: AssetType,
        currency: str = "USD",
    ) -> Decimal:
        ticker = ticker.upper()

        if asset_type == AssetType.CRYPTO:
            data = await self._request({
                "function": "CURRENCY_EXCHANGE_RATE",
                "from_currency": ticker,
                "to_currency": currency.upper(),
            })
            return self._parse_exchange_rate(data, f"{ticker}/{currency.upper()}")

        data = await self._request({
            "function": "GLOBAL_QUOTE",
            "symbol": ticker,
        })
        quote = data.get("Global Quote")
        if not isinstance(quote, dict) or not quote.get("05. price"):
            raise DataProviderError(PROVIDER_NAME, f"No data found for symbol: {ticker}")
        return self._parse_positive(quote["05. price"], ticker)

    async def fetch_exchange_rate(self, from_currency: str, to_currency: str) -> Decimal:
        from_currency = from_currency.upper()
        to_currency = to_currency.upper()
        data = await self._request({
            "function": "CURRENCY_EXCHANGE_RATE",
            "from_currency": from_currency,
            "to_currency": to_currency,
        })
        rate = self._parse_exchange_rate(data, f"{from_currency}/{to_currency}")
        logger.info(f"Fetched rate {from_currency}/{to_currency} = {rate}")
        return rate

    # ==================== Quota ====================

    async def _reserve_request(self) -> None:
        """Count one request against the shared quota, refusing when exhausted."""
        if not self._redis.is_connected:
            logger.debug("Redis not connected, request quota not tracked")
            return

        # INCR first: the returned count is this caller's slot across all instances
        if await self._redis.increment_counter(PROVIDER_NAME, "day") > self.requests_per_day:
            raise RateLimitExceededError("Daily market data quota exhausted", retry_after=3600)
        if await self._redis.increment_counter(PROVIDER_NAME, "minute") > self.requests_per_minute:
            raise RateLimitExceededError("Market data rate limit reached", retry_after=60)

    # ==================== HTTP ====================

    async def _request(self, params: Dict[str, str]) -> Dict[str, Any]:
        if not self.api_key:
            raise DataProviderError(PROVIDER_NAME, "API key not configured")

        await self._reserve_request()

        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.get(
                    self.base_url,
                    params={**params, "apikey": self.api_key},
                )
        except httpx.TimeoutException as e:
            logger.warning(f"Alpha Vantage timed out: {params.get('function')}")
            raise ProviderTimeoutError(PROVIDER_NAME, "Market data provider not responding") from e
        except httpx.HTTPError as e:
            logger.error(f"Alpha Vantage connection error: {e}")
            raise DataProviderError(PROVIDER_NAME, "Connection error") from e

        if response.status_code == 429:
            raise RateLimitExceededError("Market data rate limit reached", retry_after=60)
        if response.status_code != 200:
            raise DataProviderError(PROVIDER_NAME, f"API error {response.status_code}")

        try:
            data = response.json()
        except ValueError as e:
            raise DataProviderError(PROVIDER_NAME, "Invalid API response") from e
        if not isinstance(data, dict):
            raise DataProviderError(PROVIDER_NAME, "Invalid API response")

        # Throttling notices come back as 200 with a Note/Information body
        if "Note" in data or "Information" in data:
            logger.warning(f"Alpha Vantage rate limit notice: {data.get('Note') or data.get('Information')}")
            raise RateLimitExceededError("Market data rate limit reached", retry_after=60)
        if "Error Message" in data:
            raise DataProviderError(PROVIDER_NAME, data["Error Message"])

        return data

    # ==================== Parsing ====================

    def _parse_exchange_rate(self, data: Dict[str, Any], pair: str) -> Decimal:
        rate_data = data.get("Realtime Currency Exchange Rate")
        if not isinstance(rate_data, dict) or not rate_data.get("5. Exchange Rate"):
            raise DataProviderError(PROVIDER_NAME, f"No exchange rate found for {pair}")
        return self._parse_positive(rate_data["5. Exchange Rate"], pair)

    def _parse_positive(self, raw: Any, label: str) -> Decimal:
        try:
            value = dec.to_decimal(raw)
        except ValueError:
            raise DataProviderError(PROVIDER_NAME, f"Invalid price data for {label}") from None
        if value <= dec.ZERO:
            raise DataProviderError(PROVIDER_NAME, f"Invalid price data for {label}")
        return value


# Global provider instance
market_data_provider = AlphaVantageProvider()
