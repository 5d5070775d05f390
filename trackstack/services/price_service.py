"""
Price Service

Cache-first access to asset prices and exchange rates.

Rate lookups:
1. Identity pair -> 1
2. Fresh cached rate -> cached rate
3. Under the pair lock: re-check the cache (another caller may have just
   refreshed it), else fetch from the provider and store the result
4. Provider failure with a stale cached rate -> stale rate, with a warning
5. Provider failure and nothing cached -> the provider error propagates

There is no made-up fallback rate: a missing rate is an error.
"""
from decimal import Decimal
from typing import Optional
from loguru import logger

from trackstack.core.locking import LockManager, currency_lock_key, lock_manager as default_lock_manager
from trackstack.db.models.investment import AssetType
from trackstack.services.market_data import MarketDataProvider, market_data_provider
from trackstack.services.price_cache import PriceCache, price_cache
from trackstack.utils import decimal_utils as dec
from trackstack.utils.exceptions import ExternalDataError


class PriceService:
    """
    Prices and rates with caching and per-pair refresh serialization.

    Usage:
        rate = await price_service.get_currency_rate("USD", "EUR")
    """

    def __init__(
        self,
        cache: Optional[PriceCache] = None,
        provider: Optional[MarketDataProvider] = None,
        locks: Optional[LockManager] = None,
    ):
        self.cache = cache or price_cache
        self.provider = provider or market_data_provider
        self.locks = locks or default_lock_manager

    async def get_asset_price(
        self,
        ticker: str,
        asset_type: AssetType,
        currency: str = "USD",
    ) -> Decimal:
        """
        Current price of a ticker in currency, from cache when fresh.

        Raises:
            ExternalDataError: Provider failed and no fresh quote is cached
        """
        ticker = ticker.upper()
        cached = await self.cache.get_cached_price(ticker, asset_type, currency)
        if cached is not None and cached.is_fresh:
            logger.debug(f"Price cache hit: {ticker} = {cached.value}")
            return cached.value

        price = await self.provider.fetch_price(ticker, asset_type, currency)
        logger.info(f"Fetched price {ticker} = {price} {currency}")
        return price

    async def get_currency_rate(self, from_currency: str, to_currency: str) -> Decimal:
        """
        Exchange rate: 1 from_currency = rate to_currency.

        Raises:
            ExternalDataError: Provider failed and no rate was ever cached
            LockTimeoutError: Another caller held the pair lock too long
        """
        from_currency = from_currency.upper()
        to_currency = to_currency.upper()
        if from_currency == to_currency:
            return dec.ONE

        cached = await self.cache.get_cached_rate(from_currency, to_currency)
        if cached is not None and cached.is_fresh:
            return cached.value

        async with self.locks.hold(currency_lock_key(from_currency, to_currency)):
            # A concurrent caller may have refreshed the pair while we waited
            cached = await self.cache.get_cached_rate(from_currency, to_currency)
            if cached is not None and cached.is_fresh:
                return cached.value

            try:
                rate = await self.provider.fetch_exchange_rate(from_currency, to_currency)
            except ExternalDataError as e:
                if cached is None:
                    logger.error(f"No rate available for {from_currency}/{to_currency}: {e.message}")
                    raise
                logger.warning(
                    f"Using stale rate {from_currency}/{to_currency} = {cached.value} "
                    f"from {cached.last_updated}: {e.message}"
                )
                return cached.value

            await self.cache.update_cached_rate(from_currency, to_currency, rate)
            logger.info(f"Cached rate {from_currency}/{to_currency} = {rate}")
            return rate


# Global price service instance
price_service = PriceService()
