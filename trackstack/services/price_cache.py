"""
Price / Rate Cache

Answers "do we already have a fresh value for X" without calling the
market-data provider.

- Asset prices: the most recently refreshed quote stored on any position
  holding the ticker
- Exchange rates: the currency_rates table, one row per ordered pair

Reads never fetch and writes never fetch: the caller fetches, then writes.
"""
from dataclasses import dataclass
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Callable, Optional, Union

from trackstack.config import settings
from trackstack.db.database import async_session_maker
from trackstack.db.models.investment import AssetType
from trackstack.db.repositories.currency_rate import CurrencyRateRepository
from trackstack.db.repositories.investment import InvestmentRepository
from trackstack.utils import decimal_utils as dec
from trackstack.utils.time import utcnow


@dataclass(frozen=True)
class CachedValue:
    """A cached price or rate with its age verdict."""
    value: Decimal
    last_updated: datetime
    is_fresh: bool


def is_fresh(
    last_updated: Optional[datetime],
    ttl: Union[timedelta, float],
    now: Optional[datetime] = None,
) -> bool:
    """True iff last_updated is set and younger than ttl (seconds or timedelta)."""
    if last_updated is None:
        return False
    if not isinstance(ttl, timedelta):
        ttl = timedelta(seconds=ttl)
    now = now or utcnow()
    return now - last_updated < ttl


def ttl_for(asset_type: Optional[AssetType]) -> int:
    """Freshness window in seconds for an asset class."""
    if asset_type == AssetType.CRYPTO:
        return settings.PRICE_CACHE_TTL_CRYPTO
    return settings.PRICE_CACHE_TTL_STOCK


class PriceCache:
    """
    Read/write access to cached prices and exchange rates.

    Each call runs in its own short-lived session so cache traffic never
    joins a caller's open transaction.
    """

    def __init__(
        self,
        session_factory=async_session_maker,
        clock: Callable[[], datetime] = utcnow,
    ):
        self._session_factory = session_factory
        self._clock = clock

    def is_fresh(self, last_updated: Optional[datetime], ttl: Union[timedelta, float]) -> bool:
        return is_fresh(last_updated, ttl, now=self._clock())

    async def get_cached_price(
        self,
        ticker: str,
        asset_type: Optional[AssetType] = None,
        currency: str = "USD",
    ) -> Optional[CachedValue]:
        """Last known price for a ticker quoted in currency, or None if never fetched."""
        async with self._session_factory() as session:
            investment = await InvestmentRepository(session).latest_price_for_ticker(ticker, currency)

        if investment is None or investment.current_price is None:
            return None

        last_updated = investment.price_updated_at
        return CachedValue(
            value=dec.to_decimal(investment.current_price),
            last_updated=last_updated,
            is_fresh=self.is_fresh(last_updated, ttl_for(asset_type)),
        )

    async def get_cached_rate(self, from_currency: str, to_currency: str) -> Optional[CachedValue]:
        """
        Cached rate for an ordered pair, or None if never fetched.

        The identity pair is always exactly 1 and always fresh.
        """
        if from_currency.upper() == to_currency.upper():
            return CachedValue(value=dec.ONE, last_updated=self._clock(), is_fresh=True)

        async with self._session_factory() as session:
            cached = await CurrencyRateRepository(session).get_rate(from_currency, to_currency)

        if cached is None:
            return None

        return CachedValue(
            value=dec.to_decimal(cached.rate),
            last_updated=cached.fetched_at,
            is_fresh=self.is_fresh(cached.fetched_at, settings.PRICE_CACHE_TTL_CURRENCY),
        )

    async def update_cached_rate(self, from_currency: str, to_currency: str, rate: Decimal) -> None:
        """
        Upsert the rate for an ordered pair.

        Callers serialize refreshes of one pair with the currency lock;
        the upsert itself is a single atomic statement.
        """
        async with self._session_factory() as session:
            await CurrencyRateRepository(session).upsert_rate(
                from_currency,
                to_currency,
                dec.quantize(rate, dec.RATE_PLACES),
                fetched_at=self._clock(),
            )


# Global price cache instance
price_cache = PriceCache()
