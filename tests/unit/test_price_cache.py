"""
Unit Tests - Price / Rate Cache
Tests for freshness checks and cached lookups.
"""
import pytest
from datetime import datetime, timedelta
from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock, patch

from trackstack.db.models.currency_rate import CurrencyRate
from trackstack.db.models.investment import AssetType
from trackstack.services.price_cache import PriceCache, is_fresh, ttl_for

NOW = datetime(2025, 3, 1, 12, 0, 0)


class TestIsFresh:
    """Tests for the freshness rule."""

    def test_missing_timestamp_is_stale(self):
        assert is_fresh(None, 60, now=NOW) is False

    def test_within_ttl(self):
        assert is_fresh(NOW - timedelta(seconds=59), 60, now=NOW) is True

    def test_exactly_ttl_is_stale(self):
        assert is_fresh(NOW - timedelta(seconds=60), 60, now=NOW) is False

    def test_accepts_timedelta(self):
        assert is_fresh(NOW - timedelta(minutes=5), timedelta(hours=1), now=NOW) is True

    def test_ttl_per_asset_class(self):
        assert ttl_for(AssetType.CRYPTO) == 300
        assert ttl_for(AssetType.STOCK) == 900
        assert ttl_for(AssetType.ETF) == 900
        assert ttl_for(AssetType.MUTUAL_FUND) == 900


class TestPriceCache:
    """Tests for PriceCache."""

    @pytest.fixture
    def session(self):
        return AsyncMock()

    @pytest.fixture
    def cache(self, session):
        factory = MagicMock()
        factory.return_value.__aenter__ = AsyncMock(return_value=session)
        factory.return_value.__aexit__ = AsyncMock(return_value=False)
        return PriceCache(session_factory=factory, clock=lambda: NOW)

    @pytest.fixture
    def cached_rate(self):
        rate = MagicMock(spec=CurrencyRate)
        rate.from_currency = "USD"
        rate.to_currency = "EUR"
        rate.rate = Decimal("0.9200000000")
        rate.fetched_at = NOW - timedelta(minutes=10)
        return rate

    # =====================
    # Rates
    # =====================

    @pytest.mark.asyncio
    async def test_identity_rate(self, cache):
        with patch("trackstack.services.price_cache.CurrencyRateRepository") as repo_cls:
            cached = await cache.get_cached_rate("usd", "USD")

        assert cached.value == Decimal("1")
        assert cached.is_fresh is True
        assert cached.last_updated == NOW
        repo_cls.assert_not_called()

    @pytest.mark.asyncio
    async def test_fresh_rate(self, cache, cached_rate):
        with patch("trackstack.services.price_cache.CurrencyRateRepository") as repo_cls:
            repo_cls.return_value.get_rate = AsyncMock(return_value=cached_rate)
            cached = await cache.get_cached_rate("USD", "EUR")

        assert cached.value == Decimal("0.92")
        assert cached.is_fresh is True
        repo_cls.return_value.get_rate.assert_awaited_once_with("USD", "EUR")

    @pytest.mark.asyncio
    async def test_stale_rate(self, cache, cached_rate):
        cached_rate.fetched_at = NOW - timedelta(hours=2)
        with patch("trackstack.services.price_cache.CurrencyRateRepository") as repo_cls:
            repo_cls.return_value.get_rate = AsyncMock(return_value=cached_rate)
            cached = await cache.get_cached_rate("USD", "EUR")

        assert cached.value == Decimal("0.92")
        assert cached.is_fresh is False

    @pytest.mark.asyncio
    async def test_missing_rate(self, cache):
        with patch("trackstack.services.price_cache.CurrencyRateRepository") as repo_cls:
            repo_cls.return_value.get_rate = AsyncMock(return_value=None)
            assert await cache.get_cached_rate("USD", "JPY") is None

    @pytest.mark.asyncio
    async def test_update_rate_upserts_with_clock(self, cache):
        with patch("trackstack.services.price_cache.CurrencyRateRepository") as repo_cls:
            repo_cls.return_value.upsert_rate = AsyncMock()
            await cache.update_cached_rate("USD", "EUR", Decimal("0.921234567891"))

        repo_cls.return_value.upsert_rate.assert_awaited_once_with(
            "USD", "EUR", Decimal("0.9212345679"), fetched_at=NOW
        )

    # =====================
    # Prices
    # =====================

    @pytest.mark.asyncio
    async def test_price_never_fetched(self, cache):
        with patch("trackstack.services.price_cache.InvestmentRepository") as repo_cls:
            repo_cls.return_value.latest_price_for_ticker = AsyncMock(return_value=None)
            assert await cache.get_cached_price("AAPL", AssetType.STOCK) is None

    @pytest.mark.asyncio
    async def test_price_freshness_depends_on_asset_class(self, cache, make_investment):
        investment = make_investment("BTC", current_price="60000", price_updated_at=NOW - timedelta(minutes=10))
        with patch("trackstack.services.price_cache.InvestmentRepository") as repo_cls:
            repo_cls.return_value.latest_price_for_ticker = AsyncMock(return_value=investment)
            as_stock = await cache.get_cached_price("BTC", AssetType.STOCK)
            as_crypto = await cache.get_cached_price("BTC", AssetType.CRYPTO)

        assert as_stock.value == Decimal("60000")
        assert as_stock.is_fresh is True
        assert as_crypto.is_fresh is False

    @pytest.mark.asyncio
    async def test_price_lookup_is_per_quote_currency(self, cache):
        with patch("trackstack.services.price_cache.InvestmentRepository") as repo_cls:
            repo_cls.return_value.latest_price_for_ticker = AsyncMock(return_value=None)
            assert await cache.get_cached_price("BTC", AssetType.CRYPTO, "EUR") is None

        repo_cls.return_value.latest_price_for_ticker.assert_awaited_once_with("BTC", "EUR")
