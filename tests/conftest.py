"""
Track Your Stack - Test Configuration
Shared fixtures and test configuration.
"""
import os
from datetime import datetime
from decimal import Decimal
import pytest
from unittest.mock import AsyncMock, MagicMock

# Set test environment
os.environ["APP_ENV"] = "testing"
os.environ["DEBUG"] = "false"
os.environ["LOG_LEVEL"] = "WARNING"
os.environ["POSTGRES_HOST"] = "localhost"
os.environ["POSTGRES_DB"] = "trackstack_test"
os.environ["LOCK_BACKEND"] = "memory"
os.environ["ALPHA_VANTAGE_API_KEY"] = "test-key"


# =========================
# Database Fixtures
# =========================

@pytest.fixture
def mock_db():
    """Mock AsyncSession."""
    db = AsyncMock()
    db.execute = AsyncMock()
    db.commit = AsyncMock()
    db.refresh = AsyncMock()
    db.rollback = AsyncMock()
    db.delete = AsyncMock()
    db.add = MagicMock()
    return db


# =========================
# Portfolio Fixtures
# =========================

@pytest.fixture
def sample_portfolio():
    """Sample portfolio object mock."""
    from trackstack.db.models.portfolio import Portfolio
    portfolio = MagicMock(spec=Portfolio)
    portfolio.id = 1
    portfolio.user_id = "user-1"
    portfolio.name = "Retirement"
    portfolio.base_currency = "USD"
    portfolio.investments = []
    portfolio.created_at = datetime(2025, 1, 2, 9, 30)
    portfolio.updated_at = datetime(2025, 1, 2, 9, 30)
    return portfolio


# =========================
# Investment Fixtures
# =========================

@pytest.fixture
def make_investment():
    """Factory for investment mocks."""
    from trackstack.db.models.investment import Investment, AssetType

    counter = {"id": 0}

    def _make(
        ticker: str = "AAPL",
        quantity: str = "10",
        average_cost: str = "150",
        current_price: str | None = "175",
        currency: str = "USD",
        asset_type: AssetType = AssetType.STOCK,
        **overrides,
    ):
        counter["id"] += 1
        investment = MagicMock(spec=Investment)
        investment.id = overrides.pop("id", counter["id"])
        investment.portfolio_id = 1
        investment.ticker = ticker
        investment.asset_name = f"{ticker} Inc."
        investment.asset_type = asset_type
        investment.total_quantity = Decimal(quantity)
        investment.average_cost_basis = Decimal(average_cost)
        investment.purchase_currency = currency
        investment.current_price = Decimal(current_price) if current_price is not None else None
        investment.current_price_currency = currency if current_price is not None else None
        investment.price_updated_at = datetime(2025, 1, 2, 9, 30) if current_price is not None else None
        for key, value in overrides.items():
            setattr(investment, key, value)
        return investment

    return _make


@pytest.fixture
def rate_source():
    """Rate source mock resolving from a dict of (from, to) -> rate."""
    rates = {
        ("EUR", "USD"): Decimal("1.10"),
        ("USD", "EUR"): Decimal("0.92"),
        ("GBP", "USD"): Decimal("1.25"),
    }
    source = MagicMock()
    source.rates = rates

    async def _get_rate(from_currency, to_currency):
        return rates[(from_currency, to_currency)]

    source.get_currency_rate = AsyncMock(side_effect=_get_rate)
    return source
