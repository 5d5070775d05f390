"""
Unit Tests - Portfolio Service
Tests for portfolio CRUD and valuation summaries.
"""
import pytest
from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock

from trackstack.db.models.investment import AssetType
from trackstack.schemas.portfolio import PortfolioCreate, PortfolioUpdate
from trackstack.services.portfolio_service import PortfolioService
from trackstack.utils.exceptions import DataProviderError, OwnershipError, PortfolioNotFoundError


class TestPortfolioService:
    """Tests for PortfolioService."""

    @pytest.fixture
    def portfolios(self, sample_portfolio):
        repo = MagicMock()
        repo.create = AsyncMock(return_value=sample_portfolio)
        repo.get_by_id = AsyncMock(return_value=sample_portfolio)
        repo.get_with_investments = AsyncMock(return_value=sample_portfolio)
        repo.list_by_user = AsyncMock(return_value=[(sample_portfolio, 3)])
        repo.update = AsyncMock(return_value=sample_portfolio)
        repo.delete = AsyncMock()
        return repo

    @pytest.fixture
    def service(self, mock_db, portfolios, rate_source):
        return PortfolioService(mock_db, portfolios=portfolios, prices=rate_source)

    # =====================
    # CRUD Operations
    # =====================

    @pytest.mark.asyncio
    async def test_create_portfolio(self, service, portfolios):
        await service.create_portfolio("user-1", PortfolioCreate(name="Retirement", base_currency="eur"))

        portfolios.create.assert_awaited_once_with(
            user_id="user-1", name="Retirement", base_currency="EUR"
        )

    @pytest.mark.asyncio
    async def test_list_portfolios(self, service):
        items = await service.list_portfolios("user-1")

        assert len(items) == 1
        data = items[0].to_dict()
        assert data["name"] == "Retirement"
        assert data["investment_count"] == 3
        assert data["created_at"] == "2025-01-02T09:30:00"

    @pytest.mark.asyncio
    async def test_get_missing_portfolio(self, service, portfolios):
        portfolios.get_with_investments.return_value = None

        with pytest.raises(PortfolioNotFoundError):
            await service.get_portfolio("user-1", 99)

    @pytest.mark.asyncio
    async def test_get_foreign_portfolio(self, service):
        with pytest.raises(OwnershipError):
            await service.get_portfolio("someone-else", 1)

    @pytest.mark.asyncio
    async def test_update_portfolio(self, service, portfolios, sample_portfolio):
        await service.update_portfolio("user-1", 1, PortfolioUpdate(name="Renamed"))

        portfolios.update.assert_awaited_once_with(sample_portfolio, name="Renamed", base_currency=None)

    @pytest.mark.asyncio
    async def test_delete_foreign_portfolio(self, service, portfolios):
        with pytest.raises(OwnershipError):
            await service.delete_portfolio("someone-else", 1)

        portfolios.delete.assert_not_called()

    # =====================
    # Valuation
    # =====================

    @pytest.mark.asyncio
    async def test_summary_in_base_currency(self, service, sample_portfolio, make_investment):
        sample_portfolio.investments = [
            make_investment(ticker="AAPL", quantity="10", average_cost="150", current_price="175"),
            make_investment(
                ticker="EUNL", quantity="5", average_cost="100", current_price="120",
                currency="EUR", asset_type=AssetType.ETF,
            ),
        ]

        overview = await service.get_portfolio_summary("user-1", 1)
        summary = overview.summary

        assert summary.base_currency == "USD"
        assert summary.total_value == Decimal("2410")
        assert summary.total_cost == Decimal("2050")
        assert summary.total_gain_loss == Decimal("360")
        # EUNL +20% beats AAPL +16.67%
        assert summary.best_performer.ticker == "EUNL"
        assert summary.worst_performer.ticker == "AAPL"

        assert [s.asset_type for s in overview.allocation] == ["stock", "etf"]
        assert overview.allocation[1].value == Decimal("660")

        data = overview.to_dict()
        assert data["investment_count"] == 2
        assert data["best_performer"] == "EUNL"
        assert len(data["allocation"]) == 2

    @pytest.mark.asyncio
    async def test_empty_portfolio_summary(self, service):
        overview = await service.get_portfolio_summary("user-1", 1)

        assert overview.summary.total_value == Decimal("0")
        assert overview.summary.best_performer is None
        assert overview.allocation == []

    @pytest.mark.asyncio
    async def test_summary_fails_without_rate(self, service, sample_portfolio, make_investment, rate_source):
        sample_portfolio.investments = [make_investment(currency="JPY")]
        rate_source.get_currency_rate.side_effect = DataProviderError("alpha_vantage", "down")

        with pytest.raises(DataProviderError):
            await service.get_portfolio_summary("user-1", 1)
