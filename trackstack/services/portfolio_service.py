"""
Portfolio Service

Portfolio CRUD with ownership checks, and the valuation summary of a
portfolio in its base currency.
"""
from dataclasses import dataclass, field
from typing import Any, Optional
from sqlalchemy.ext.asyncio import AsyncSession
from loguru import logger

from trackstack.core.portfolio_summary import (
    AllocationSlice,
    PortfolioSummary,
    calculate_asset_allocation,
    calculate_portfolio_summary,
)
from trackstack.db.models.portfolio import Portfolio
from trackstack.db.repositories.portfolio import PortfolioRepository
from trackstack.schemas.portfolio import PortfolioCreate, PortfolioUpdate
from trackstack.services.price_service import PriceService, price_service
from trackstack.utils.exceptions import OwnershipError, PortfolioNotFoundError


@dataclass
class PortfolioListItem:
    """Portfolio row for list views."""
    portfolio: Portfolio
    investment_count: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.portfolio.id,
            "name": self.portfolio.name,
            "base_currency": self.portfolio.base_currency,
            "investment_count": self.investment_count,
            "created_at": self.portfolio.created_at.isoformat() if self.portfolio.created_at else None,
        }


@dataclass
class PortfolioOverview:
    """Valuation summary plus allocation by asset class."""
    summary: PortfolioSummary
    allocation: list[AllocationSlice] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            **self.summary.to_dict(),
            "allocation": [s.to_dict() for s in self.allocation],
        }


class PortfolioService:
    """
    Service for portfolio management operations.

    Usage:
        service = PortfolioService(db_session)
        portfolio = await service.create_portfolio(user_id, PortfolioCreate(name="Main"))
        overview = await service.get_portfolio_summary(user_id, portfolio.id)
    """

    def __init__(
        self,
        db: AsyncSession,
        portfolios: Optional[PortfolioRepository] = None,
        prices: Optional[PriceService] = None,
    ):
        self.db = db
        self.portfolios = portfolios or PortfolioRepository(db)
        self.prices = prices or price_service

    @staticmethod
    def _check_owner(portfolio: Optional[Portfolio], user_id: str) -> Portfolio:
        if portfolio is None:
            raise PortfolioNotFoundError()
        if portfolio.user_id != user_id:
            raise OwnershipError()
        return portfolio

    # ==================== CRUD Operations ====================

    async def create_portfolio(self, user_id: str, data: PortfolioCreate) -> Portfolio:
        return await self.portfolios.create(
            user_id=user_id,
            name=data.name,
            base_currency=data.base_currency,
        )

    async def list_portfolios(self, user_id: str) -> list[PortfolioListItem]:
        """User's portfolios, newest first."""
        rows = await self.portfolios.list_by_user(user_id)
        return [PortfolioListItem(portfolio=p, investment_count=count) for p, count in rows]

    async def get_portfolio(self, user_id: str, portfolio_id: int) -> Portfolio:
        """Portfolio with its investments and purchase history."""
        portfolio = await self.portfolios.get_with_investments(portfolio_id)
        return self._check_owner(portfolio, user_id)

    async def update_portfolio(
        self,
        user_id: str,
        portfolio_id: int,
        data: PortfolioUpdate,
    ) -> Portfolio:
        portfolio = self._check_owner(await self.portfolios.get_by_id(portfolio_id), user_id)
        return await self.portfolios.update(
            portfolio,
            name=data.name,
            base_currency=data.base_currency,
        )

    async def delete_portfolio(self, user_id: str, portfolio_id: int) -> None:
        """Delete a portfolio with all its investments and transactions."""
        portfolio = self._check_owner(await self.portfolios.get_by_id(portfolio_id), user_id)
        await self.portfolios.delete(portfolio)

    # ==================== Valuation ====================

    async def get_portfolio_summary(self, user_id: str, portfolio_id: int) -> PortfolioOverview:
        """
        Totals, per-position weights, best/worst performer and asset
        allocation, all in the portfolio base currency.

        Raises:
            ExternalDataError: A needed exchange rate is unavailable
            LockTimeoutError: A currency pair was busy being refreshed
        """
        portfolio = await self.get_portfolio(user_id, portfolio_id)
        summary = await calculate_portfolio_summary(portfolio, rate_source=self.prices)
        allocation = calculate_asset_allocation(summary.investments)

        logger.debug(
            f"Portfolio {portfolio_id} summary: value={summary.total_value} "
            f"{summary.base_currency} across {summary.investment_count} investments"
        )
        return PortfolioOverview(summary=summary, allocation=allocation)
