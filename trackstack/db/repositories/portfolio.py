"""
Portfolio Repository

Database operations for portfolio management.
"""
from typing import Optional
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import selectinload
from sqlalchemy import select, func
from loguru import logger

from trackstack.db.models.portfolio import Portfolio
from trackstack.db.models.investment import Investment
from trackstack.utils.exceptions import PersistenceError, ValidationError


class PortfolioRepository:
    """
    Repository for Portfolio database operations.

    Provides low-level CRUD operations for portfolios.
    For business logic, use PortfolioService instead.
    """

    def __init__(self, db: AsyncSession):
        self.db = db

    async def create(self, user_id: str, name: str, base_currency: str) -> Portfolio:
        """Create a new portfolio."""
        portfolio = Portfolio(user_id=user_id, name=name, base_currency=base_currency)
        self.db.add(portfolio)
        await self._commit(name)
        await self.db.refresh(portfolio)

        logger.info(f"Created portfolio {portfolio.id} '{name}' ({base_currency}) for user {user_id}")
        return portfolio

    async def get_by_id(self, portfolio_id: int) -> Optional[Portfolio]:
        """Get portfolio by ID (without investments)."""
        result = await self.db.execute(
            select(Portfolio).where(Portfolio.id == portfolio_id)
        )
        return result.scalar_one_or_none()

    async def get_with_investments(self, portfolio_id: int) -> Optional[Portfolio]:
        """Get portfolio with investments and their purchase history loaded."""
        result = await self.db.execute(
            select(Portfolio)
            .where(Portfolio.id == portfolio_id)
            .options(selectinload(Portfolio.investments).selectinload(Investment.transactions))
        )
        return result.scalar_one_or_none()

    async def list_by_user(self, user_id: str) -> list[tuple[Portfolio, int]]:
        """List a user's portfolios, newest first, with investment counts."""
        investment_count = (
            select(func.count(Investment.id))
            .where(Investment.portfolio_id == Portfolio.id)
            .correlate(Portfolio)
            .scalar_subquery()
        )
        result = await self.db.execute(
            select(Portfolio, investment_count)
            .where(Portfolio.user_id == user_id)
            .order_by(Portfolio.created_at.desc())
        )
        return [(row[0], row[1]) for row in result.all()]

    async def update(
        self,
        portfolio: Portfolio,
        name: Optional[str] = None,
        base_currency: Optional[str] = None,
    ) -> Portfolio:
        """Update portfolio fields."""
        if name is not None:
            portfolio.name = name
        if base_currency is not None:
            portfolio.base_currency = base_currency

        await self._commit(portfolio.name)
        await self.db.refresh(portfolio)
        return portfolio

    async def delete(self, portfolio: Portfolio) -> None:
        """Delete a portfolio (investments and transactions cascade)."""
        portfolio_id = portfolio.id
        await self.db.delete(portfolio)
        await self._commit()
        logger.info(f"Deleted portfolio {portfolio_id}")

    async def _commit(self, name: Optional[str] = None) -> None:
        try:
            await self.db.commit()
        except IntegrityError:
            await self.db.rollback()
            raise ValidationError(f"A portfolio named '{name}' already exists")
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error(f"Portfolio write failed: {e}")
            raise PersistenceError("Failed to save portfolio") from e
