"""
Investment Repository

Database operations for positions and their purchase history.

Every write that touches more than one row is committed once: either
the position change and its purchase transaction are both stored, or
neither is.
"""
from datetime import datetime
from decimal import Decimal
from typing import Optional
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import selectinload
from sqlalchemy import select, and_
from loguru import logger

from trackstack.core.aggregation import MergeResult
from trackstack.db.models.investment import Investment, AssetType
from trackstack.db.models.purchase_transaction import PurchaseTransaction
from trackstack.utils.exceptions import PersistenceError, DuplicatePositionError
from trackstack.utils.time import utcnow

UNIQUE_TICKER_CONSTRAINT = "uq_investments_portfolio_ticker"


class InvestmentRepository:
    """
    Repository for Investment database operations.

    Provides low-level CRUD operations for positions.
    For business logic, use InvestmentService instead.
    """

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_by_id(self, investment_id: int) -> Optional[Investment]:
        """Get investment by ID with its portfolio loaded (for ownership checks)."""
        result = await self.db.execute(
            select(Investment)
            .where(Investment.id == investment_id)
            .options(selectinload(Investment.portfolio))
        )
        return result.scalar_one_or_none()

    async def get_by_ticker(
        self,
        portfolio_id: int,
        ticker: str,
        for_update: bool = False,
    ) -> Optional[Investment]:
        """
        Get position by portfolio and ticker.

        With for_update the row stays locked until the next commit or
        rollback, closing the read-modify-write window for writers that
        do not go through the distributed lock.
        """
        query = select(Investment).where(
            and_(
                Investment.portfolio_id == portfolio_id,
                Investment.ticker == ticker.upper(),
            )
        )
        if for_update:
            query = query.with_for_update()
        result = await self.db.execute(query)
        return result.scalar_one_or_none()

    async def list_by_portfolio(self, portfolio_id: int) -> list[Investment]:
        """Get all positions for a portfolio, ordered by ticker."""
        result = await self.db.execute(
            select(Investment)
            .where(Investment.portfolio_id == portfolio_id)
            .order_by(Investment.ticker)
        )
        return list(result.scalars().all())

    async def latest_price_for_ticker(self, ticker: str, currency: str) -> Optional[Investment]:
        """Most recently priced position holding this ticker, in any portfolio, quoted in currency."""
        result = await self.db.execute(
            select(Investment)
            .where(
                and_(
                    Investment.ticker == ticker.upper(),
                    Investment.current_price.is_not(None),
                    Investment.current_price_currency == currency.upper(),
                )
            )
            .order_by(Investment.price_updated_at.desc().nulls_last())
            .limit(1)
        )
        return result.scalars().first()

    async def create_with_purchase(
        self,
        portfolio_id: int,
        ticker: str,
        asset_name: str,
        asset_type: AssetType,
        currency: str,
        merge: MergeResult,
        price_per_unit: Decimal,
        quantity: Decimal,
        purchase_date: Optional[datetime] = None,
        notes: Optional[str] = None,
    ) -> Investment:
        """
        Create a position together with its first purchase transaction.

        Raises:
            DuplicatePositionError: Another writer created the same
                (portfolio, ticker) position first
            PersistenceError: Any other write failure
        """
        investment = Investment(
            portfolio_id=portfolio_id,
            ticker=ticker.upper(),
            asset_name=asset_name,
            asset_type=asset_type,
            total_quantity=merge.quantity,
            average_cost_basis=merge.average_cost,
            purchase_currency=currency,
        )
        investment.transactions.append(
            PurchaseTransaction(
                quantity=quantity,
                price_per_unit=price_per_unit,
                currency=currency,
                purchase_date=purchase_date or utcnow(),
                notes=notes,
            )
        )
        self.db.add(investment)

        try:
            await self.db.commit()
        except IntegrityError as e:
            await self.db.rollback()
            if UNIQUE_TICKER_CONSTRAINT in str(e.orig):
                raise DuplicatePositionError(ticker) from e
            logger.error(f"Position insert rejected for {ticker}: {e.orig}")
            raise PersistenceError("Failed to add investment") from e
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error(f"Position insert failed for {ticker}: {e}")
            raise PersistenceError("Failed to add investment") from e

        await self.db.refresh(investment)
        logger.info(f"Created position: {ticker} qty={merge.quantity} in portfolio {portfolio_id}")
        return investment

    async def apply_merge(
        self,
        investment: Investment,
        merge: MergeResult,
        price_per_unit: Decimal,
        quantity: Decimal,
        currency: str,
        purchase_date: Optional[datetime] = None,
        notes: Optional[str] = None,
    ) -> Investment:
        """
        Store a merged position and the purchase that produced it.

        Raises:
            PersistenceError: The write failed; nothing was applied
        """
        investment.total_quantity = merge.quantity
        investment.average_cost_basis = merge.average_cost
        self.db.add(
            PurchaseTransaction(
                investment_id=investment.id,
                quantity=quantity,
                price_per_unit=price_per_unit,
                currency=currency,
                purchase_date=purchase_date or utcnow(),
                notes=notes,
            )
        )

        try:
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error(f"Position merge failed for {investment.ticker}: {e}")
            raise PersistenceError("Failed to add investment") from e

        await self.db.refresh(investment)
        logger.info(
            f"Aggregated position: {investment.ticker} qty={merge.quantity} "
            f"avg_cost={merge.average_cost}"
        )
        return investment

    async def update_details(
        self,
        investment: Investment,
        asset_name: str,
        asset_type: AssetType,
    ) -> Investment:
        """Update descriptive fields (never quantity or cost)."""
        investment.asset_name = asset_name
        investment.asset_type = asset_type
        await self._commit("Failed to update investment")
        await self.db.refresh(investment)
        return investment

    async def update_price(
        self,
        investment: Investment,
        price: Decimal,
        currency: str,
        updated_at: Optional[datetime] = None,
    ) -> Investment:
        """Store the last known quote for a position."""
        investment.current_price = price
        investment.current_price_currency = currency
        investment.price_updated_at = updated_at or utcnow()
        await self._commit("Failed to refresh price")
        await self.db.refresh(investment)
        return investment

    async def delete(self, investment: Investment) -> None:
        """Delete a position (purchase history cascades)."""
        investment_id = investment.id
        await self.db.delete(investment)
        await self._commit("Failed to remove investment")
        logger.info(f"Deleted investment {investment_id}")

    async def list_transactions(self, investment_id: int) -> list[PurchaseTransaction]:
        """Purchase history for a position, oldest first."""
        result = await self.db.execute(
            select(PurchaseTransaction)
            .where(PurchaseTransaction.investment_id == investment_id)
            .order_by(PurchaseTransaction.purchase_date, PurchaseTransaction.id)
        )
        return list(result.scalars().all())

    async def _commit(self, message: str) -> None:
        try:
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error(f"{message}: {e}")
            raise PersistenceError(message) from e
