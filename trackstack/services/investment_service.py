"""
Investment Service

Purchase flow and position management.

Adding a purchase:
1. Check the portfolio exists and belongs to the caller
2. Take the position lock (portfolio + ticker), so first purchases of a
   ticker are serialized too
3. Read the position FOR UPDATE, merge the purchase, and store the new
   totals with the purchase transaction in one commit
4. If a concurrent writer that ignored the lock created the position
   first, the uniqueness conflict is retried as a merge
"""
from dataclasses import dataclass
from typing import Optional
from sqlalchemy.ext.asyncio import AsyncSession
from loguru import logger

from trackstack.config import settings
from trackstack.core.aggregation import PositionState, merge_purchase
from trackstack.core.locking import LockManager, lock_manager, position_lock_key
from trackstack.db.models.investment import Investment
from trackstack.db.models.portfolio import Portfolio
from trackstack.db.models.purchase_transaction import PurchaseTransaction
from trackstack.db.repositories.investment import InvestmentRepository
from trackstack.db.repositories.portfolio import PortfolioRepository
from trackstack.schemas.investment import AddInvestmentRequest, UpdateInvestmentRequest
from trackstack.services.price_service import PriceService, price_service
from trackstack.utils.exceptions import (
    DuplicatePositionError,
    InvestmentNotFoundError,
    OwnershipError,
    PortfolioNotFoundError,
    ValidationError,
)
from trackstack.utils.time import utcnow


@dataclass
class AddInvestmentResult:
    """Outcome of a purchase."""
    investment_id: int
    ticker: str
    aggregated: bool
    message: str

    def to_dict(self) -> dict:
        return {"id": self.investment_id, "aggregated": self.aggregated}


class InvestmentService:
    """
    Service for investment operations.

    Usage:
        service = InvestmentService(db_session)
        result = await service.add_investment(user_id, portfolio_id, request)
    """

    def __init__(
        self,
        db: AsyncSession,
        portfolios: Optional[PortfolioRepository] = None,
        investments: Optional[InvestmentRepository] = None,
        locks: Optional[LockManager] = None,
        prices: Optional[PriceService] = None,
    ):
        self.db = db
        self.portfolios = portfolios or PortfolioRepository(db)
        self.investments = investments or InvestmentRepository(db)
        self.locks = locks or lock_manager
        self.prices = prices or price_service

    # ==================== Ownership ====================

    async def _get_owned_portfolio(self, user_id: str, portfolio_id: int) -> Portfolio:
        portfolio = await self.portfolios.get_by_id(portfolio_id)
        if portfolio is None:
            raise PortfolioNotFoundError()
        if portfolio.user_id != user_id:
            raise OwnershipError()
        return portfolio

    async def _get_owned_investment(self, user_id: str, investment_id: int) -> Investment:
        investment = await self.investments.get_by_id(investment_id)
        if investment is None:
            raise InvestmentNotFoundError()
        if investment.portfolio.user_id != user_id:
            raise OwnershipError()
        return investment

    # ==================== Purchases ====================

    async def add_investment(
        self,
        user_id: str,
        portfolio_id: int,
        request: AddInvestmentRequest,
    ) -> AddInvestmentResult:
        """
        Add a purchase, creating the position or merging into it.

        Raises:
            PortfolioNotFoundError / OwnershipError: Bad portfolio reference
            ValidationError: Purchase currency differs from the position's
            LockTimeoutError: The position is busy, retry later
            PersistenceError: The write failed; the position is unchanged
        """
        portfolio = await self._get_owned_portfolio(user_id, portfolio_id)
        # Kept as a plain value: a rollback expires ORM attributes
        portfolio_id = portfolio.id
        ticker = request.ticker
        purchase_date = request.purchase_date or utcnow()

        async with self.locks.hold(position_lock_key(portfolio_id, ticker)):
            attempts = max(1, settings.MAX_PURCHASE_ATTEMPTS)
            for attempt in range(1, attempts + 1):
                existing = await self.investments.get_by_ticker(portfolio_id, ticker, for_update=True)

                if existing is None:
                    merge = merge_purchase(None, request.quantity, request.price_per_unit)
                    try:
                        investment = await self.investments.create_with_purchase(
                            portfolio_id=portfolio_id,
                            ticker=ticker,
                            asset_name=request.asset_name,
                            asset_type=request.asset_type,
                            currency=request.currency,
                            merge=merge,
                            price_per_unit=request.price_per_unit,
                            quantity=request.quantity,
                            purchase_date=purchase_date,
                            notes=request.notes,
                        )
                    except DuplicatePositionError:
                        if attempt == attempts:
                            raise
                        logger.warning(
                            f"Position {ticker} created concurrently in portfolio {portfolio_id}, "
                            f"retrying as merge (attempt {attempt}/{attempts})"
                        )
                        continue

                    return AddInvestmentResult(
                        investment_id=investment.id,
                        ticker=ticker,
                        aggregated=False,
                        message=f"{ticker} added to portfolio",
                    )

                if existing.purchase_currency != request.currency:
                    raise ValidationError(
                        f"{ticker} is held in {existing.purchase_currency}; "
                        f"purchases in {request.currency} cannot be averaged into it"
                    )

                merge = merge_purchase(
                    PositionState(
                        quantity=existing.total_quantity,
                        average_cost=existing.average_cost_basis,
                    ),
                    request.quantity,
                    request.price_per_unit,
                )
                investment = await self.investments.apply_merge(
                    existing,
                    merge,
                    price_per_unit=request.price_per_unit,
                    quantity=request.quantity,
                    currency=request.currency,
                    purchase_date=purchase_date,
                    notes=request.notes,
                )
                return AddInvestmentResult(
                    investment_id=investment.id,
                    ticker=ticker,
                    aggregated=True,
                    message=f"{ticker}: {request.quantity} shares aggregated",
                )

        raise DuplicatePositionError(ticker)

    # ==================== CRUD Operations ====================

    async def get_investment(self, user_id: str, investment_id: int) -> Investment:
        return await self._get_owned_investment(user_id, investment_id)

    async def update_investment(
        self,
        user_id: str,
        investment_id: int,
        request: UpdateInvestmentRequest,
    ) -> Investment:
        """Update asset name and type. Quantity and cost only change through purchases."""
        investment = await self._get_owned_investment(user_id, investment_id)
        return await self.investments.update_details(
            investment,
            asset_name=request.asset_name,
            asset_type=request.asset_type,
        )

    async def delete_investment(self, user_id: str, investment_id: int) -> str:
        """Delete a position and its purchase history. Returns the ticker."""
        investment = await self._get_owned_investment(user_id, investment_id)
        ticker = investment.ticker
        await self.investments.delete(investment)
        return ticker

    async def list_transactions(self, user_id: str, investment_id: int) -> list[PurchaseTransaction]:
        investment = await self._get_owned_investment(user_id, investment_id)
        return await self.investments.list_transactions(investment.id)

    # ==================== Prices ====================

    async def refresh_investment_price(self, user_id: str, investment_id: int) -> Investment:
        """
        Fetch the current price (cache first) and store it on the position.

        The quote is requested in the position's purchase currency.

        Raises:
            ExternalDataError: The provider failed and no fresh quote is cached
        """
        investment = await self._get_owned_investment(user_id, investment_id)
        price = await self.prices.get_asset_price(
            investment.ticker,
            investment.asset_type,
            currency=investment.purchase_currency,
        )
        return await self.investments.update_price(
            investment,
            price=price,
            currency=investment.purchase_currency,
        )
