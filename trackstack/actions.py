"""
Track Your Stack - Actions

Entry points for the presentation layer. Every action returns an
ActionResult: domain errors become failures tagged with their kind and
retryability; anything unexpected is logged with its stack and reported
as a generic internal failure.
"""
from functools import wraps
from typing import Any, Awaitable, Callable, Optional
from pydantic import ValidationError as PydanticValidationError
from loguru import logger

from trackstack.db.database import async_session_maker
from trackstack.schemas import (
    ActionResult,
    AddInvestmentRequest,
    PortfolioCreate,
    PortfolioUpdate,
    UpdateInvestmentRequest,
)
from trackstack.services.investment_service import InvestmentService
from trackstack.services.portfolio_service import PortfolioService
from trackstack.utils.exceptions import ErrorKind, OwnershipError, TrackStackException


def first_error_message(error: PydanticValidationError) -> str:
    """Message of the first validation issue, without pydantic's prefix."""
    issues = error.errors()
    if not issues:
        return "Invalid input"
    issue = issues[0]
    cause = issue.get("ctx", {}).get("error")
    if cause is not None:
        return str(cause)
    field = ".".join(str(part) for part in issue.get("loc", ()))
    return f"{field}: {issue['msg']}" if field else issue["msg"]


def action(failure_message: str) -> Callable:
    """Convert exceptions raised by an action into failed ActionResults."""

    def decorator(func: Callable[..., Awaitable[ActionResult]]) -> Callable[..., Awaitable[ActionResult]]:
        @wraps(func)
        async def wrapper(*args, **kwargs) -> ActionResult:
            try:
                return await func(*args, **kwargs)
            except PydanticValidationError as e:
                return ActionResult.fail(first_error_message(e), ErrorKind.VALIDATION)
            except TrackStackException as e:
                if e.kind != ErrorKind.VALIDATION:
                    logger.info(f"{func.__name__} failed ({e.kind.value}): {e.message}")
                return ActionResult.fail(e.message, e.kind, e.retryable)
            except Exception:
                logger.exception(f"Unexpected error in {func.__name__}")
                return ActionResult.fail(failure_message, ErrorKind.INTERNAL)

        return wrapper

    return decorator


def _require_user(user_id: Optional[str]) -> str:
    if not user_id:
        raise OwnershipError("Unauthorized")
    return user_id


# ==================== Portfolios ====================

@action("Failed to create portfolio")
async def create_portfolio(user_id: Optional[str], data: dict[str, Any]) -> ActionResult:
    user_id = _require_user(user_id)
    request = PortfolioCreate.model_validate(data)
    async with async_session_maker() as session:
        portfolio = await PortfolioService(session).create_portfolio(user_id, request)
        return ActionResult.ok({"id": portfolio.id}, message=f"{portfolio.name} created")


@action("Failed to load portfolios")
async def list_portfolios(user_id: Optional[str]) -> ActionResult:
    user_id = _require_user(user_id)
    async with async_session_maker() as session:
        items = await PortfolioService(session).list_portfolios(user_id)
        return ActionResult.ok([item.to_dict() for item in items])


@action("Failed to load portfolio")
async def get_portfolio_summary(user_id: Optional[str], portfolio_id: int) -> ActionResult:
    user_id = _require_user(user_id)
    async with async_session_maker() as session:
        overview = await PortfolioService(session).get_portfolio_summary(user_id, portfolio_id)
        return ActionResult.ok(overview.to_dict())


@action("Failed to update portfolio")
async def update_portfolio(user_id: Optional[str], portfolio_id: int, data: dict[str, Any]) -> ActionResult:
    user_id = _require_user(user_id)
    request = PortfolioUpdate.model_validate(data)
    async with async_session_maker() as session:
        portfolio = await PortfolioService(session).update_portfolio(user_id, portfolio_id, request)
        return ActionResult.ok({"id": portfolio.id}, message=f"{portfolio.name} updated")


@action("Failed to delete portfolio")
async def delete_portfolio(user_id: Optional[str], portfolio_id: int) -> ActionResult:
    user_id = _require_user(user_id)
    async with async_session_maker() as session:
        await PortfolioService(session).delete_portfolio(user_id, portfolio_id)
        return ActionResult.ok(message="Portfolio deleted")


# ==================== Investments ====================

@action("Failed to add investment")
async def add_investment(user_id: Optional[str], portfolio_id: int, data: dict[str, Any]) -> ActionResult:
    user_id = _require_user(user_id)
    request = AddInvestmentRequest.model_validate(data)
    async with async_session_maker() as session:
        result = await InvestmentService(session).add_investment(user_id, portfolio_id, request)
        return ActionResult.ok(result.to_dict(), message=result.message)


@action("Failed to update investment")
async def update_investment(user_id: Optional[str], investment_id: int, data: dict[str, Any]) -> ActionResult:
    user_id = _require_user(user_id)
    request = UpdateInvestmentRequest.model_validate(data)
    async with async_session_maker() as session:
        investment = await InvestmentService(session).update_investment(user_id, investment_id, request)
        return ActionResult.ok({"id": investment.id}, message=f"{investment.ticker} updated")


@action("Failed to remove investment")
async def delete_investment(user_id: Optional[str], investment_id: int) -> ActionResult:
    user_id = _require_user(user_id)
    async with async_session_maker() as session:
        ticker = await InvestmentService(session).delete_investment(user_id, investment_id)
        return ActionResult.ok(message=f"{ticker} removed from portfolio")


@action("Failed to refresh price")
async def refresh_investment_price(user_id: Optional[str], investment_id: int) -> ActionResult:
    user_id = _require_user(user_id)
    async with async_session_maker() as session:
        investment = await InvestmentService(session).refresh_investment_price(user_id, investment_id)
        return ActionResult.ok(
            {
                "price": str(investment.current_price),
                "currency": investment.current_price_currency,
            },
            message="Price refreshed",
        )


@action("Failed to load transactions")
async def list_transactions(user_id: Optional[str], investment_id: int) -> ActionResult:
    user_id = _require_user(user_id)
    async with async_session_maker() as session:
        transactions = await InvestmentService(session).list_transactions(user_id, investment_id)
        return ActionResult.ok([
            {
                "id": tx.id,
                "quantity": str(tx.quantity),
                "price_per_unit": str(tx.price_per_unit),
                "currency": tx.currency,
                "purchase_date": tx.purchase_date.isoformat() if tx.purchase_date else None,
                "notes": tx.notes,
            }
            for tx in transactions
        ])
