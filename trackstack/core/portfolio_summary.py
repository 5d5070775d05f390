"""
Portfolio Summary

Combines every position of a portfolio, converted to the portfolio base
currency, into totals, per-position weights, best/worst performers and
an asset-class allocation.
"""
import asyncio
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Dict, List, Optional, Tuple

from trackstack.core.metrics import InvestmentMetrics, convert_to_base_currency
from trackstack.utils import decimal_utils as dec

# Gain/loss percentages closer than this rank as equal
PERFORMANCE_TIE_TOLERANCE = Decimal("0.001")


@dataclass
class InvestmentWithMetrics:
    """A position with its metrics in the portfolio base currency."""
    investment_id: int
    ticker: str
    asset_name: str
    asset_type: str
    purchase_currency: str
    quantity: Decimal
    average_cost: Decimal
    current_price: Optional[Decimal]
    metrics: InvestmentMetrics
    percent_of_portfolio: Decimal = dec.ZERO

    @property
    def has_price(self) -> bool:
        return self.current_price is not None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.investment_id,
            "ticker": self.ticker,
            "asset_name": self.asset_name,
            "asset_type": self.asset_type,
            "purchase_currency": self.purchase_currency,
            "quantity": str(self.quantity),
            "average_cost": str(self.average_cost),
            "current_price": str(self.current_price) if self.current_price is not None else None,
            **self.metrics.to_dict(),
            "percent_of_portfolio": str(self.percent_of_portfolio),
        }


@dataclass
class AllocationSlice:
    """Share of portfolio value held in one asset class."""
    asset_type: str
    value: Decimal
    percentage: Decimal
    count: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "asset_type": self.asset_type,
            "value": str(self.value),
            "percentage": str(self.percentage),
            "count": self.count,
        }


@dataclass
class PortfolioSummary:
    """Portfolio totals in the base currency."""
    portfolio_id: int
    base_currency: str
    total_value: Decimal
    total_cost: Decimal
    total_gain_loss: Decimal
    total_gain_loss_percent: Decimal
    investments: List[InvestmentWithMetrics] = field(default_factory=list)
    best_performer: Optional[InvestmentWithMetrics] = None
    worst_performer: Optional[InvestmentWithMetrics] = None

    @property
    def investment_count(self) -> int:
        return len(self.investments)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "portfolio_id": self.portfolio_id,
            "base_currency": self.base_currency,
            "total_value": str(self.total_value),
            "total_cost": str(self.total_cost),
            "total_gain_loss": str(self.total_gain_loss),
            "total_gain_loss_percent": str(self.total_gain_loss_percent),
            "investment_count": self.investment_count,
            "investments": [item.to_dict() for item in self.investments],
            "best_performer": self.best_performer.ticker if self.best_performer else None,
            "worst_performer": self.worst_performer.ticker if self.worst_performer else None,
        }


def _asset_type_value(asset_type) -> str:
    return getattr(asset_type, "value", asset_type)


async def _with_metrics(investment, base_currency: str, rate_source) -> InvestmentWithMetrics:
    metrics = await convert_to_base_currency(investment, base_currency, rate_source)
    return InvestmentWithMetrics(
        investment_id=investment.id,
        ticker=investment.ticker,
        asset_name=investment.asset_name,
        asset_type=_asset_type_value(investment.asset_type),
        purchase_currency=investment.purchase_currency,
        quantity=dec.to_decimal(investment.total_quantity),
        average_cost=dec.to_decimal(investment.average_cost_basis),
        current_price=(
            dec.to_decimal(investment.current_price)
            if investment.current_price is not None else None
        ),
        metrics=metrics,
    )


async def calculate_portfolio_summary(portfolio, rate_source=None) -> PortfolioSummary:
    """
    Summarize a portfolio in its base currency.

    Positions are converted concurrently. Any conversion failure fails
    the whole summary; no position is silently valued with a made-up rate.

    Args:
        portfolio: Object exposing id, base_currency and investments
        rate_source: Passed through to convert_to_base_currency
    """
    base_currency = portfolio.base_currency
    items = list(
        await asyncio.gather(
            *(_with_metrics(inv, base_currency, rate_source) for inv in portfolio.investments)
        )
    )

    total_value = dec.decimal_sum(item.metrics.current_value for item in items)
    total_cost = dec.decimal_sum(item.metrics.total_cost for item in items)
    total_gain_loss = dec.subtract(total_value, total_cost)

    for item in items:
        item.percent_of_portfolio = dec.percentage(item.metrics.current_value, total_value)

    best, worst = rank_performers(items)

    return PortfolioSummary(
        portfolio_id=portfolio.id,
        base_currency=base_currency,
        total_value=total_value,
        total_cost=total_cost,
        total_gain_loss=total_gain_loss,
        total_gain_loss_percent=dec.percentage(total_gain_loss, total_cost),
        investments=items,
        best_performer=best,
        worst_performer=worst,
    )


def _within_tolerance_of(
    items: List[InvestmentWithMetrics],
    target: Decimal,
) -> List[InvestmentWithMetrics]:
    return [
        item for item in items
        if dec.is_close(item.metrics.gain_loss_percent, target, PERFORMANCE_TIE_TOLERANCE)
    ]


def rank_performers(
    items: List[InvestmentWithMetrics],
) -> Tuple[Optional[InvestmentWithMetrics], Optional[InvestmentWithMetrics]]:
    """
    Best and worst performer by gain/loss percent.

    Positions without a quote are not ranked. Percentages within the tie
    tolerance of the extreme count as tied; the best is the first tied
    ticker in ascending order and the worst the last, independent of
    input order. Ties are measured against the extreme itself.
    """
    priced = [item for item in items if item.has_price]
    if not priced:
        return None, None

    highest = max(item.metrics.gain_loss_percent for item in priced)
    lowest = min(item.metrics.gain_loss_percent for item in priced)

    best = min(_within_tolerance_of(priced, highest), key=lambda item: item.ticker)
    worst = max(_within_tolerance_of(priced, lowest), key=lambda item: item.ticker)
    return best, worst
