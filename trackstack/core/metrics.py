"""
Investment Metrics

Per-position value, cost and gain/loss, in the position's purchase
currency or converted into a portfolio base currency.

A position with no known quote is valued at 0, so it shows a loss equal
to its cost instead of failing the whole portfolio view.
"""
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Dict, Optional

from trackstack.utils import decimal_utils as dec


@dataclass(frozen=True)
class InvestmentMetrics:
    """Monetary metrics of one position."""
    current_value: Decimal
    total_cost: Decimal
    gain_loss: Decimal
    gain_loss_percent: Decimal

    def to_dict(self) -> Dict[str, Any]:
        return {
            "current_value": str(self.current_value),
            "total_cost": str(self.total_cost),
            "gain_loss": str(self.gain_loss),
            "gain_loss_percent": str(self.gain_loss_percent),
        }


def calculate_investment_metrics(investment) -> InvestmentMetrics:
    """
    Metrics in the position's own currency.

    Args:
        investment: Object exposing total_quantity, average_cost_basis
            and current_price (None when no quote is known)
    """
    quantity = dec.to_decimal(investment.total_quantity)
    total_cost = dec.multiply(investment.average_cost_basis, quantity)

    if investment.current_price is None:
        current_value = dec.ZERO
    else:
        current_value = dec.multiply(investment.current_price, quantity)

    gain_loss = dec.subtract(current_value, total_cost)

    return InvestmentMetrics(
        current_value=current_value,
        total_cost=total_cost,
        gain_loss=gain_loss,
        gain_loss_percent=dec.percentage(gain_loss, total_cost),
    )


def scale_metrics(metrics: InvestmentMetrics, rate: Decimal) -> InvestmentMetrics:
    """Express metrics in another currency. The percentage is currency-invariant."""
    return InvestmentMetrics(
        current_value=dec.multiply(metrics.current_value, rate),
        total_cost=dec.multiply(metrics.total_cost, rate),
        gain_loss=dec.multiply(metrics.gain_loss, rate),
        gain_loss_percent=metrics.gain_loss_percent,
    )


async def convert_to_base_currency(
    investment,
    base_currency: str,
    rate_source=None,
) -> InvestmentMetrics:
    """
    Metrics of a position expressed in base_currency.

    Same-currency positions are returned unchanged without touching the
    rate source. Otherwise the rate comes from the price/rate cache,
    fetched from the provider when missing or stale.

    Args:
        investment: Position to value
        base_currency: Target currency code
        rate_source: Object with an async get_currency_rate(from, to);
            defaults to the shared PriceService

    Raises:
        ExternalDataError: No usable rate could be obtained
        LockTimeoutError: The currency pair is busy being refreshed
    """
    metrics = calculate_investment_metrics(investment)

    purchase_currency = investment.purchase_currency.upper()
    base_currency = base_currency.upper()
    if purchase_currency == base_currency:
        return metrics

    if rate_source is None:
        from trackstack.services.price_service import price_service
        rate_source = price_service

    rate = await rate_source.get_currency_rate(purchase_currency, base_currency)
    return scale_metrics(metrics, rate)
