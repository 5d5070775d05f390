"""
Position Merge

Folds a new purchase into a position using weighted-average cost basis:

    total_quantity = q0 + q1
    average_cost   = (q0 * c0 + q1 * p1) / (q0 + q1)

Pure computation, no I/O. The caller persists the result together with
the purchase transaction in one atomic write.
"""
from dataclasses import dataclass
from decimal import Decimal
from typing import Optional

from trackstack.utils import decimal_utils as dec
from trackstack.utils.exceptions import ValidationError


@dataclass(frozen=True)
class PositionState:
    """Stored totals of an existing position."""
    quantity: Decimal
    average_cost: Decimal


@dataclass(frozen=True)
class MergeResult:
    """New position totals after a purchase."""
    quantity: Decimal
    average_cost: Decimal
    aggregated: bool  # False when the purchase opened the position


def merge_purchase(
    existing: Optional[PositionState],
    quantity: dec.Number,
    price: dec.Number,
) -> MergeResult:
    """
    Merge a purchase into an existing position, or open a new one.

    Args:
        existing: Current totals, or None on the first purchase
        quantity: Units bought, > 0
        price: Price per unit in the position currency, > 0

    Returns:
        MergeResult with the new quantity and average cost

    Raises:
        ValidationError: If quantity or price is not strictly positive
    """
    try:
        quantity = dec.to_decimal(quantity)
        price = dec.to_decimal(price)
    except ValueError as e:
        raise ValidationError(str(e)) from None

    if quantity <= dec.ZERO:
        raise ValidationError("Quantity must be positive")
    if price <= dec.ZERO:
        raise ValidationError("Price must be positive")

    if existing is None:
        return MergeResult(quantity=quantity, average_cost=price, aggregated=False)

    total_quantity = dec.add(existing.quantity, quantity)
    total_cost = dec.add(
        dec.multiply(existing.quantity, existing.average_cost),
        dec.multiply(quantity, price),
    )
    # Average cost keeps more digits than prices so repeated merges do not drift
    average_cost = dec.quantize(dec.divide(total_cost, total_quantity), dec.COST_BASIS_PLACES)

    return MergeResult(quantity=total_quantity, average_cost=average_cost, aggregated=True)
