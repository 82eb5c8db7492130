"""Lenient numeric coercion for stock and price input coming from admin forms."""
from decimal import Decimal, InvalidOperation
from typing import Any

TWO_PLACES = Decimal("0.01")


def coerce_price(value: Any) -> Decimal:
    """
    Coerce a price-like value to a non-negative Decimal with two places.

    Missing, non-numeric and negative input all become 0.00; booleans are
    rejected the same way since they are never meant as prices.
    """
    if value is None or isinstance(value, bool):
        return Decimal("0.00")
    try:
        amount = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        return Decimal("0.00")
    if not amount.is_finite() or amount < 0:
        return Decimal("0.00")
    return amount.quantize(TWO_PLACES)


def coerce_quantity(value: Any) -> int:
    """
    Coerce a stock-like value to a non-negative int.

    "12" -> 12, 7.9 -> 7, "abc" -> 0, -3 -> 0, None -> 0.
    """
    if value is None or isinstance(value, bool):
        return 0
    try:
        quantity = int(Decimal(str(value).strip()))
    except (InvalidOperation, ValueError, OverflowError):
        return 0
    return max(0, quantity)
