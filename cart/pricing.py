"""Cart price calculation.

A single pure function turns cart lines into the four stored totals. Every
code path that changes a cart's lines (add, remove, merge) goes through
`calculate_totals` so totals can never drift between paths.
"""

from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable

from django.conf import settings

TWO_PLACES = Decimal("0.01")
ZERO = Decimal("0.00")


def round2(value) -> Decimal:
    """Round half-up to two decimal places.

    Floats go through `str()` first so binary artifacts such as
    10.005 -> 10.004999... never truncate the result.
    """

    if isinstance(value, float):
        value = str(value)
    return Decimal(value).quantize(TWO_PLACES, rounding=ROUND_HALF_UP)


def _policy(name: str, default: str) -> Decimal:
    return Decimal(str(getattr(settings, name, default)))


def calculate_totals(lines: Iterable) -> dict:
    """Compute items, shipping, tax and grand totals for cart lines.

    Each line needs `unit_price` and `quantity` attributes. An empty cart
    totals to zero across the board; shipping is only charged on carts
    at or below the free-shipping threshold.
    """

    lines = list(lines)
    if not lines:
        return {"items_total": ZERO, "shipping_total": ZERO, "tax_total": ZERO, "grand_total": ZERO}

    items_total = round2(sum((Decimal(str(line.unit_price)) * int(line.quantity) for line in lines), Decimal("0")))
    threshold = _policy("CART_FREE_SHIPPING_THRESHOLD", "1000.00")
    shipping_total = ZERO if items_total > threshold else round2(_policy("CART_SHIPPING_FEE", "150.00"))
    tax_total = round2(items_total * _policy("CART_TAX_RATE", "0"))
    grand_total = round2(items_total + shipping_total + tax_total)
    return {
        "items_total": items_total,
        "shipping_total": shipping_total,
        "tax_total": tax_total,
        "grand_total": grand_total,
    }
