"""
Fixed-point money helpers.
"""
from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable

CENT = Decimal("0.01")
ZERO = Decimal("0.00")


def to_money(value) -> Decimal:
    """Coerce a value to a 2-place Decimal (strings and ints, never floats)."""
    if isinstance(value, float):
        value = str(value)
    return Decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


def sum_money(amounts: Iterable[Decimal]) -> Decimal:
    """Sum unrounded amounts, then round once to minor units."""
    total = sum(amounts, Decimal("0"))
    return total.quantize(CENT, rounding=ROUND_HALF_UP)
