"""
Domain model for the shopping cart.

Cart lines carry the price captured when the line was first created
(persistent pricing). Nothing here ever reads the live catalog price back
into a line.
"""
from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from shop.domain.money import sum_money
from shop.domain.product import Product


class CartLine:
    """Cart line item with a frozen unit price."""

    def __init__(
        self,
        user_id: int,
        product_id: int,
        quantity: int,
        price_at_time: Decimal,
        id: int | None = None,
        product: Product | None = None,
        created_at: datetime | None = None,
    ):
        if quantity <= 0:
            raise ValueError("Quantity must be positive")
        if price_at_time < 0:
            raise ValueError("Price must be non-negative")

        self.id = id
        self.user_id = user_id
        self.product_id = product_id
        self.quantity = quantity
        self.price_at_time = price_at_time
        self.product = product
        self.created_at = created_at

    @property
    def subtotal(self) -> Decimal:
        """Unrounded line subtotal at the frozen price."""
        return self.price_at_time * self.quantity

    def merged_quantity(self, extra: int) -> int:
        """Quantity after merging another add of the same product."""
        if extra <= 0:
            raise ValueError("Quantity must be positive")
        return self.quantity + extra


class Cart:
    """All lines a user currently holds."""

    def __init__(self, user_id: int, lines: list[CartLine] | None = None):
        self.user_id = user_id
        self._lines = lines or []

    @property
    def lines(self) -> list[CartLine]:
        return list(self._lines)

    @property
    def is_empty(self) -> bool:
        return not self._lines

    @property
    def total_items(self) -> int:
        return len(self._lines)

    @property
    def total_quantity(self) -> int:
        return sum(line.quantity for line in self._lines)

    @property
    def total_amount(self) -> Decimal:
        """Sum of frozen-price subtotals, rounded once."""
        return sum_money(line.subtotal for line in self._lines)

    def find_line(self, product_id: int) -> CartLine | None:
        for line in self._lines:
            if line.product_id == product_id:
                return line
        return None
