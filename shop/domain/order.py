"""
Domain model for Order aggregate.
"""
from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from enum import Enum

from shop.domain.cart import Cart
from shop.domain.errors import EmptyCart
from shop.domain.money import sum_money


class OrderStatus(str, Enum):
    """Order status enumeration."""
    PENDING = "pending"
    PROCESSING = "processing"
    SHIPPED = "shipped"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"


class OrderLine:
    """Order line item value object (historical price record)."""

    def __init__(
        self,
        product_id: int,
        quantity: int,
        price_at_time: Decimal,
        id: int | None = None,
        product_name: str = "",
    ):
        if quantity <= 0:
            raise ValueError("Quantity must be positive")
        if price_at_time < 0:
            raise ValueError("Price must be non-negative")

        self.id = id
        self.product_id = product_id
        self.quantity = quantity
        self.price_at_time = price_at_time
        self.product_name = product_name

    @property
    def subtotal(self) -> Decimal:
        """Calculate line subtotal."""
        return self.price_at_time * self.quantity


class Order:
    """Order aggregate root."""

    def __init__(
        self,
        user_id: int,
        lines: list[OrderLine],
        id: int | None = None,
        status: OrderStatus = OrderStatus.PENDING,
        total_amount: Decimal | None = None,
        created_at: datetime | None = None,
        updated_at: datetime | None = None,
    ):
        if not lines:
            raise ValueError("Order must have at least one line")

        self.id = id
        self.user_id = user_id
        self._lines = list(lines)
        self._status = status
        self._total_amount = total_amount
        self.created_at = created_at
        self.updated_at = updated_at

    @classmethod
    def from_cart(cls, cart: Cart) -> "Order":
        """Build a pending order from cart lines, copying their frozen prices."""
        if cart.is_empty:
            raise EmptyCart(cart.user_id)

        lines = [
            OrderLine(
                product_id=line.product_id,
                quantity=line.quantity,
                price_at_time=line.price_at_time,
                product_name=line.product.name if line.product else "",
            )
            for line in cart.lines
        ]
        return cls(user_id=cart.user_id, lines=lines)

    @property
    def lines(self) -> list[OrderLine]:
        """Get order lines (immutable)."""
        return list(self._lines)

    @property
    def status(self) -> OrderStatus:
        return self._status

    @property
    def total_amount(self) -> Decimal:
        """Stored total, or the sum of line subtotals rounded once."""
        if self._total_amount is not None:
            return self._total_amount
        return sum_money(line.subtotal for line in self._lines)

    def change_status(self, new_status: OrderStatus) -> OrderStatus:
        """
        Overwrite the status and return the previous one.

        Any status is reachable from any other; there is no transition table.
        """
        previous = self._status
        self._status = OrderStatus(new_status)
        return previous
