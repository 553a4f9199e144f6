"""
Error taxonomy for cart and order operations.

Precondition errors are caused by the request or the current cart/catalog
state; the caller must change something before retrying. Storage errors are
transient infrastructure failures; the transaction guarantees nothing partial
was written, so the same request may be retried.
"""
from __future__ import annotations


class ShopError(Exception):
    """Base error for the storefront core."""

    code = "SHOP_ERROR"
    category = "precondition"
    retryable = False

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)

    def details(self) -> dict:
        """Extra structured fields for clients."""
        return {}

    def to_dict(self) -> dict:
        data = {
            "code": self.code,
            "message": self.message,
            "category": self.category,
            "retryable": self.retryable,
        }
        data.update(self.details())
        return data


class PreconditionError(ShopError):
    """Request cannot succeed against the current state."""

    category = "precondition"
    retryable = False


class EmptyCart(PreconditionError):
    code = "EMPTY_CART"

    def __init__(self, user_id: int):
        self.user_id = user_id
        super().__init__("Cart is empty")


class InsufficientStock(PreconditionError):
    code = "INSUFFICIENT_STOCK"

    def __init__(
        self,
        product_id: int,
        available_stock: int,
        requested_quantity: int,
        product_name: str = "",
    ):
        self.product_id = product_id
        self.product_name = product_name
        self.available_stock = available_stock
        self.requested_quantity = requested_quantity
        label = product_name or f"product {product_id}"
        super().__init__(
            f"Insufficient stock for {label}. "
            f"Available: {available_stock}, requested: {requested_quantity}"
        )

    def details(self) -> dict:
        return {
            "productId": self.product_id,
            "productName": self.product_name,
            "availableStock": self.available_stock,
            "requestedQuantity": self.requested_quantity,
        }


class ProductNotFound(PreconditionError):
    code = "PRODUCT_NOT_FOUND"

    def __init__(self, product_id: int):
        self.product_id = product_id
        super().__init__(f"Product {product_id} not found")

    def details(self) -> dict:
        return {"productId": self.product_id}


class CartLineNotFound(PreconditionError):
    code = "CART_LINE_NOT_FOUND"

    def __init__(self, line_id: int):
        self.line_id = line_id
        super().__init__(f"Cart item {line_id} not found")

    def details(self) -> dict:
        return {"lineId": self.line_id}


class OrderNotFound(PreconditionError):
    code = "ORDER_NOT_FOUND"

    def __init__(self, order_id: int):
        self.order_id = order_id
        super().__init__(f"Order {order_id} not found")

    def details(self) -> dict:
        return {"orderId": self.order_id}


class InvalidQuantity(PreconditionError):
    code = "INVALID_QUANTITY"

    def __init__(self, quantity):
        self.quantity = quantity
        super().__init__(f"Quantity must be a positive integer, got {quantity!r}")


class InvalidPagination(PreconditionError):
    code = "INVALID_PAGINATION"


class StorageError(ShopError):
    """Database failure; nothing was committed."""

    code = "INTERNAL_ERROR"
    category = "transient"
    retryable = True
