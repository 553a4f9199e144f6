"""
Application services for cart, catalog and order operations.
"""
from __future__ import annotations

import logging
from functools import wraps
from uuid import uuid4

from django.conf import settings
from django.db import DatabaseError, IntegrityError, transaction

from shop.domain.cart import Cart, CartLine
from shop.domain.errors import (
    CartLineNotFound,
    EmptyCart,
    InsufficientStock,
    InvalidQuantity,
    OrderNotFound,
    ProductNotFound,
    ShopError,
    StorageError,
)
from shop.domain.events import OrderPlaced, OrderStatusChanged
from shop.domain.order import Order, OrderStatus
from shop.domain.pagination import Page, validate_page
from shop.domain.product import Product, ProductPatch
from shop.infra.locks import cart_lock, statement_timeout
from shop.infra.outbox import OutboxRepository
from shop.infra.repositories import (
    CartRepository,
    OrderRepository,
    ProductRepository,
)


logger = logging.getLogger(__name__)


def _validate_quantity(quantity) -> int:
    if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity < 1:
        raise InvalidQuantity(quantity)
    return quantity


def _cart_write(method):
    """Run a cart write in one transaction holding the user's cart lock."""
    @wraps(method)
    def wrapper(self, user_id, *args, **kwargs):
        with transaction.atomic(), cart_lock(user_id):
            return method(self, user_id, *args, **kwargs)
    return wrapper


class CatalogService:
    """Catalog operations the order core relies on."""

    def __init__(self, product_repo: ProductRepository | None = None):
        self.product_repo = product_repo or ProductRepository()

    def get_product(self, product_id: int) -> Product:
        product = self.product_repo.get_by_id(product_id)
        if product is None:
            raise ProductNotFound(product_id)
        return product

    def update_product(self, product_id: int, patch: ProductPatch) -> Product:
        """Apply an explicit patch. Price changes never touch existing cart lines."""
        product = self.product_repo.update(product_id, patch)
        logger.info(
            "product_updated",
            extra={"product_id": product_id, "fields": sorted(patch.changes())},
        )
        return product

    def restock(self, product_id: int, quantity: int) -> int:
        _validate_quantity(quantity)
        new_stock = self.product_repo.restock(product_id, quantity)
        logger.info(
            "product_restocked",
            extra={"product_id": product_id, "quantity": quantity, "stock": new_stock},
        )
        return new_stock


class CartService:
    """Service for cart operations (persistent pricing)."""

    def __init__(
        self,
        cart_repo: CartRepository | None = None,
        product_repo: ProductRepository | None = None,
    ):
        self.product_repo = product_repo or ProductRepository()
        self.cart_repo = cart_repo or CartRepository(product_repo=self.product_repo)

    def list_lines(self, user_id: int) -> Cart:
        """Get the user's cart for display."""
        return Cart(user_id=user_id, lines=self.cart_repo.get_lines(user_id))

    @_cart_write
    def add_line(self, user_id: int, product_id: int, quantity: int) -> CartLine:
        """
        Add a product to the cart.

        A new line freezes the current product price. Adding a product that
        is already in the cart merges quantities and keeps the first price.
        """
        _validate_quantity(quantity)

        product = self.product_repo.get_by_id(product_id)
        if product is None:
            raise ProductNotFound(product_id)

        existing = self.cart_repo.get_line_for_product(user_id, product_id, for_update=True)
        if existing is not None:
            return self._merge(existing, product, quantity)

        if not product.has_stock_for(quantity):
            raise InsufficientStock(
                product_id=product_id,
                product_name=product.name,
                available_stock=product.stock,
                requested_quantity=quantity,
            )

        try:
            # Savepoint so a concurrent insert of the same product can be merged instead
            with transaction.atomic():
                line = self.cart_repo.create_line(
                    CartLine(
                        user_id=user_id,
                        product_id=product_id,
                        quantity=quantity,
                        price_at_time=product.price,
                    )
                )
        except IntegrityError:
            existing = self.cart_repo.get_line_for_product(user_id, product_id, for_update=True)
            if existing is None:
                raise
            logger.info(
                "cart_line_add_conflict",
                extra={"user_id": user_id, "product_id": product_id},
            )
            return self._merge(existing, product, quantity)

        logger.info(
            "cart_line_added",
            extra={"user_id": user_id, "product_id": product_id, "quantity": quantity},
        )
        return line

    def _merge(self, existing: CartLine, product: Product, quantity: int) -> CartLine:
        new_quantity = existing.merged_quantity(quantity)
        if not product.has_stock_for(new_quantity):
            raise InsufficientStock(
                product_id=product.id,
                product_name=product.name,
                available_stock=product.stock,
                requested_quantity=new_quantity,
            )

        line = self.cart_repo.set_quantity(existing.user_id, existing.id, new_quantity)
        logger.info(
            "cart_line_merged",
            extra={"user_id": existing.user_id, "product_id": product.id, "quantity": new_quantity},
        )
        return line

    @_cart_write
    def update_line(self, user_id: int, line_id: int, quantity: int) -> CartLine:
        """Set a line's quantity; its price stays as captured."""
        _validate_quantity(quantity)

        line = self.cart_repo.get_line(user_id, line_id, for_update=True)
        if line is None:
            raise CartLineNotFound(line_id)

        product = self.product_repo.get_by_id(line.product_id)
        if not product.has_stock_for(quantity):
            raise InsufficientStock(
                product_id=product.id,
                product_name=product.name,
                available_stock=product.stock,
                requested_quantity=quantity,
            )

        line = self.cart_repo.set_quantity(user_id, line_id, quantity)
        logger.info(
            "cart_line_updated",
            extra={"user_id": user_id, "line_id": line_id, "quantity": quantity},
        )
        return line

    @_cart_write
    def remove_line(self, user_id: int, line_id: int) -> bool:
        """Remove a line if the user has it. Removing twice is not an error."""
        removed = self.cart_repo.delete_line(user_id, line_id) > 0
        logger.info(
            "cart_line_removed",
            extra={"user_id": user_id, "line_id": line_id, "status": "removed" if removed else "absent"},
        )
        return removed

    @_cart_write
    def clear(self, user_id: int) -> int:
        removed = self.cart_repo.clear(user_id)
        logger.info("cart_cleared", extra={"user_id": user_id, "lines": removed})
        return removed


class OrderService:
    """Service for order placement and the order ledger."""

    def __init__(
        self,
        order_repo: OrderRepository | None = None,
        cart_repo: CartRepository | None = None,
        product_repo: ProductRepository | None = None,
        outbox_repo: OutboxRepository | None = None,
    ):
        self.product_repo = product_repo or ProductRepository()
        self.cart_repo = cart_repo or CartRepository(product_repo=self.product_repo)
        self.order_repo = order_repo or OrderRepository()
        self.outbox_repo = outbox_repo or OutboxRepository()

    def place_order(self, user_id: int) -> Order:
        """
        Turn the user's cart into a pending order.

        Everything happens in one transaction: read cart, check stock, create
        order and lines, decrement stock, clear cart, record the event. Any
        failure rolls all of it back.
        """
        try:
            order = self._place_order(user_id)
        except ShopError as e:
            logger.info(
                "order_rejected",
                extra={"user_id": user_id, "operation": "place_order", "error": e.code},
            )
            raise
        except DatabaseError as e:
            logger.error(
                "order_storage_error",
                extra={"user_id": user_id, "operation": "place_order", "error": str(e)},
                exc_info=True,
            )
            raise StorageError("Order could not be placed, nothing was changed") from e

        logger.info(
            "order_placed",
            extra={
                "user_id": user_id,
                "order_id": order.id,
                "total_amount": str(order.total_amount),
                "lines": len(order.lines),
            },
        )
        return order

    def _place_order(self, user_id: int) -> Order:
        timeout = getattr(settings, "SHOP_TRANSACTION_TIMEOUT_MS", 0)

        with transaction.atomic(), statement_timeout(timeout), cart_lock(user_id):
            cart = Cart(user_id=user_id, lines=self.cart_repo.get_lines(user_id, for_update=True))
            if cart.is_empty:
                raise EmptyCart(user_id)

            # Fast path: friendly error before anything is written
            for line in cart.lines:
                if not line.product.has_stock_for(line.quantity):
                    raise InsufficientStock(
                        product_id=line.product_id,
                        product_name=line.product.name,
                        available_stock=line.product.stock,
                        requested_quantity=line.quantity,
                    )

            order = Order.from_cart(cart)
            order_id = self.order_repo.create(order)

            # Authoritative guard: conditional decrement per line
            for line in order.lines:
                self.product_repo.decrement_stock(line.product_id, line.quantity)

            # Only the lines turned into order lines; a concurrent add stays in the cart
            self.cart_repo.delete_lines(user_id, [line.id for line in cart.lines])

            self.outbox_repo.add_event(
                OrderPlaced(
                    event_id=uuid4(),
                    aggregate_id=order_id,
                    event_type="OrderPlaced",
                    user_id=user_id,
                    total_amount=order.total_amount,
                    lines_count=len(order.lines),
                ),
                "Order",
            )

            return self.order_repo.get_by_id(order_id)

    def get_order(self, order_id: int, owner_user_id: int | None = None) -> Order:
        """Get order by ID, optionally restricted to its owner."""
        order = self.order_repo.get_by_id(order_id, owner_user_id=owner_user_id)
        if order is None:
            raise OrderNotFound(order_id)
        return order

    def list_orders(
        self,
        user_id: int | None = None,
        status: OrderStatus | None = None,
        page: int = 1,
        limit: int | None = None,
    ) -> Page[Order]:
        """Paged orders, newest first; ``user_id=None`` lists everyone's (admin)."""
        if limit is None:
            limit = getattr(settings, "SHOP_DEFAULT_PAGE_SIZE", 10)
        validate_page(page, limit, getattr(settings, "SHOP_MAX_PAGE_SIZE", 100))
        return self.order_repo.list(user_id=user_id, status=status, page=page, limit=limit)

    @transaction.atomic
    def update_status(self, order_id: int, new_status: OrderStatus) -> Order:
        """Overwrite order status. No transition rules are enforced."""
        order = self.get_order(order_id)
        previous = order.change_status(new_status)

        self.order_repo.update_status(order_id, order.status)
        self.outbox_repo.add_event(
            OrderStatusChanged(
                event_id=uuid4(),
                aggregate_id=order_id,
                event_type="OrderStatusChanged",
                previous_status=previous.value,
                new_status=order.status.value,
            ),
            "Order",
        )

        logger.info(
            "order_status_updated",
            extra={
                "order_id": order_id,
                "operation": "update_status",
                "status": order.status.value,
                "previous_status": previous.value,
            },
        )
        return self.get_order(order_id)
