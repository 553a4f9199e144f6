"""
Infrastructure repositories for catalog, cart and order ledger.
"""
from __future__ import annotations

import logging
from decimal import Decimal

from django.db import transaction
from django.db.models import F
from django.utils import timezone

from shop.domain.cart import CartLine
from shop.domain.errors import InsufficientStock, ProductNotFound
from shop.domain.order import Order, OrderLine, OrderStatus
from shop.domain.pagination import Page
from shop.domain.product import Product, ProductPatch
from shop.infra.models import (
    CartLineORM,
    CategoryORM,
    OrderLineORM,
    OrderORM,
    ProductORM,
)

logger = logging.getLogger(__name__)


class ProductRepository:
    """
    Catalog store.

    ``stock`` is written only by ``decrement_stock`` and ``restock``, each a
    single conditional UPDATE, so no caller ever acts on a stale stock value.
    """

    def get_by_id(self, product_id: int) -> Product | None:
        try:
            product_orm = ProductORM.objects.select_related("category").get(id=product_id)
        except ProductORM.DoesNotExist:
            return None
        return self._to_domain(product_orm)

    def decrement_stock(self, product_id: int, by_amount: int) -> None:
        """Atomically take ``by_amount`` units out of stock, or fail."""
        if by_amount <= 0:
            raise ValueError("Decrement amount must be positive")

        updated = (
            ProductORM.objects
            .filter(id=product_id, stock__gte=by_amount)
            .update(stock=F("stock") - by_amount)
        )
        if updated:
            return

        product = self.get_by_id(product_id)
        if product is None:
            raise ProductNotFound(product_id)

        logger.warning(
            "stock_decrement_rejected",
            extra={
                "product_id": product_id,
                "available_stock": product.stock,
                "requested_quantity": by_amount,
            },
        )
        raise InsufficientStock(
            product_id=product_id,
            product_name=product.name,
            available_stock=product.stock,
            requested_quantity=by_amount,
        )

    def restock(self, product_id: int, by_amount: int) -> int:
        """Atomically add ``by_amount`` units; return the new stock."""
        if by_amount <= 0:
            raise ValueError("Restock amount must be positive")

        updated = ProductORM.objects.filter(id=product_id).update(stock=F("stock") + by_amount)
        if not updated:
            raise ProductNotFound(product_id)
        return ProductORM.objects.values_list("stock", flat=True).get(id=product_id)

    def create(
        self,
        name: str,
        price: Decimal,
        stock: int,
        category_id: int,
        description: str = "",
    ) -> Product:
        # Validate through the domain object before touching the database
        Product(id=0, name=name, price=price, stock=stock, category_id=category_id)
        product_orm = ProductORM.objects.create(
            name=name,
            description=description,
            price=price,
            stock=stock,
            category_id=category_id,
        )
        return self.get_by_id(product_orm.id)

    @transaction.atomic
    def update(self, product_id: int, patch: ProductPatch) -> Product:
        """Apply an explicit patch; fields absent from the patch are kept."""
        try:
            product_orm = ProductORM.objects.select_for_update().get(id=product_id)
        except ProductORM.DoesNotExist:
            raise ProductNotFound(product_id)

        changed = patch.apply(product_orm)
        if changed:
            product_orm.save(update_fields=changed + ["updated_at"])
        return self.get_by_id(product_id)

    def _to_domain(self, product_orm: ProductORM) -> Product:
        return Product(
            id=product_orm.id,
            name=product_orm.name,
            price=product_orm.price,
            stock=product_orm.stock,
            category_id=product_orm.category_id,
            category_name=product_orm.category.name,
            description=product_orm.description,
        )


class CategoryRepository:
    """Repository for product categories."""

    def create(self, name: str, description: str = "") -> int:
        return CategoryORM.objects.create(name=name, description=description).id


class CartRepository:
    """Cart store: per-user lines with frozen prices."""

    def __init__(self, product_repo: ProductRepository | None = None):
        self.product_repo = product_repo or ProductRepository()

    def get_lines(self, user_id: int, for_update: bool = False) -> list[CartLine]:
        """Get the user's lines joined with product and category, newest first."""
        lines_orm = (
            CartLineORM.objects
            .filter(user_id=user_id)
            .select_related("product", "product__category")
            .order_by("-created_at", "-id")
        )
        if for_update:
            lines_orm = lines_orm.select_for_update(of=("self",))
        return [self._to_domain(line_orm) for line_orm in lines_orm]

    def get_line(self, user_id: int, line_id: int, for_update: bool = False) -> CartLine | None:
        queryset = CartLineORM.objects.select_related("product", "product__category")
        if for_update:
            queryset = queryset.select_for_update(of=("self",))
        line_orm = queryset.filter(id=line_id, user_id=user_id).first()
        return self._to_domain(line_orm) if line_orm else None

    def get_line_for_product(self, user_id: int, product_id: int, for_update: bool = False) -> CartLine | None:
        queryset = CartLineORM.objects.select_related("product", "product__category")
        if for_update:
            queryset = queryset.select_for_update(of=("self",))
        line_orm = queryset.filter(user_id=user_id, product_id=product_id).first()
        return self._to_domain(line_orm) if line_orm else None

    def create_line(self, line: CartLine) -> CartLine:
        line_orm = CartLineORM.objects.create(
            user_id=line.user_id,
            product_id=line.product_id,
            quantity=line.quantity,
            price_at_time=line.price_at_time,
        )
        return self.get_line(line.user_id, line_orm.id)

    def set_quantity(self, user_id: int, line_id: int, quantity: int) -> CartLine | None:
        """Change quantity only; the frozen price is never rewritten here."""
        CartLineORM.objects.filter(id=line_id, user_id=user_id).update(quantity=quantity)
        return self.get_line(user_id, line_id)

    def delete_line(self, user_id: int, line_id: int) -> int:
        deleted, _ = CartLineORM.objects.filter(id=line_id, user_id=user_id).delete()
        return deleted

    def delete_lines(self, user_id: int, line_ids: list[int]) -> int:
        """Delete exactly the given lines; lines added since they were read stay."""
        deleted, _ = CartLineORM.objects.filter(user_id=user_id, id__in=line_ids).delete()
        return deleted

    def clear(self, user_id: int) -> int:
        deleted, _ = CartLineORM.objects.filter(user_id=user_id).delete()
        return deleted

    def _to_domain(self, line_orm: CartLineORM) -> CartLine:
        return CartLine(
            id=line_orm.id,
            user_id=line_orm.user_id,
            product_id=line_orm.product_id,
            quantity=line_orm.quantity,
            price_at_time=line_orm.price_at_time,
            product=self.product_repo._to_domain(line_orm.product),
            created_at=line_orm.created_at,
        )


class OrderRepository:
    """Order ledger: orders are appended with their lines, then only status changes."""

    def _queryset(self):
        return OrderORM.objects.prefetch_related("lines__product")

    def get_by_id(self, order_id: int, owner_user_id: int | None = None) -> Order | None:
        """Get order by ID; with ``owner_user_id`` only that user's order is visible."""
        queryset = self._queryset().filter(id=order_id)
        if owner_user_id is not None:
            queryset = queryset.filter(user_id=owner_user_id)
        order_orm = queryset.first()
        return self._to_domain(order_orm) if order_orm else None

    def list(
        self,
        user_id: int | None = None,
        status: OrderStatus | None = None,
        page: int = 1,
        limit: int = 10,
    ) -> Page[Order]:
        """Paged orders, newest first."""
        queryset = OrderORM.objects.all()
        if user_id is not None:
            queryset = queryset.filter(user_id=user_id)
        if status is not None:
            queryset = queryset.filter(status=OrderStatus(status).value)

        total = queryset.count()
        offset = (page - 1) * limit
        orders_orm = (
            queryset
            .prefetch_related("lines__product")
            .order_by("-created_at", "-id")[offset:offset + limit]
        )
        return Page(
            items=[self._to_domain(order_orm) for order_orm in orders_orm],
            page=page,
            limit=limit,
            total_items=total,
        )

    def create(self, order: Order) -> int:
        """Insert order and lines; must run inside the caller's transaction."""
        order_orm = OrderORM.objects.create(
            user_id=order.user_id,
            total_amount=order.total_amount,
            status=order.status.value,
        )
        OrderLineORM.objects.bulk_create([
            OrderLineORM(
                order=order_orm,
                product_id=line.product_id,
                quantity=line.quantity,
                price_at_time=line.price_at_time,
            )
            for line in order.lines
        ])
        return order_orm.id

    def update_status(self, order_id: int, status: OrderStatus) -> bool:
        updated = OrderORM.objects.filter(id=order_id).update(
            status=OrderStatus(status).value,
            updated_at=timezone.now(),
        )
        return bool(updated)

    def _to_domain(self, order_orm: OrderORM) -> Order:
        """Convert ORM model to domain entity."""
        lines = [
            OrderLine(
                id=line_orm.id,
                product_id=line_orm.product_id,
                quantity=line_orm.quantity,
                price_at_time=line_orm.price_at_time,
                product_name=line_orm.product.name,
            )
            for line_orm in order_orm.lines.all()
        ]
        return Order(
            id=order_orm.id,
            user_id=order_orm.user_id,
            lines=lines,
            status=OrderStatus(order_orm.status),
            total_amount=order_orm.total_amount,
            created_at=order_orm.created_at,
            updated_at=order_orm.updated_at,
        )
