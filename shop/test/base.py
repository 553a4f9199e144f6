"""
Shared fixtures for shop tests.
"""
from decimal import Decimal

from django.test import TestCase

from shop.infra.models import CartLineORM, OrderLineORM, OrderORM, ProductORM
from shop.infra.repositories import CategoryRepository, ProductRepository


class ShopTestCase(TestCase):
    """TestCase with a category and product factory."""

    customer_id = 101
    other_customer_id = 202

    def setUp(self):
        self.product_repo = ProductRepository()
        self.category_id = CategoryRepository().create(name="Electronics")

    def make_product(self, name="Laptop", price="999.99", stock=10):
        return self.product_repo.create(
            name=name,
            price=Decimal(price),
            stock=stock,
            category_id=self.category_id,
        )

    def stock_of(self, product_id) -> int:
        return ProductORM.objects.values_list("stock", flat=True).get(id=product_id)

    def snapshot(self) -> dict:
        """State of cart, catalog stock and order ledger for atomicity checks."""
        return {
            "stock": dict(ProductORM.objects.values_list("id", "stock")),
            "cart": sorted(CartLineORM.objects.values_list("user_id", "product_id", "quantity", "price_at_time")),
            "orders": OrderORM.objects.count(),
            "order_lines": OrderLineORM.objects.count(),
        }
