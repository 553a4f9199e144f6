"""
Tests for catalog and cart repositories.
"""
from decimal import Decimal

from shop.domain.cart import CartLine
from shop.domain.errors import InsufficientStock, ProductNotFound
from shop.domain.product import ProductPatch
from shop.infra.repositories import CartRepository
from shop.test.base import ShopTestCase


class ProductRepositoryTest(ShopTestCase):
    """Stock is only ever changed by conditional updates."""

    def test_get_missing_product(self):
        self.assertIsNone(self.product_repo.get_by_id(999999))

    def test_get_by_id_joins_category(self):
        product = self.make_product()
        loaded = self.product_repo.get_by_id(product.id)
        self.assertEqual(loaded.category_id, self.category_id)
        self.assertEqual(loaded.category_name, "Electronics")
        self.assertEqual(loaded.price, Decimal("999.99"))

    def test_decrement_stock(self):
        product = self.make_product(stock=10)
        self.product_repo.decrement_stock(product.id, 2)
        self.assertEqual(self.stock_of(product.id), 8)

    def test_decrement_to_zero(self):
        product = self.make_product(stock=3)
        self.product_repo.decrement_stock(product.id, 3)
        self.assertEqual(self.stock_of(product.id), 0)

    def test_decrement_beyond_stock_fails_and_keeps_stock(self):
        product = self.make_product(stock=1)

        with self.assertRaises(InsufficientStock) as ctx:
            self.product_repo.decrement_stock(product.id, 2)

        self.assertEqual(ctx.exception.available_stock, 1)
        self.assertEqual(ctx.exception.requested_quantity, 2)
        self.assertEqual(ctx.exception.product_name, "Laptop")
        self.assertEqual(self.stock_of(product.id), 1)

    def test_decrement_missing_product(self):
        with self.assertRaises(ProductNotFound):
            self.product_repo.decrement_stock(999999, 1)

    def test_decrement_non_positive_amount(self):
        product = self.make_product()
        with self.assertRaises(ValueError):
            self.product_repo.decrement_stock(product.id, 0)

    def test_restock(self):
        product = self.make_product(stock=0)
        self.assertEqual(self.product_repo.restock(product.id, 5), 5)
        self.assertEqual(self.stock_of(product.id), 5)

    def test_restock_missing_product(self):
        with self.assertRaises(ProductNotFound):
            self.product_repo.restock(999999, 5)

    def test_create_rejects_negative_stock(self):
        with self.assertRaises(ValueError):
            self.make_product(stock=-1)

    def test_update_applies_only_present_fields(self):
        product = self.make_product(price="10.00")

        updated = self.product_repo.update(product.id, ProductPatch(price=Decimal("12.50")))

        self.assertEqual(updated.price, Decimal("12.50"))
        self.assertEqual(updated.name, "Laptop")
        self.assertEqual(updated.stock, 10)

    def test_null_price_never_reaches_the_database(self):
        product = self.make_product(price="10.00")

        with self.assertRaises(ValueError):
            self.product_repo.update(product.id, ProductPatch.from_dict({"price": None}))

        self.assertEqual(self.product_repo.get_by_id(product.id).price, Decimal("10.00"))

    def test_update_missing_product(self):
        with self.assertRaises(ProductNotFound):
            self.product_repo.update(999999, ProductPatch(name="Nope"))


class CartRepositoryTest(ShopTestCase):

    def setUp(self):
        super().setUp()
        self.cart_repo = CartRepository(product_repo=self.product_repo)
        self.laptop = self.make_product()
        self.mouse = self.make_product(name="Mouse", price="19.90")

    def add(self, user_id, product, quantity=1):
        return self.cart_repo.create_line(CartLine(
            user_id=user_id,
            product_id=product.id,
            quantity=quantity,
            price_at_time=product.price,
        ))

    def test_lines_are_newest_first_and_per_user(self):
        first = self.add(self.customer_id, self.laptop)
        second = self.add(self.customer_id, self.mouse)
        self.add(self.other_customer_id, self.laptop)

        lines = self.cart_repo.get_lines(self.customer_id)

        self.assertEqual([line.id for line in lines], [second.id, first.id])
        self.assertEqual(lines[0].product.name, "Mouse")

    def test_get_line_is_scoped_to_owner(self):
        line = self.add(self.customer_id, self.laptop)
        self.assertIsNone(self.cart_repo.get_line(self.other_customer_id, line.id))
        self.assertEqual(self.cart_repo.get_line(self.customer_id, line.id).id, line.id)

    def test_set_quantity_keeps_price(self):
        line = self.add(self.customer_id, self.laptop)
        updated = self.cart_repo.set_quantity(self.customer_id, line.id, 4)
        self.assertEqual(updated.quantity, 4)
        self.assertEqual(updated.price_at_time, Decimal("999.99"))

    def test_delete_line_of_other_user_does_nothing(self):
        line = self.add(self.customer_id, self.laptop)
        self.assertEqual(self.cart_repo.delete_line(self.other_customer_id, line.id), 0)
        self.assertEqual(len(self.cart_repo.get_lines(self.customer_id)), 1)

    def test_delete_lines_removes_only_given_ids(self):
        first = self.add(self.customer_id, self.laptop)
        second = self.add(self.customer_id, self.mouse)
        foreign = self.add(self.other_customer_id, self.mouse)

        deleted = self.cart_repo.delete_lines(self.customer_id, [first.id, foreign.id])

        self.assertEqual(deleted, 1)
        self.assertEqual([line.id for line in self.cart_repo.get_lines(self.customer_id)], [second.id])
        self.assertEqual(len(self.cart_repo.get_lines(self.other_customer_id)), 1)

    def test_clear_returns_count(self):
        self.add(self.customer_id, self.laptop)
        self.add(self.customer_id, self.mouse)
        self.add(self.other_customer_id, self.mouse)

        self.assertEqual(self.cart_repo.clear(self.customer_id), 2)
        self.assertEqual(self.cart_repo.get_lines(self.customer_id), [])
        self.assertEqual(len(self.cart_repo.get_lines(self.other_customer_id)), 1)
