"""
Unit tests for domain models.
"""
from decimal import Decimal

from django.test import SimpleTestCase

from shop.domain.cart import Cart, CartLine
from shop.domain.errors import EmptyCart, InsufficientStock, InvalidPagination, StorageError
from shop.domain.money import sum_money, to_money
from shop.domain.order import Order, OrderLine, OrderStatus
from shop.domain.pagination import Page, validate_page
from shop.domain.product import UNSET, Product, ProductPatch


def make_line(product_id=1, quantity=1, price="10.00", name="Widget"):
    product = Product(id=product_id, name=name, price=Decimal(price), stock=100)
    return CartLine(
        user_id=7,
        product_id=product_id,
        quantity=quantity,
        price_at_time=Decimal(price),
        product=product,
    )


class CartLineTest(SimpleTestCase):
    """Tests for CartLine value object."""

    def test_subtotal_uses_frozen_price(self):
        line = make_line(quantity=2, price="999.99")
        self.assertEqual(line.subtotal, Decimal("1999.98"))

    def test_non_positive_quantity_fails(self):
        with self.assertRaises(ValueError):
            make_line(quantity=0)

    def test_negative_price_fails(self):
        with self.assertRaises(ValueError):
            make_line(price="-1.00")

    def test_merged_quantity_adds(self):
        line = make_line(quantity=2)
        self.assertEqual(line.merged_quantity(3), 5)

    def test_merged_quantity_rejects_non_positive(self):
        line = make_line(quantity=2)
        with self.assertRaises(ValueError):
            line.merged_quantity(0)


class CartTest(SimpleTestCase):
    """Tests for Cart aggregate."""

    def test_empty_cart(self):
        cart = Cart(user_id=7)
        self.assertTrue(cart.is_empty)
        self.assertEqual(cart.total_amount, Decimal("0.00"))
        self.assertEqual(cart.total_quantity, 0)

    def test_summary(self):
        cart = Cart(user_id=7, lines=[
            make_line(product_id=1, quantity=3, price="10.10"),
            make_line(product_id=2, quantity=1, price="0.01"),
        ])
        self.assertEqual(cart.total_items, 2)
        self.assertEqual(cart.total_quantity, 4)
        self.assertEqual(cart.total_amount, Decimal("30.31"))

    def test_find_line(self):
        cart = Cart(user_id=7, lines=[make_line(product_id=1), make_line(product_id=2)])
        self.assertEqual(cart.find_line(2).product_id, 2)
        self.assertIsNone(cart.find_line(3))


class OrderTest(SimpleTestCase):
    """Tests for Order aggregate."""

    def test_from_cart_copies_frozen_prices(self):
        cart = Cart(user_id=7, lines=[make_line(product_id=5, quantity=2, price="999.99", name="Laptop")])
        order = Order.from_cart(cart)

        self.assertEqual(order.status, OrderStatus.PENDING)
        self.assertEqual(order.user_id, 7)
        self.assertEqual(order.total_amount, Decimal("1999.98"))
        [line] = order.lines
        self.assertEqual(line.product_id, 5)
        self.assertEqual(line.quantity, 2)
        self.assertEqual(line.price_at_time, Decimal("999.99"))
        self.assertEqual(line.product_name, "Laptop")

    def test_from_empty_cart_fails(self):
        with self.assertRaises(EmptyCart):
            Order.from_cart(Cart(user_id=7))

    def test_order_without_lines_fails(self):
        with self.assertRaises(ValueError):
            Order(user_id=7, lines=[])

    def test_total_sums_then_rounds(self):
        order = Order(user_id=7, lines=[
            OrderLine(product_id=1, quantity=3, price_at_time=Decimal("10.10")),
            OrderLine(product_id=2, quantity=1, price_at_time=Decimal("0.01")),
        ])
        self.assertEqual(order.total_amount, Decimal("30.31"))

    def test_stored_total_wins(self):
        order = Order(
            user_id=7,
            lines=[OrderLine(product_id=1, quantity=1, price_at_time=Decimal("5.00"))],
            total_amount=Decimal("5.00"),
        )
        self.assertEqual(order.total_amount, Decimal("5.00"))

    def test_any_status_reachable(self):
        order = Order(user_id=7, lines=[OrderLine(product_id=1, quantity=1, price_at_time=Decimal("1.00"))])
        order.change_status(OrderStatus.DELIVERED)
        previous = order.change_status(OrderStatus.PENDING)
        self.assertEqual(previous, OrderStatus.DELIVERED)
        self.assertEqual(order.status, OrderStatus.PENDING)

    def test_change_status_accepts_raw_value(self):
        order = Order(user_id=7, lines=[OrderLine(product_id=1, quantity=1, price_at_time=Decimal("1.00"))])
        order.change_status("shipped")
        self.assertEqual(order.status, OrderStatus.SHIPPED)

    def test_unknown_status_fails(self):
        order = Order(user_id=7, lines=[OrderLine(product_id=1, quantity=1, price_at_time=Decimal("1.00"))])
        with self.assertRaises(ValueError):
            order.change_status("lost")

    def test_order_line_validation(self):
        with self.assertRaises(ValueError):
            OrderLine(product_id=1, quantity=0, price_at_time=Decimal("1.00"))
        with self.assertRaises(ValueError):
            OrderLine(product_id=1, quantity=1, price_at_time=Decimal("-1.00"))


class ProductPatchTest(SimpleTestCase):
    """Tests for explicit product patches."""

    def test_absent_fields_are_kept(self):
        target = Product(id=1, name="Old", price=Decimal("5.00"), stock=3, description="desc")
        changed = ProductPatch(price=Decimal("6.00")).apply(target)

        self.assertEqual(changed, ["price"])
        self.assertEqual(target.price, Decimal("6.00"))
        self.assertEqual(target.name, "Old")
        self.assertEqual(target.description, "desc")

    def test_explicit_empty_description_is_applied(self):
        patch = ProductPatch(description="")
        self.assertEqual(patch.changes(), {"description": ""})

    def test_from_dict(self):
        patch = ProductPatch.from_dict({"name": "New", "category_id": 3})
        self.assertEqual(patch.changes(), {"name": "New", "category_id": 3})
        self.assertIs(patch.price, UNSET)

    def test_stock_is_not_patchable(self):
        with self.assertRaises(ValueError):
            ProductPatch.from_dict({"stock": 100})

    def test_negative_price_fails(self):
        with self.assertRaises(ValueError):
            ProductPatch(price=Decimal("-0.01"))

    def test_null_fields_are_rejected(self):
        for field in ProductPatch.FIELDS:
            with self.subTest(field=field):
                with self.assertRaises(ValueError):
                    ProductPatch(**{field: None})

    def test_empty_patch(self):
        self.assertTrue(ProductPatch().is_empty)


class MoneyTest(SimpleTestCase):

    def test_sum_then_round(self):
        # Rounding each 0.005 first would give 0.03
        self.assertEqual(sum_money([Decimal("0.005")] * 3), Decimal("0.02"))

    def test_to_money_half_up(self):
        self.assertEqual(to_money("10.005"), Decimal("10.01"))
        self.assertEqual(to_money(3), Decimal("3.00"))


class PageTest(SimpleTestCase):

    def test_pagination_numbers(self):
        page = Page(items=[1, 2], page=2, limit=2, total_items=5)
        self.assertEqual(page.pagination(), {
            "current_page": 2,
            "total_pages": 3,
            "total_items": 5,
            "items_per_page": 2,
            "has_next_page": True,
            "has_prev_page": True,
        })

    def test_empty_page(self):
        page = Page(items=[], page=1, limit=10, total_items=0)
        self.assertEqual(page.total_pages, 0)
        self.assertFalse(page.has_next_page)
        self.assertFalse(page.has_prev_page)

    def test_validate_page_bounds(self):
        validate_page(1, 100, 100)
        for page, limit in ((0, 10), (1, 0), (1, 101)):
            with self.assertRaises(InvalidPagination):
                validate_page(page, limit, 100)


class ErrorTest(SimpleTestCase):

    def test_insufficient_stock_details(self):
        error = InsufficientStock(product_id=5, available_stock=1, requested_quantity=2, product_name="Laptop")
        data = error.to_dict()
        self.assertEqual(data["code"], "INSUFFICIENT_STOCK")
        self.assertEqual(data["category"], "precondition")
        self.assertFalse(data["retryable"])
        self.assertEqual(data["availableStock"], 1)
        self.assertEqual(data["requestedQuantity"], 2)
        self.assertEqual(data["productName"], "Laptop")

    def test_storage_error_is_transient(self):
        data = StorageError("db down").to_dict()
        self.assertEqual(data["code"], "INTERNAL_ERROR")
        self.assertEqual(data["category"], "transient")
        self.assertTrue(data["retryable"])
