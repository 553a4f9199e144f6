"""
GraphQL schema definition using Ariadne.
"""
from datetime import datetime
from decimal import Decimal
from pathlib import Path

from ariadne import (
    EnumType,
    MutationType,
    ObjectType,
    QueryType,
    ScalarType,
    load_schema_from_path,
    make_executable_schema,
)

from shop.api.middleware import ValidationError, require_role
from shop.domain.errors import ProductNotFound
from shop.domain.money import to_money
from shop.domain.order import OrderStatus
from shop.services import CartService, CatalogService, OrderService

# Load schema from .graphql files
SCHEMAS_DIR = Path(__file__).parent / "schemas"
type_defs = "\n".join([
    load_schema_from_path(SCHEMAS_DIR / "common"),
    load_schema_from_path(SCHEMAS_DIR / "query"),
    load_schema_from_path(SCHEMAS_DIR / "mutation"),
])

query = QueryType()
mutation = MutationType()
product_type = ObjectType("Product")
cart_type = ObjectType("Cart")
order_page = ObjectType("OrderPage")
order_status = EnumType("OrderStatus", OrderStatus)


def _to_id(value, name: str = "id") -> int:
    """Parse a GraphQL ID argument into a database key."""
    try:
        parsed = int(value)
    except (TypeError, ValueError):
        raise ValidationError(f"Invalid {name}: {value!r}")
    if parsed < 1:
        raise ValidationError(f"Invalid {name}: {value!r}")
    return parsed


def _services(info) -> dict:
    return info.context["services"]


@query.field("product")
def resolve_product(_, info, id):
    """Resolve a single product; unknown ids resolve to null."""
    try:
        return _services(info)["catalog"].get_product(_to_id(id))
    except ProductNotFound:
        return None


@query.field("cart")
def resolve_cart(_, info):
    caller = require_role(info, "customer")
    return _services(info)["cart"].list_lines(caller.id)


@query.field("order")
def resolve_order(_, info, id):
    """Customers only see their own orders."""
    caller = require_role(info, "customer")
    return _services(info)["orders"].get_order(_to_id(id), owner_user_id=caller.id)


@query.field("orders")
def resolve_orders(_, info, page=1, limit=None, status=None):
    caller = require_role(info, "customer")
    return _services(info)["orders"].list_orders(
        user_id=caller.id,
        status=status,
        page=page,
        limit=limit,
    )


@query.field("allOrders")
def resolve_all_orders(_, info, page=1, limit=None, status=None, user_id=None):
    require_role(info, "admin")
    return _services(info)["orders"].list_orders(
        user_id=_to_id(user_id, "userId") if user_id is not None else None,
        status=status,
        page=page,
        limit=limit,
    )


@mutation.field("addToCart")
def resolve_add_to_cart(_, info, product_id, quantity):
    caller = require_role(info, "customer")
    return _services(info)["cart"].add_line(caller.id, _to_id(product_id, "productId"), quantity)


@mutation.field("updateCartLine")
def resolve_update_cart_line(_, info, id, quantity):
    caller = require_role(info, "customer")
    return _services(info)["cart"].update_line(caller.id, _to_id(id), quantity)


@mutation.field("removeCartLine")
def resolve_remove_cart_line(_, info, id):
    caller = require_role(info, "customer")
    return _services(info)["cart"].remove_line(caller.id, _to_id(id))


@mutation.field("clearCart")
def resolve_clear_cart(_, info):
    caller = require_role(info, "customer")
    return _services(info)["cart"].clear(caller.id)


@mutation.field("placeOrder")
def resolve_place_order(_, info):
    caller = require_role(info, "customer")
    return _services(info)["orders"].place_order(caller.id)


@mutation.field("updateOrderStatus")
def resolve_update_order_status(_, info, id, status):
    require_role(info, "admin")
    return _services(info)["orders"].update_status(_to_id(id), status)


@product_type.field("category")
def resolve_product_category(product, info):
    if product.category_id is None:
        return None
    return {"id": product.category_id, "name": product.category_name}


@cart_type.field("summary")
def resolve_cart_summary(cart, info):
    return {
        "total_items": cart.total_items,
        "total_quantity": cart.total_quantity,
        "total_amount": cart.total_amount,
    }


@order_page.field("orders")
def resolve_order_page_orders(page, info):
    return page.items


@order_page.field("pagination")
def resolve_order_page_pagination(page, info):
    return page.pagination()


# Define custom scalars
decimal_scalar = ScalarType("Decimal")
datetime_scalar = ScalarType("DateTime")


@decimal_scalar.serializer
def serialize_decimal(value):
    """Serialize Decimal to a 2-place string."""
    return str(to_money(value))


@decimal_scalar.value_parser
def parse_decimal_value(value):
    """Parse Decimal from string."""
    return Decimal(str(value))


@datetime_scalar.serializer
def serialize_datetime(value):
    """Serialize DateTime to ISO format string."""
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.isoformat()
    return str(value)


@datetime_scalar.value_parser
def parse_datetime_value(value):
    """Parse DateTime from string."""
    if value is None:
        return None
    if isinstance(value, datetime):
        return value
    return datetime.fromisoformat(str(value).replace('Z', '+00:00'))


def build_services() -> dict:
    """Services handed to resolvers through the GraphQL context."""
    return {
        "catalog": CatalogService(),
        "cart": CartService(),
        "orders": OrderService(),
    }


# Create executable schema
schema = make_executable_schema(
    type_defs,
    query,
    mutation,
    product_type,
    cart_type,
    order_page,
    order_status,
    datetime_scalar,
    decimal_scalar,
    convert_names_case=True,
)
