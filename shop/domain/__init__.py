from shop.domain.cart import Cart, CartLine
from shop.domain.order import Order, OrderLine, OrderStatus
from shop.domain.product import Product, ProductPatch

__all__ = ["Cart", "CartLine", "Order", "OrderLine", "OrderStatus", "Product", "ProductPatch"]
