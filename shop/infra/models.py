from __future__ import annotations

from uuid import uuid4

from django.db import models


ORDER_STATUS_CHOICES = (
    ("pending", "Pending"),
    ("processing", "Processing"),
    ("shipped", "Shipped"),
    ("delivered", "Delivered"),
    ("cancelled", "Cancelled"),
)

OPERATION_TYPE = (
    ("ADD_TO_CART", "Add to cart"),
    ("UPDATE_CART_LINE", "Update cart line"),
    ("REMOVE_CART_LINE", "Remove cart line"),
    ("CLEAR_CART", "Clear cart"),
    ("PLACE_ORDER", "Place order"),
    ("UPDATE_ORDER_STATUS", "Update order status"),
)


class TimeStampedModel(models.Model):
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        abstract = True


class CategoryORM(TimeStampedModel):
    name = models.CharField(max_length=100, unique=True)
    description = models.TextField(default="", blank=True)

    class Meta:
        verbose_name = "category"
        verbose_name_plural = "categories"

    def __str__(self):
        return self.name


class ProductORM(TimeStampedModel):
    name = models.CharField(max_length=200)
    description = models.TextField(default="", blank=True)
    price = models.DecimalField(max_digits=12, decimal_places=2)
    # Written only through ProductRepository.decrement_stock / restock
    stock = models.PositiveIntegerField(default=0)
    category = models.ForeignKey(
        CategoryORM,
        on_delete=models.PROTECT,
        related_name="products",
    )

    class Meta:
        verbose_name = "product"
        constraints = [
            models.CheckConstraint(condition=models.Q(stock__gte=0), name="product_stock_non_negative"),
            models.CheckConstraint(condition=models.Q(price__gte=0), name="product_price_non_negative"),
        ]
        indexes = [
            models.Index(fields=("category",)),
        ]

    def __str__(self):
        return self.name


class CartLineORM(TimeStampedModel):
    user_id = models.BigIntegerField()
    product = models.ForeignKey(
        ProductORM,
        on_delete=models.CASCADE,
        related_name="cart_lines",
    )
    quantity = models.PositiveIntegerField()
    price_at_time = models.DecimalField(max_digits=12, decimal_places=2)

    class Meta:
        verbose_name = "cart line"
        constraints = [
            models.UniqueConstraint(fields=("user_id", "product"), name="cart_line_unique_user_product"),
            models.CheckConstraint(condition=models.Q(quantity__gte=1), name="cart_line_quantity_positive"),
        ]
        indexes = [
            models.Index(fields=("user_id", "-created_at")),
        ]


class OrderORM(TimeStampedModel):
    user_id = models.BigIntegerField()
    total_amount = models.DecimalField(max_digits=12, decimal_places=2)
    status = models.CharField(max_length=20, choices=ORDER_STATUS_CHOICES, default="pending")

    class Meta:
        verbose_name = "order"
        constraints = [
            models.CheckConstraint(condition=models.Q(total_amount__gte=0), name="order_total_non_negative"),
        ]
        indexes = [
            models.Index(fields=("user_id", "status")),
            models.Index(fields=("user_id", "-created_at")),
            models.Index(fields=("status", "-created_at")),
        ]


class OrderLineORM(TimeStampedModel):
    order = models.ForeignKey(
        OrderORM,
        on_delete=models.CASCADE,
        related_name="lines",
    )
    product = models.ForeignKey(
        ProductORM,
        on_delete=models.PROTECT,
        related_name="order_lines",
    )
    quantity = models.PositiveIntegerField()
    price_at_time = models.DecimalField(max_digits=12, decimal_places=2)

    class Meta:
        verbose_name = "order line"
        ordering = ("id",)
        constraints = [
            models.CheckConstraint(condition=models.Q(quantity__gte=1), name="order_line_quantity_positive"),
        ]
        indexes = [
            models.Index(fields=("order",)),
        ]


class OutboxEvent(TimeStampedModel):
    """Outbox event for transactional outbox pattern."""
    id = models.UUIDField(primary_key=True, default=uuid4, editable=False)
    aggregate_id = models.BigIntegerField()
    aggregate_type = models.CharField(max_length=50)
    event_type = models.CharField(max_length=100)
    event_data = models.JSONField()
    processed = models.BooleanField(default=False)
    processed_at = models.DateTimeField(null=True, blank=True)
    retry_count = models.IntegerField(default=0)

    class Meta:
        indexes = [
            models.Index(fields=("processed", "created_at")),
            models.Index(fields=("aggregate_id", "aggregate_type")),
        ]


class IdempotencyKey(TimeStampedModel):
    key = models.CharField(max_length=255)
    user_id = models.BigIntegerField()
    operation = models.CharField(max_length=32, choices=OPERATION_TYPE)
    request_hash = models.CharField(max_length=255)
    # Null while the first request holding the key is still running
    response_payload = models.JSONField(null=True, blank=True)

    class Meta:
        constraints = [
            models.UniqueConstraint(fields=("key", "user_id", "operation"), name="idempotency_key_unique"),
        ]
        indexes = [
            models.Index(fields=("request_hash",)),
        ]
