from django.contrib import admin

from shop.infra.models import (
    CartLineORM,
    CategoryORM,
    IdempotencyKey,
    OrderLineORM,
    OrderORM,
    OutboxEvent,
    ProductORM,
)


@admin.register(CategoryORM)
class CategoryAdmin(admin.ModelAdmin):
    list_display = ("id", "name", "created_at")
    search_fields = ("name",)


@admin.register(ProductORM)
class ProductAdmin(admin.ModelAdmin):
    list_display = ("id", "name", "category", "price", "stock", "updated_at")
    list_filter = ("category",)
    search_fields = ("name",)
    # Stock moves only through restock and order placement
    readonly_fields = ("stock",)


@admin.register(CartLineORM)
class CartLineAdmin(admin.ModelAdmin):
    list_display = ("id", "user_id", "product", "quantity", "price_at_time", "created_at")
    search_fields = ("user_id",)
    readonly_fields = ("price_at_time",)


class OrderLineInline(admin.TabularInline):
    model = OrderLineORM
    extra = 0
    can_delete = False
    readonly_fields = ("product", "quantity", "price_at_time")

    def has_add_permission(self, request, obj=None):
        return False


@admin.register(OrderORM)
class OrderAdmin(admin.ModelAdmin):
    list_display = ("id", "user_id", "status", "total_amount", "created_at")
    list_filter = ("status", "created_at")
    search_fields = ("id", "user_id")
    readonly_fields = ("user_id", "total_amount")
    inlines = (OrderLineInline,)


@admin.register(IdempotencyKey)
class IdempotencyAdmin(admin.ModelAdmin):
    list_display = ("key", "user_id", "operation", "created_at")
    list_filter = ("operation", "created_at")
    search_fields = ("key", "user_id")


@admin.register(OutboxEvent)
class OutboxEventAdmin(admin.ModelAdmin):
    list_display = ("id", "aggregate_id", "aggregate_type", "event_type", "processed", "retry_count", "created_at")
    list_filter = ("processed", "aggregate_type", "event_type", "created_at")
    readonly_fields = ("id", "aggregate_id", "aggregate_type", "event_type", "event_data", "processed", "processed_at", "retry_count")
