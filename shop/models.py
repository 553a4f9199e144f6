"""
Expose ORM models for Django's auto-discovery while keeping real definitions
under the infrastructure module.
"""

from shop.infra.models import (  # noqa: F401
    CartLineORM,
    CategoryORM,
    IdempotencyKey,
    OrderLineORM,
    OrderORM,
    OutboxEvent,
    ProductORM,
)
