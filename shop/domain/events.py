"""
Domain events written to the transactional outbox.
"""
from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from uuid import UUID


class EventVersion(str, Enum):
    """Event version for upcasting."""
    V1 = "1.0"


@dataclass
class DomainEvent:
    """Base domain event."""
    event_id: UUID
    aggregate_id: int
    event_type: str
    # version and occurred_at are set in subclasses to avoid dataclass field ordering issues


@dataclass
class OrderPlaced(DomainEvent):
    """Order placed from a cart."""
    user_id: int
    total_amount: Decimal
    lines_count: int
    version: EventVersion = EventVersion.V1
    occurred_at: str = ""


@dataclass
class OrderStatusChanged(DomainEvent):
    """Order status overwritten by an administrator."""
    previous_status: str
    new_status: str
    version: EventVersion = EventVersion.V1
    occurred_at: str = ""
