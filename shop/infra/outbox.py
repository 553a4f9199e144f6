"""
Transactional Outbox pattern implementation.
"""
from __future__ import annotations

import logging
import time
from decimal import Decimal
from typing import Callable
from uuid import UUID

from django.db import transaction
from django.db.models import F
from django.utils import timezone

from shop.domain.events import DomainEvent
from shop.infra.models import OutboxEvent
from shop.infra.retry import retry_with_backoff


logger = logging.getLogger(__name__)


class OutboxRepository:
    """Repository for outbox events."""

    @transaction.atomic
    def add_event(self, event: DomainEvent, aggregate_type: str) -> UUID:
        """Add event to outbox (within the caller's transaction)."""
        if not event.occurred_at:
            event.occurred_at = timezone.now().isoformat()
        outbox_event = OutboxEvent.objects.create(
            aggregate_id=event.aggregate_id,
            aggregate_type=aggregate_type,
            event_type=event.event_type,
            event_data=self._serialize_event(event),
        )
        return outbox_event.id

    def get_unprocessed_events(self, limit: int = 100) -> list[OutboxEvent]:
        """Get unprocessed events, oldest first."""
        return list(
            OutboxEvent.objects
            .filter(processed=False)
            .order_by("created_at")[:limit]
        )

    def mark_processed(self, event_id: UUID) -> None:
        OutboxEvent.objects.filter(id=event_id).update(
            processed=True,
            processed_at=timezone.now(),
        )

    def increment_retry(self, event_id: UUID) -> None:
        OutboxEvent.objects.filter(id=event_id).update(
            retry_count=F("retry_count") + 1,
        )

    def _serialize_event(self, event: DomainEvent) -> dict:
        """Serialize event to a JSON-safe dict."""
        data = {
            "event_id": str(event.event_id),
            "aggregate_id": event.aggregate_id,
            "event_type": event.event_type,
            "version": event.version.value,
            "occurred_at": event.occurred_at,
        }
        for key, value in event.__dict__.items():
            if key in data:
                continue
            if isinstance(value, (UUID, Decimal)):
                data[key] = str(value)
            else:
                data[key] = value
        return data


def log_publisher(event: OutboxEvent) -> None:
    """Default publisher: emit the event as a structured log line."""
    logger.info(
        "outbox_event_published",
        extra={
            "operation": event.event_type,
            "event_id": str(event.id),
            "aggregate_id": event.aggregate_id,
            "event_data": event.event_data,
        },
    )


class OutboxRelay:
    """Hands unprocessed outbox events to a publisher."""

    def __init__(
        self,
        outbox_repo: OutboxRepository | None = None,
        publisher: Callable[[OutboxEvent], None] | None = None,
        max_retries: int = 3,
        initial_delay: float = 0.5,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.outbox_repo = outbox_repo or OutboxRepository()
        self._publish = retry_with_backoff(
            max_retries=max_retries,
            initial_delay=initial_delay,
            sleep=sleep,
        )(publisher or log_publisher)

    def process(self, limit: int = 100) -> int:
        """Publish up to ``limit`` events; return how many succeeded."""
        processed_count = 0

        for event in self.outbox_repo.get_unprocessed_events(limit=limit):
            try:
                self._publish(event)
            except Exception as e:
                self.outbox_repo.increment_retry(event.id)
                logger.error(
                    "outbox_publish_failed",
                    extra={
                        "event_id": str(event.id),
                        "operation": event.event_type,
                        "error": str(e),
                    },
                    exc_info=True,
                )
                continue

            self.outbox_repo.mark_processed(event.id)
            processed_count += 1

        return processed_count
