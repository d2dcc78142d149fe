"""Outbox message: a lifecycle event waiting to be delivered.

Written in the same transaction as the order change that produced it, so
an event exists if and only if its change was committed.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any

from marketplace.domain.model.events import OrderEvent


class OutboxStatus(Enum):
    PENDING = "pending"
    PUBLISHED = "published"
    FAILED = "failed"


@dataclass
class OutboxMessage:
    id: str
    event_type: str
    order_id: str
    recipients: list[str]
    notify_admins: bool
    payload: dict[str, Any]
    status: OutboxStatus = OutboxStatus.PENDING
    attempts: int = 0
    last_error: str | None = None
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    published_at: datetime | None = None

    @staticmethod
    def from_event(event: OrderEvent) -> OutboxMessage:
        return OutboxMessage(
            id=event.event_id,
            event_type=event.event_type,
            order_id=event.order_id,
            recipients=event.recipients,
            notify_admins=event.notify_admins,
            payload=event.payload(),
            created_at=event.occurred_at,
        )
