"""Order lifecycle events.

Aggregates record these in memory; the application layer moves them into
the outbox inside the same transaction as the state change that produced
them. Delivery to buyers, farmers and administrators happens after commit.
"""

from __future__ import annotations

from dataclasses import dataclass, field, fields
from datetime import datetime, timezone
from typing import Any, ClassVar
from uuid import uuid4


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class OrderEvent:
    """Base lifecycle event (immutable)."""

    event_type: ClassVar[str] = "order_event"
    notify_admins: ClassVar[bool] = False

    order_id: str
    buyer_id: str
    seller_ids: tuple[str, ...]
    event_id: str = field(default_factory=lambda: str(uuid4()), kw_only=True)
    occurred_at: datetime = field(default_factory=_utcnow, kw_only=True)

    def payload(self) -> dict[str, Any]:
        data: dict[str, Any] = {}
        for f in fields(self):
            if f.name in ("event_id", "occurred_at"):
                continue
            value = getattr(self, f.name)
            data[f.name] = list(value) if isinstance(value, tuple) else value
        return data

    @property
    def recipients(self) -> list[str]:
        """Buyer first, then each involved farmer once."""
        seen: list[str] = [self.buyer_id]
        for seller_id in self.seller_ids:
            if seller_id not in seen:
                seen.append(seller_id)
        return seen


@dataclass(frozen=True)
class OrderPlaced(OrderEvent):
    event_type: ClassVar[str] = "order_placed"
    notify_admins: ClassVar[bool] = True

    total_amount: str
    payment_method: str


@dataclass(frozen=True)
class OrderStatusChanged(OrderEvent):
    event_type: ClassVar[str] = "order_status_updated"

    previous_status: str
    status: str
    changed_by: str


@dataclass(frozen=True)
class OrderCancelled(OrderEvent):
    event_type: ClassVar[str] = "order_cancelled"

    cancelled_by: str
    restored_inventory: bool


@dataclass(frozen=True)
class PaymentConfirmed(OrderEvent):
    event_type: ClassVar[str] = "payment_confirmed"

    gateway_ref: str
    amount: str


@dataclass(frozen=True)
class PaymentFailed(OrderEvent):
    event_type: ClassVar[str] = "payment_failed"

    reason: str


@dataclass(frozen=True)
class PaymentRefundDue(OrderEvent):
    """The gateway took the money but the stock could not be reserved."""

    event_type: ClassVar[str] = "payment_refund_due"
    notify_admins: ClassVar[bool] = True

    gateway_ref: str
    amount: str
    reason: str
