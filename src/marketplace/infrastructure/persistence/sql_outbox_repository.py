"""SQL implementation of OutboxRepository."""

from __future__ import annotations

from datetime import datetime, timezone

import sqlalchemy as sa
from sqlalchemy.ext.asyncio import AsyncSession

from marketplace.domain.model.outbox import OutboxMessage, OutboxStatus
from marketplace.domain.repository.outbox_repository import OutboxRepository
from marketplace.infrastructure.persistence.sql_support import as_utc, guarded_update
from marketplace.infrastructure.persistence.tables import outbox_events


class SqlOutboxRepository(OutboxRepository):

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def add(self, message: OutboxMessage) -> None:
        await self._session.execute(
            sa.insert(outbox_events).values(
                id=message.id,
                event_type=message.event_type,
                order_id=message.order_id,
                recipients=list(message.recipients),
                notify_admins=message.notify_admins,
                payload=message.payload,
                status=message.status.value,
                attempts=message.attempts,
                last_error=message.last_error,
                created_at=message.created_at,
                published_at=message.published_at,
            )
        )

    async def list_pending(self, limit: int) -> list[OutboxMessage]:
        result = await self._session.execute(
            sa.select(outbox_events)
            .where(outbox_events.c.status == OutboxStatus.PENDING.value)
            .order_by(outbox_events.c.created_at, outbox_events.c.id)
            .limit(limit)
        )
        return [_to_message(row) for row in result.mappings()]

    async def mark_published(self, message_id: str) -> None:
        await guarded_update(
            self._session,
            outbox_events,
            message_id,
            None,
            {
                "status": OutboxStatus.PUBLISHED.value,
                "published_at": datetime.now(timezone.utc),
                "last_error": None,
            },
        )

    async def mark_failed(self, message_id: str, error: str, give_up: bool) -> None:
        status = OutboxStatus.FAILED if give_up else OutboxStatus.PENDING
        await guarded_update(
            self._session,
            outbox_events,
            message_id,
            None,
            {
                "status": status.value,
                "attempts": outbox_events.c.attempts + 1,
                "last_error": error,
            },
        )


def _to_message(row) -> OutboxMessage:
    return OutboxMessage(
        id=row["id"],
        event_type=row["event_type"],
        order_id=row["order_id"],
        recipients=list(row["recipients"]),
        notify_admins=row["notify_admins"],
        payload=dict(row["payload"]),
        status=OutboxStatus(row["status"]),
        attempts=row["attempts"],
        last_error=row["last_error"],
        created_at=as_utc(row["created_at"]),
        published_at=as_utc(row["published_at"]),
    )
