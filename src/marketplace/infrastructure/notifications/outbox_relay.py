"""Outbox relay: delivers committed lifecycle events to their recipients.

Messages are read in creation order and fanned out through the
notification dispatcher. A message is marked published only when every
recipient got it; otherwise its attempt counter goes up and it is retried
on the next drain, until ``max_attempts`` parks it as failed. Delivery is
therefore at-least-once per recipient.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Sequence

from marketplace.domain.model.outbox import OutboxMessage
from marketplace.domain.port.notification_dispatcher import NotificationDispatcher
from marketplace.domain.repository.unit_of_work import UnitOfWorkFactory

logger = logging.getLogger(__name__)


class OutboxRelay:

    def __init__(
        self,
        uow_factory: UnitOfWorkFactory,
        dispatcher: NotificationDispatcher,
        admin_ids: Sequence[str] = (),
        max_attempts: int = 5,
        batch_size: int = 100,
    ) -> None:
        self._uow_factory = uow_factory
        self._dispatcher = dispatcher
        self._admin_ids = tuple(admin_ids)
        self._max_attempts = max_attempts
        self._batch_size = batch_size
        self._wakeup = asyncio.Event()

    def wake(self) -> None:
        """Ask a running relay loop to drain now instead of at its next tick."""
        self._wakeup.set()

    def recipients_for(self, message: OutboxMessage) -> list[str]:
        recipients = list(message.recipients)
        if message.notify_admins:
            recipients.extend(a for a in self._admin_ids if a not in recipients)
        return recipients

    async def drain(self) -> int:
        """Deliver every pending message once. Returns how many were published."""
        async with self._uow_factory() as uow:
            pending = await uow.outbox.list_pending(self._batch_size)

        published = 0
        for message in pending:
            if await self._deliver(message):
                published += 1
        return published

    async def run(self, stop: asyncio.Event, interval: float = 1.0) -> None:
        while not stop.is_set():
            await self.drain()
            self._wakeup.clear()
            waiters = [
                asyncio.ensure_future(self._wakeup.wait()),
                asyncio.ensure_future(stop.wait()),
            ]
            try:
                await asyncio.wait(waiters, timeout=interval, return_when=asyncio.FIRST_COMPLETED)
            finally:
                for waiter in waiters:
                    waiter.cancel()

    async def _deliver(self, message: OutboxMessage) -> bool:
        try:
            for user_id in self.recipients_for(message):
                await self._dispatcher.notify(user_id, message.event_type, message.payload)
        except Exception as exc:
            logger.exception(
                "notification delivery failed",
                extra={"event_type": message.event_type, "order_id": message.order_id},
            )
            give_up = message.attempts + 1 >= self._max_attempts
            async with self._uow_factory() as uow:
                await uow.outbox.mark_failed(message.id, str(exc), give_up=give_up)
                await uow.commit()
            return False

        async with self._uow_factory() as uow:
            await uow.outbox.mark_published(message.id)
            await uow.commit()
        return True
