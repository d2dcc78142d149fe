"""Abstract unit of work: one atomic transaction over every store.

Usage::

    async with uow_factory() as uow:
        ...
        await uow.commit()

Leaving the block without ``commit()`` (or by raising) rolls everything
back, so no partial write of an aborted operation is ever visible.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Callable

from marketplace.domain.model.order import Order
from marketplace.domain.model.outbox import OutboxMessage
from marketplace.domain.repository.order_repository import OrderRepository
from marketplace.domain.repository.outbox_repository import OutboxRepository
from marketplace.domain.repository.product_repository import ProductRepository


class UnitOfWork(ABC):

    products: ProductRepository
    orders: OrderRepository
    outbox: OutboxRepository

    async def __aenter__(self) -> UnitOfWork:
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.rollback()

    async def publish_events(self, order: Order) -> None:
        """Move the order's recorded events into the outbox of this unit."""
        for event in order.pull_events():
            await self.outbox.add(OutboxMessage.from_event(event))

    @abstractmethod
    async def commit(self) -> None:
        """Make every write of this unit durable and visible."""

    @abstractmethod
    async def rollback(self) -> None:
        """Discard uncommitted writes. A no-op after ``commit()``."""


UnitOfWorkFactory = Callable[[], UnitOfWork]
