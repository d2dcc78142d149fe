"""SQL unit of work: one AsyncSession transaction over all three stores."""

from __future__ import annotations

import logging

from sqlalchemy.exc import OperationalError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from marketplace.domain.exceptions import ConcurrentModificationError
from marketplace.domain.repository.unit_of_work import UnitOfWork
from marketplace.infrastructure.persistence.sql_order_repository import SqlOrderRepository
from marketplace.infrastructure.persistence.sql_outbox_repository import SqlOutboxRepository
from marketplace.infrastructure.persistence.sql_product_repository import SqlProductRepository

logger = logging.getLogger(__name__)


def is_lock_error(exc: BaseException) -> bool:
    return isinstance(exc, OperationalError) and "locked" in str(exc.orig).lower()


class SqlUnitOfWork(UnitOfWork):

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory
        self._session: AsyncSession | None = None
        self._committed = False

    async def __aenter__(self) -> SqlUnitOfWork:
        self._session = self._session_factory()
        self._committed = False
        self.products = SqlProductRepository(self._session)
        self.orders = SqlOrderRepository(self._session)
        self.outbox = SqlOutboxRepository(self._session)
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        try:
            await self.rollback()
        finally:
            await self._session.close()
        if exc is not None and is_lock_error(exc):
            logger.warning("transaction lost a lock race", extra={"error": str(exc.orig)})
            raise ConcurrentModificationError(
                "The store was busy with a concurrent update; please retry"
            ) from exc

    async def commit(self) -> None:
        try:
            await self._session.commit()
        except OperationalError as exc:
            if is_lock_error(exc):
                raise ConcurrentModificationError(
                    "The store was busy with a concurrent update; please retry"
                ) from exc
            raise
        self._committed = True

    async def rollback(self) -> None:
        if not self._committed:
            await self._session.rollback()
