"""Composition root: builds the database, gateway and relay from settings.

This is the only place in the codebase that knows about *all* layers.
Every other module depends only on abstractions.
"""

from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from marketplace.domain.port.payment_gateway import PaymentGateway
from marketplace.infrastructure.config import Settings
from marketplace.infrastructure.notifications.logging_dispatcher import (
    LoggingNotificationDispatcher,
)
from marketplace.infrastructure.notifications.outbox_relay import OutboxRelay
from marketplace.infrastructure.payments.http_gateway import HttpPaymentGateway
from marketplace.infrastructure.persistence.database import Database


def database(settings: Settings) -> Database:
    return Database(settings.database_url)


@asynccontextmanager
async def open_database(settings: Settings) -> AsyncIterator[Database]:
    db = database(settings)
    await db.connect()
    try:
        yield db
    finally:
        await db.close()


def payment_gateway(settings: Settings) -> PaymentGateway:
    if not settings.payment_gateway_url:
        raise RuntimeError("MARKETPLACE_PAYMENT_GATEWAY_URL is not configured")
    return HttpPaymentGateway(settings.payment_gateway_url, timeout=settings.payment_timeout)


def outbox_relay(db: Database, settings: Settings) -> OutboxRelay:
    return OutboxRelay(
        uow_factory=db.unit_of_work,
        dispatcher=LoggingNotificationDispatcher(),
        admin_ids=settings.admin_ids,
        max_attempts=settings.outbox_max_attempts,
        batch_size=settings.outbox_batch_size,
    )
