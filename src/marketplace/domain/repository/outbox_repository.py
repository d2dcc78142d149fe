"""Abstract repository for outbox messages."""

from __future__ import annotations

from abc import ABC, abstractmethod

from marketplace.domain.model.outbox import OutboxMessage


class OutboxRepository(ABC):

    @abstractmethod
    async def add(self, message: OutboxMessage) -> None:
        """Enqueue a message as part of the current transaction."""

    @abstractmethod
    async def list_pending(self, limit: int) -> list[OutboxMessage]:
        """Return up to *limit* undelivered messages, oldest first."""

    @abstractmethod
    async def mark_published(self, message_id: str) -> None:
        """Record a successful delivery."""

    @abstractmethod
    async def mark_failed(self, message_id: str, error: str, give_up: bool) -> None:
        """Record a failed delivery attempt; park the message when *give_up*."""
