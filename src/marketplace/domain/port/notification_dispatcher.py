"""Port for delivering lifecycle notifications (in-app, email)."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any


class NotificationDispatcher(ABC):

    @abstractmethod
    async def notify(self, user_id: str, event_type: str, payload: dict[str, Any]) -> None:
        """Deliver one notification. May raise; callers treat it as best effort."""
