"""Notification dispatcher that writes each delivery to the log.

Stands in for the in-app / email channel in local runs; a real channel
implements the same port.
"""

from __future__ import annotations

import logging
from typing import Any

from marketplace.domain.port.notification_dispatcher import NotificationDispatcher

logger = logging.getLogger(__name__)


class LoggingNotificationDispatcher(NotificationDispatcher):

    async def notify(self, user_id: str, event_type: str, payload: dict[str, Any]) -> None:
        logger.info(
            "notification sent",
            extra={
                "user_id": user_id,
                "event_type": event_type,
                "order_id": payload.get("order_id"),
            },
        )
