"""Application service: Cancel Order use case.

Only pending orders can be cancelled. When the order holds reserved
stock, every line's quantity is given back in the same transaction as
the status change, undoing what placement reserved. The status write is
guarded on "still pending", so two racing cancellations restore stock
only once.
"""

from __future__ import annotations

import logging
from typing import Callable

from marketplace.application.dto import OrderStatusDTO
from marketplace.domain.exceptions import (
    ConcurrentModificationError,
    NotFoundError,
    PermissionDeniedError,
)
from marketplace.domain.model.actor import Actor, Role
from marketplace.domain.model.order import Order, OrderStatus
from marketplace.domain.repository.unit_of_work import UnitOfWork, UnitOfWorkFactory
from marketplace.domain.service.inventory_reservation_service import (
    InventoryReservationService,
)

logger = logging.getLogger(__name__)


class CancelOrderHandler:

    def __init__(
        self,
        uow_factory: UnitOfWorkFactory,
        after_commit: Callable[[], None] | None = None,
    ) -> None:
        self._uow_factory = uow_factory
        self._after_commit = after_commit

    async def handle(self, order_id: str, requester: Actor) -> OrderStatusDTO:
        """Buyer-initiated cancellation."""
        requester.require_role(Role.CUSTOMER)

        async with self._uow_factory() as uow:
            order = await uow.orders.get_by_id(order_id)
            if order is None:
                raise NotFoundError(f"Order #{order_id} not found", entity_id=order_id)
            if order.buyer_id != requester.user_id:
                raise PermissionDeniedError(
                    f"Order #{order_id} does not belong to user {requester.user_id}"
                )
            await cancel_within(uow, order, requester)
            await uow.commit()

        logger.info(
            "order cancelled",
            extra={"order_id": order.id, "buyer_id": order.buyer_id},
        )
        if self._after_commit is not None:
            self._after_commit()
        return OrderStatusDTO.from_order(order)


async def cancel_within(uow: UnitOfWork, order: Order, by: Actor) -> None:
    """Cancel *order* and compensate its reservation inside *uow*.

    Shared with the status-update path so every cancellation restores
    stock the same way.
    """
    restore = order.inventory_reserved
    order.cancel(by)  # raises InvalidStateError unless pending

    if not await uow.orders.update(order, expected_status=OrderStatus.PENDING):
        raise ConcurrentModificationError(
            f"Order #{order.id} changed while it was being cancelled; please retry",
            entity_id=order.id,
        )
    if restore:
        await InventoryReservationService(uow.products).release(order.items)
    await uow.publish_events(order)
