"""Application service: Update Order Status use case.

Administrators may move any order along its lifecycle; farmers may move
orders that contain at least one of their products. The write is
guarded on the status the decision was made against.

A request to set ``cancelled`` is routed through the cancellation path so
stock compensation can never be skipped.
"""

from __future__ import annotations

import logging
from typing import Callable

from marketplace.application.cancel_order import cancel_within
from marketplace.application.dto import OrderStatusDTO
from marketplace.domain.exceptions import (
    ConcurrentModificationError,
    NotFoundError,
    PermissionDeniedError,
)
from marketplace.domain.model.actor import Actor, Role
from marketplace.domain.model.order import OrderStatus
from marketplace.domain.repository.unit_of_work import UnitOfWorkFactory

logger = logging.getLogger(__name__)


class UpdateOrderStatusHandler:

    def __init__(
        self,
        uow_factory: UnitOfWorkFactory,
        after_commit: Callable[[], None] | None = None,
    ) -> None:
        self._uow_factory = uow_factory
        self._after_commit = after_commit

    async def handle(
        self, order_id: str, new_status: OrderStatus | str, actor: Actor
    ) -> OrderStatusDTO:
        target = (
            new_status
            if isinstance(new_status, OrderStatus)
            else OrderStatus.parse(new_status)
        )
        actor.require_role(Role.ADMIN, Role.FARMER)

        async with self._uow_factory() as uow:
            order = await uow.orders.get_by_id(order_id)
            if order is None:
                raise NotFoundError(f"Order #{order_id} not found", entity_id=order_id)
            if actor.role is Role.FARMER and not order.involves_seller(actor.user_id):
                raise PermissionDeniedError(
                    "You don't have permission to update this order"
                )

            previous = order.status
            if target is OrderStatus.CANCELLED:
                await cancel_within(uow, order, actor)
            else:
                order.change_status(target, actor)
                if not await uow.orders.update(order, expected_status=previous):
                    raise ConcurrentModificationError(
                        f"Order #{order_id} changed while its status was being updated; "
                        f"please retry",
                        entity_id=order_id,
                    )
                await uow.publish_events(order)
            await uow.commit()

        logger.info(
            "order status updated",
            extra={
                "order_id": order.id,
                "previous_status": previous.value,
                "status": order.status.value,
                "actor_role": actor.role.value,
            },
        )
        if self._after_commit is not None:
            self._after_commit()
        return OrderStatusDTO.from_order(order)
