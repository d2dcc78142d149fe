"""Application service: Show Order use case (query)."""

from __future__ import annotations

from marketplace.application.dto import OrderDTO
from marketplace.domain.exceptions import NotFoundError, PermissionDeniedError
from marketplace.domain.model.actor import Actor, Role
from marketplace.domain.repository.unit_of_work import UnitOfWorkFactory


class ShowOrderHandler:

    def __init__(self, uow_factory: UnitOfWorkFactory) -> None:
        self._uow_factory = uow_factory

    async def handle(self, order_id: str, viewer: Actor) -> OrderDTO:
        async with self._uow_factory() as uow:
            order = await uow.orders.get_by_id(order_id)
        if order is None:
            raise NotFoundError(f"Order #{order_id} not found", entity_id=order_id)

        if viewer.is_admin or order.buyer_id == viewer.user_id:
            return OrderDTO.from_order(order)
        if viewer.role is Role.FARMER and order.involves_seller(viewer.user_id):
            return OrderDTO.from_order(order, seller_id=viewer.user_id)
        raise PermissionDeniedError("Access denied")
