"""Application services: order listings (queries).

Buyers see their own orders in full. Farmers see every order that
contains one of their products, trimmed to their own lines and
subtotal. Both listings are newest first.
"""

from __future__ import annotations

from marketplace.application.dto import OrderDTO
from marketplace.domain.model.actor import Actor, Role
from marketplace.domain.repository.unit_of_work import UnitOfWorkFactory


class ListBuyerOrdersHandler:

    def __init__(self, uow_factory: UnitOfWorkFactory) -> None:
        self._uow_factory = uow_factory

    async def handle(self, buyer: Actor) -> list[OrderDTO]:
        buyer.require_role(Role.CUSTOMER)
        async with self._uow_factory() as uow:
            orders = await uow.orders.list_by_buyer(buyer.user_id)
        return [OrderDTO.from_order(order) for order in orders]


class ListSellerOrdersHandler:

    def __init__(self, uow_factory: UnitOfWorkFactory) -> None:
        self._uow_factory = uow_factory

    async def handle(self, seller: Actor) -> list[OrderDTO]:
        seller.require_role(Role.FARMER)
        async with self._uow_factory() as uow:
            orders = await uow.orders.list_by_seller(seller.user_id)
        return [OrderDTO.from_order(order, seller_id=seller.user_id) for order in orders]
