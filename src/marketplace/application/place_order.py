"""Application service: Place Order use case.

Orchestrates the flow between the catalog, the reservation engine and the
Order aggregate inside one unit of work:

1. Shape-check the cart and address (no store access).
2. Load a snapshot of every referenced product in one read.
3. Validate availability and freeze prices (the price snapshot).
4. Conditionally decrement stock per line, unless the payment method
   defers the reservation to gateway confirmation.
5. Insert the order and its "order placed" event, then commit.

Any failure before the commit rolls the whole unit back: either the order
exists with its stock reserved, or nothing changed.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import Callable

from marketplace.application.dto import OrderDTO
from marketplace.domain.exceptions import ValidationError
from marketplace.domain.model.actor import Actor, Role
from marketplace.domain.model.order import Order, PaymentMethod
from marketplace.domain.model.value_objects import CartLine, DeliveryAddress
from marketplace.domain.repository.unit_of_work import UnitOfWorkFactory
from marketplace.domain.service.inventory_reservation_service import (
    InventoryReservationService,
    validate_cart,
)

logger = logging.getLogger(__name__)


class PlaceOrderHandler:

    def __init__(
        self,
        uow_factory: UnitOfWorkFactory,
        after_commit: Callable[[], None] | None = None,
    ) -> None:
        self._uow_factory = uow_factory
        self._after_commit = after_commit

    async def handle(
        self,
        buyer: Actor,
        cart: Sequence[CartLine],
        delivery_address: DeliveryAddress | None,
        payment_method: PaymentMethod = PaymentMethod.CASH_ON_DELIVERY,
    ) -> OrderDTO:
        buyer.require_role(Role.CUSTOMER)
        validate_cart(cart)
        if delivery_address is None:
            raise ValidationError("Delivery address is required")

        async with self._uow_factory() as uow:
            svc = InventoryReservationService(uow.products)
            snapshot = await svc.load_snapshot([line.product_id for line in cart])
            items = svc.price_cart(cart, snapshot)

            order = Order.place(
                buyer_id=buyer.user_id,
                items=items,
                delivery_address=delivery_address,
                payment_method=payment_method,
            )
            if order.inventory_reserved:
                await svc.reserve(order.items)

            await uow.orders.add(order)
            await uow.publish_events(order)
            await uow.commit()

        logger.info(
            "order placed",
            extra={
                "order_id": order.id,
                "buyer_id": buyer.user_id,
                "total_amount": str(order.total_amount.amount),
                "payment_method": payment_method.value,
                "inventory_reserved": order.inventory_reserved,
            },
        )
        if self._after_commit is not None:
            self._after_commit()
        return OrderDTO.from_order(order)
