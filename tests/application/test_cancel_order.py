"""Integration tests for the CancelOrder use case."""

import asyncio

import pytest

from marketplace.application.cancel_order import CancelOrderHandler
from marketplace.application.place_order import PlaceOrderHandler
from marketplace.application.update_order_status import UpdateOrderStatusHandler
from marketplace.domain.exceptions import (
    InvalidStateError,
    NotFoundError,
    PermissionDeniedError,
)
from marketplace.domain.model.actor import Actor, Role
from marketplace.domain.model.order import OrderStatus, PaymentMethod
from marketplace.domain.model.product import ProductStatus
from marketplace.domain.model.value_objects import CartLine, DeliveryAddress
from tests.fakes import FakeStore, make_product

BUYER = Actor("buyer-1", Role.CUSTOMER)
FARMER = Actor("farmer-1", Role.FARMER)
ADDRESS = DeliveryAddress("Bagmati", "Kathmandu", "Thamel Marg 4")


def _setup(method=PaymentMethod.CASH_ON_DELIVERY) -> tuple[CancelOrderHandler, FakeStore, str]:
    """Place a two-line order and return the cancel handler, store and order id."""
    store = FakeStore([
        make_product("p-1", "Tomatoes", "10.00", 8, seller_id="farmer-1"),
        make_product("p-2", "Honey", "50.00", 1, seller_id="farmer-2"),
    ])
    placed = asyncio.run(
        PlaceOrderHandler(store.uow).handle(
            BUYER, [CartLine("p-1", 2), CartLine("p-2", 1)], ADDRESS, method
        )
    )
    return CancelOrderHandler(store.uow), store, placed.id


class TestCancelOrder:

    def test_restores_every_line(self):
        handler, store, order_id = _setup()
        assert store.product("p-2").status is ProductStatus.SOLD_OUT

        result = asyncio.run(handler.handle(order_id, BUYER))

        assert result.status == "cancelled"
        assert store.order(order_id).status is OrderStatus.CANCELLED
        assert store.product("p-1").quantity == 8
        assert store.product("p-2").quantity == 1
        assert store.product("p-2").status is ProductStatus.AVAILABLE

    def test_records_cancel_event(self):
        handler, store, order_id = _setup()
        asyncio.run(handler.handle(order_id, BUYER))

        (message,) = store.messages("order_cancelled")
        assert message.payload["cancelled_by"] == "customer"
        assert message.payload["restored_inventory"] is True
        assert message.recipients == ["buyer-1", "farmer-1", "farmer-2"]

    def test_second_cancel_is_rejected_without_double_restore(self):
        handler, store, order_id = _setup()
        asyncio.run(handler.handle(order_id, BUYER))

        with pytest.raises(InvalidStateError, match="only pending orders"):
            asyncio.run(handler.handle(order_id, BUYER))
        assert store.product("p-1").quantity == 8

    def test_unpaid_gateway_order_restores_nothing(self):
        handler, store, order_id = _setup(PaymentMethod.ESEWA)
        asyncio.run(handler.handle(order_id, BUYER))

        assert store.product("p-1").quantity == 8
        assert store.product("p-2").quantity == 1
        (message,) = store.messages("order_cancelled")
        assert message.payload["restored_inventory"] is False

    def test_confirmed_order_cannot_be_cancelled(self):
        handler, store, order_id = _setup()
        asyncio.run(UpdateOrderStatusHandler(store.uow).handle(order_id, "confirmed", FARMER))

        with pytest.raises(InvalidStateError) as exc_info:
            asyncio.run(handler.handle(order_id, BUYER))
        assert exc_info.value.current_status == "confirmed"
        assert store.product("p-1").quantity == 6

    def test_only_the_buyer_may_cancel(self):
        handler, store, order_id = _setup()
        with pytest.raises(PermissionDeniedError):
            asyncio.run(handler.handle(order_id, Actor("buyer-2", Role.CUSTOMER)))
        assert store.order(order_id).status is OrderStatus.PENDING

    def test_farmer_role_cannot_use_buyer_cancel(self):
        handler, _, order_id = _setup()
        with pytest.raises(PermissionDeniedError):
            asyncio.run(handler.handle(order_id, FARMER))

    def test_unknown_order(self):
        handler, _, _ = _setup()
        with pytest.raises(NotFoundError):
            asyncio.run(handler.handle("missing", BUYER))

    def test_concurrent_cancels_restore_once(self):
        handler, store, order_id = _setup()

        async def both():
            return await asyncio.gather(
                handler.handle(order_id, BUYER),
                handler.handle(order_id, BUYER),
                return_exceptions=True,
            )

        results = asyncio.run(both())
        assert sum(1 for r in results if not isinstance(r, Exception)) == 1
        assert store.product("p-1").quantity == 8
        assert store.product("p-2").quantity == 1
