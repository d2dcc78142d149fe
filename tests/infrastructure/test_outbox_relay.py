"""Tests for the outbox relay that fans lifecycle events out to users."""

import asyncio

from marketplace.application.place_order import PlaceOrderHandler
from marketplace.application.update_order_status import UpdateOrderStatusHandler
from marketplace.domain.model.actor import Actor, Role
from marketplace.domain.model.outbox import OutboxStatus
from marketplace.domain.model.value_objects import CartLine, DeliveryAddress
from marketplace.infrastructure.notifications.logging_dispatcher import (
    LoggingNotificationDispatcher,
)
from marketplace.infrastructure.notifications.outbox_relay import OutboxRelay
from tests.fakes import FakeStore, RecordingDispatcher, make_product

BUYER = Actor("buyer-1", Role.CUSTOMER)
ADDRESS = DeliveryAddress("Bagmati", "Kathmandu", "Thamel Marg 4")


def _setup(dispatcher=None, max_attempts=3) -> tuple[OutboxRelay, FakeStore, RecordingDispatcher, str]:
    store = FakeStore([
        make_product("p-1", "Tomatoes", "10.00", 8, seller_id="farmer-1"),
        make_product("p-2", "Honey", "50.00", 3, seller_id="farmer-2"),
    ])
    dispatcher = dispatcher or RecordingDispatcher()
    relay = OutboxRelay(
        store.uow, dispatcher, admin_ids=["admin-1", "admin-2"], max_attempts=max_attempts
    )
    placed = asyncio.run(
        PlaceOrderHandler(store.uow, after_commit=relay.wake).handle(
            BUYER, [CartLine("p-1", 1), CartLine("p-2", 1)], ADDRESS
        )
    )
    return relay, store, dispatcher, placed.id


class TestFanOut:

    def test_order_placed_reaches_buyer_sellers_and_admins(self):
        relay, store, dispatcher, _ = _setup()

        assert asyncio.run(relay.drain()) == 1

        assert dispatcher.recipients("order_placed") == [
            "buyer-1", "farmer-1", "farmer-2", "admin-1", "admin-2",
        ]
        assert store.messages()[0].status is OutboxStatus.PUBLISHED

    def test_status_updates_skip_admins(self):
        relay, store, dispatcher, order_id = _setup()
        asyncio.run(relay.drain())
        asyncio.run(
            UpdateOrderStatusHandler(store.uow).handle(order_id, "confirmed", Actor("farmer-2", Role.FARMER))
        )

        asyncio.run(relay.drain())

        assert dispatcher.recipients("order_status_updated") == ["buyer-1", "farmer-1", "farmer-2"]

    def test_published_messages_are_not_sent_again(self):
        relay, _, dispatcher, _ = _setup()
        asyncio.run(relay.drain())
        assert asyncio.run(relay.drain()) == 0
        assert len(dispatcher.sent) == 5

    def test_payload_carries_order_details(self):
        relay, _, dispatcher, order_id = _setup()
        asyncio.run(relay.drain())
        _, _, payload = dispatcher.sent[0]
        assert payload["order_id"] == order_id
        assert payload["total_amount"] == "60.00"


class TestDeliveryFailures:

    def test_failure_is_counted_and_retried(self):
        dispatcher = RecordingDispatcher(failing_users={"farmer-2"})
        relay, store, _, _ = _setup(dispatcher)

        assert asyncio.run(relay.drain()) == 0

        (message,) = store.messages()
        assert message.status is OutboxStatus.PENDING
        assert message.attempts == 1
        assert "farmer-2" in message.last_error

        dispatcher.failing_users.clear()
        assert asyncio.run(relay.drain()) == 1
        assert store.messages()[0].status is OutboxStatus.PUBLISHED

    def test_message_is_parked_after_max_attempts(self):
        dispatcher = RecordingDispatcher(failing_users={"buyer-1"})
        relay, store, _, _ = _setup(dispatcher, max_attempts=2)

        asyncio.run(relay.drain())
        asyncio.run(relay.drain())
        asyncio.run(relay.drain())

        (message,) = store.messages()
        assert message.status is OutboxStatus.FAILED
        assert message.attempts == 2

    def test_failure_does_not_touch_the_order(self):
        dispatcher = RecordingDispatcher(failing_users={"buyer-1"})
        relay, store, _, order_id = _setup(dispatcher)
        asyncio.run(relay.drain())
        assert store.order(order_id).status.value == "pending"
        assert store.product("p-1").quantity == 7


class TestRunLoop:

    def test_wake_triggers_delivery_and_stop_ends_loop(self):
        relay, store, dispatcher, _ = _setup()

        async def scenario():
            stop = asyncio.Event()
            task = asyncio.create_task(relay.run(stop, interval=30))
            for _ in range(20):
                await asyncio.sleep(0)
            stop.set()
            await asyncio.wait_for(task, timeout=5)

        asyncio.run(scenario())
        assert store.messages()[0].status is OutboxStatus.PUBLISHED

    def test_logging_dispatcher_accepts_every_event(self):
        relay, store, _, _ = _setup(LoggingNotificationDispatcher())
        assert asyncio.run(relay.drain()) == 1
        assert store.messages()[0].status is OutboxStatus.PUBLISHED
