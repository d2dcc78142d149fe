"""Unit tests for the Order aggregate."""

from datetime import datetime, timezone

import pytest

from marketplace.domain.exceptions import InvalidStateError, ValidationError
from marketplace.domain.model.actor import Actor, Role
from marketplace.domain.model.order import (
    Order,
    OrderLineItem,
    OrderStatus,
    PaymentMethod,
    PaymentStatus,
    generate_transaction_id,
)
from marketplace.domain.model.value_objects import DeliveryAddress, Money, Quantity

BUYER = Actor("buyer-1", Role.CUSTOMER)
FARMER = Actor("farmer-1", Role.FARMER)
ADDRESS = DeliveryAddress("Bagmati", "Kathmandu", "Thamel Marg 4")


def _line(product_id="p-1", qty=2, price="35.00", seller="farmer-1", name="Tomatoes"):
    return OrderLineItem(
        product_id=product_id,
        product_name=name,
        seller_id=seller,
        quantity=Quantity(qty),
        unit_price=Money.of(price),
    )


def _place(method=PaymentMethod.CASH_ON_DELIVERY, items=None) -> Order:
    return Order.place(
        buyer_id=BUYER.user_id,
        items=items or [_line()],
        delivery_address=ADDRESS,
        payment_method=method,
    )


# ── Placement ────────────────────────────────────────────────────────────────


class TestPlace:

    def test_total_is_sum_of_line_totals(self):
        order = _place(items=[_line("p-1", 2, "35.00"), _line("p-2", 3, "10.00")])
        assert order.total_amount == Money.of("100.00")

    def test_new_order_is_pending(self):
        assert _place().status is OrderStatus.PENDING

    def test_cash_on_delivery_reserves_at_placement(self):
        order = _place(PaymentMethod.CASH_ON_DELIVERY)
        assert order.inventory_reserved is True
        assert order.payment_status is PaymentStatus.PENDING
        assert order.transaction_id is None

    def test_gateway_method_defers_reservation(self):
        order = _place(PaymentMethod.ESEWA)
        assert order.inventory_reserved is False
        assert order.payment_status is PaymentStatus.INITIATED
        assert order.transaction_id.startswith("TXN-")
        assert order.transaction_id.endswith(order.id[:8])

    def test_records_order_placed_event(self):
        order = _place(items=[_line("p-1", seller="farmer-1"), _line("p-2", seller="farmer-2")])
        events = order.pull_events()
        assert [e.event_type for e in events] == ["order_placed"]
        assert events[0].recipients == ["buyer-1", "farmer-1", "farmer-2"]
        assert events[0].notify_admins is True
        assert order.pull_events() == []

    def test_empty_items_rejected(self):
        with pytest.raises(ValidationError, match="at least one item"):
            Order.place("buyer-1", [], ADDRESS, PaymentMethod.CASH_ON_DELIVERY)

    def test_duplicate_products_rejected(self):
        with pytest.raises(ValidationError, match="only once"):
            _place(items=[_line("p-1"), _line("p-1")])

    def test_blank_buyer_rejected(self):
        with pytest.raises(ValidationError, match="Buyer id"):
            Order.place(" ", [_line()], ADDRESS, PaymentMethod.CASH_ON_DELIVERY)

    def test_seller_ids_are_unique_and_ordered(self):
        order = _place(items=[
            _line("p-1", seller="farmer-2"),
            _line("p-2", seller="farmer-1"),
            _line("p-3", seller="farmer-2"),
        ])
        assert order.seller_ids == ("farmer-2", "farmer-1")


class TestTransactionId:

    def test_format(self):
        now = datetime(2024, 3, 7, 9, 5, 1, tzinfo=timezone.utc)
        assert generate_transaction_id("abcdef1234567890", now) == "TXN-2024-0307-090501-abcdef12"


# ── Cancellation ─────────────────────────────────────────────────────────────


class TestCancel:

    def test_pending_order_can_be_cancelled(self):
        order = _place()
        order.pull_events()
        order.cancel(BUYER)
        assert order.status is OrderStatus.CANCELLED
        assert order.cancelled_at is not None
        events = order.pull_events()
        assert events[0].event_type == "order_cancelled"
        assert events[0].restored_inventory is True

    def test_confirmed_order_cannot_be_cancelled(self):
        order = _place()
        order.change_status(OrderStatus.CONFIRMED, FARMER)
        with pytest.raises(InvalidStateError, match="only pending orders can be cancelled") as exc_info:
            order.cancel(BUYER)
        assert exc_info.value.current_status == "confirmed"

    def test_second_cancel_rejected(self):
        order = _place()
        order.cancel(BUYER)
        with pytest.raises(InvalidStateError):
            order.cancel(BUYER)


# ── Status changes ───────────────────────────────────────────────────────────


class TestChangeStatus:

    def test_moves_forward(self):
        order = _place()
        order.change_status(OrderStatus.CONFIRMED, FARMER)
        order.change_status(OrderStatus.PROCESSING, FARMER)
        assert order.status is OrderStatus.PROCESSING

    def test_may_skip_ahead(self):
        order = _place()
        order.change_status(OrderStatus.SHIPPED, FARMER)
        assert order.status is OrderStatus.SHIPPED

    def test_cannot_go_backwards(self):
        order = _place()
        order.change_status(OrderStatus.SHIPPED, FARMER)
        with pytest.raises(InvalidStateError, match="Cannot move"):
            order.change_status(OrderStatus.CONFIRMED, FARMER)

    def test_same_status_rejected(self):
        order = _place()
        order.change_status(OrderStatus.CONFIRMED, FARMER)
        with pytest.raises(InvalidStateError):
            order.change_status(OrderStatus.CONFIRMED, FARMER)

    @pytest.mark.parametrize("terminal", [OrderStatus.DELIVERED, OrderStatus.COMPLETED])
    def test_terminal_status_is_final(self, terminal):
        order = _place()
        order.change_status(terminal, FARMER)
        for target in (OrderStatus.PENDING, OrderStatus.SHIPPED, OrderStatus.COMPLETED):
            with pytest.raises(InvalidStateError, match="can no longer change"):
                order.change_status(target, FARMER)

    def test_cancelled_order_is_final(self):
        order = _place()
        order.cancel(BUYER)
        with pytest.raises(InvalidStateError, match="can no longer change"):
            order.change_status(OrderStatus.CONFIRMED, FARMER)

    def test_cancel_target_must_use_cancel(self):
        order = _place()
        with pytest.raises(InvalidStateError, match="cancel operation"):
            order.change_status(OrderStatus.CANCELLED, FARMER)

    def test_unpaid_gateway_order_cannot_progress(self):
        order = _place(PaymentMethod.KHALTI)
        with pytest.raises(InvalidStateError, match="awaiting payment"):
            order.change_status(OrderStatus.CONFIRMED, FARMER)

    def test_delivery_completes_cash_payment(self):
        order = _place(PaymentMethod.CASH_ON_DELIVERY)
        order.change_status(OrderStatus.DELIVERED, FARMER)
        assert order.payment_status is PaymentStatus.COMPLETED
        assert order.paid_at is not None

    def test_records_status_event(self):
        order = _place()
        order.pull_events()
        order.change_status(OrderStatus.CONFIRMED, FARMER)
        (event,) = order.pull_events()
        assert event.event_type == "order_status_updated"
        assert event.payload()["previous_status"] == "pending"
        assert event.payload()["status"] == "confirmed"
        assert event.payload()["changed_by"] == "farmer"

    def test_parse_rejects_unknown_status(self):
        with pytest.raises(ValidationError, match="Must be one of"):
            OrderStatus.parse("teleported")


# ── Payment ──────────────────────────────────────────────────────────────────


class TestPayment:

    def test_confirm_payment(self):
        order = _place(PaymentMethod.ESEWA)
        order.confirm_payment("GW-1")
        assert order.status is OrderStatus.CONFIRMED
        assert order.payment_status is PaymentStatus.COMPLETED
        assert order.inventory_reserved is True
        assert order.gateway_ref == "GW-1"

    def test_confirm_twice_rejected(self):
        order = _place(PaymentMethod.ESEWA)
        order.confirm_payment("GW-1")
        with pytest.raises(InvalidStateError, match="already completed"):
            order.confirm_payment("GW-1")

    def test_cash_order_is_not_payable_via_gateway(self):
        with pytest.raises(InvalidStateError, match="not via a gateway"):
            _place(PaymentMethod.CASH_ON_DELIVERY).ensure_payable()

    def test_cancelled_order_is_not_payable(self):
        order = _place(PaymentMethod.ESEWA)
        order.cancel(BUYER)
        with pytest.raises(InvalidStateError, match="Cannot confirm payment"):
            order.ensure_payable()

    def test_fail_payment_keeps_order_pending(self):
        order = _place(PaymentMethod.KHALTI)
        order.pull_events()
        order.fail_payment("insufficient balance")
        assert order.status is OrderStatus.PENDING
        assert order.payment_status is PaymentStatus.FAILED
        assert order.payment_failure_reason == "insufficient balance"
        (event,) = order.pull_events()
        assert event.event_type == "payment_failed"

    def test_payment_can_be_retried_after_failure(self):
        order = _place(PaymentMethod.KHALTI)
        order.fail_payment("timeout")
        order.confirm_payment("GW-2")
        assert order.payment_status is PaymentStatus.COMPLETED
        assert order.payment_failure_reason is None

    def test_unreservable_payment_is_held_with_its_reference(self):
        order = _place(PaymentMethod.ESEWA)
        order.pull_events()
        order.hold_unreservable_payment("GW-3", "Honey sold out")

        assert order.status is OrderStatus.PENDING
        assert order.payment_status is PaymentStatus.FAILED
        assert order.gateway_ref == "GW-3"
        assert order.inventory_reserved is False
        (event,) = order.pull_events()
        assert event.event_type == "payment_refund_due"
        assert event.notify_admins is True
        assert event.payload()["gateway_ref"] == "GW-3"
        assert event.payload()["amount"] == str(order.total_amount.amount)

    def test_held_payment_on_cancelled_order_rejected(self):
        order = _place(PaymentMethod.ESEWA)
        order.cancel(BUYER)
        with pytest.raises(InvalidStateError):
            order.hold_unreservable_payment("GW-3", "Honey sold out")
