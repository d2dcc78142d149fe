"""Order aggregate and its lifecycle rules.

The Order is an aggregate root that owns its line items.
All business invariants are enforced here; the application handlers
coordinate it with the catalog and the transaction boundary.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from uuid import uuid4

from marketplace.domain.exceptions import InvalidStateError, ValidationError
from marketplace.domain.model.actor import Actor
from marketplace.domain.model.events import (
    OrderCancelled,
    OrderEvent,
    OrderPlaced,
    OrderStatusChanged,
    PaymentConfirmed,
    PaymentFailed,
    PaymentRefundDue,
)
from marketplace.domain.model.value_objects import DeliveryAddress, Money, Quantity


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class OrderStatus(Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    PROCESSING = "processing"
    SHIPPED = "shipped"
    DELIVERED = "delivered"
    COMPLETED = "completed"
    CANCELLED = "cancelled"

    @staticmethod
    def parse(value: str) -> OrderStatus:
        try:
            return OrderStatus(value)
        except ValueError:
            valid = ", ".join(s.value for s in OrderStatus)
            raise ValidationError(f"Invalid status '{value}'. Must be one of: {valid}") from None

    @property
    def is_terminal(self) -> bool:
        return self in TERMINAL_STATUSES


TERMINAL_STATUSES = frozenset(
    {OrderStatus.DELIVERED, OrderStatus.COMPLETED, OrderStatus.CANCELLED}
)

# Position on the happy path. Skipping ahead is allowed, going back is not.
_PROGRESS = {
    OrderStatus.PENDING: 0,
    OrderStatus.CONFIRMED: 1,
    OrderStatus.PROCESSING: 2,
    OrderStatus.SHIPPED: 3,
    OrderStatus.DELIVERED: 4,
    OrderStatus.COMPLETED: 4,
}


class PaymentMethod(Enum):
    ESEWA = "esewa"
    KHALTI = "khalti"
    CASH_ON_DELIVERY = "cash_on_delivery"

    @staticmethod
    def parse(value: str) -> PaymentMethod:
        try:
            return PaymentMethod(value)
        except ValueError:
            raise ValidationError(f"Invalid payment method: {value!r}") from None

    @property
    def settles_via_gateway(self) -> bool:
        """Gateway methods settle out-of-band and reserve stock on confirmation."""
        return self is not PaymentMethod.CASH_ON_DELIVERY


class PaymentStatus(Enum):
    PENDING = "pending"
    INITIATED = "initiated"
    COMPLETED = "completed"
    FAILED = "failed"


@dataclass(frozen=True)
class OrderLineItem:
    """Captures the price snapshot of a product at order-creation time.

    Line items are embedded values, not references, so the order survives
    the product being repriced or withdrawn.
    """

    product_id: str
    product_name: str
    seller_id: str
    quantity: Quantity
    unit_price: Money  # locked at order-creation time

    @property
    def line_total(self) -> Money:
        return self.unit_price * self.quantity.value


def generate_transaction_id(order_id: str, now: datetime | None = None) -> str:
    """System purchase reference handed to payment gateways.

    Format: ``TXN-YYYY-MMDD-HHMMSS-<first 8 chars of order id>``.
    """
    now = now or _utcnow()
    return f"TXN-{now:%Y}-{now:%m%d}-{now:%H%M%S}-{order_id[:8]}"


@dataclass
class Order:
    """Aggregate root for purchase orders.

    Use the ``Order.place()`` factory for new orders; it enforces all
    business rules.  The ``__init__`` is intentionally simple so the
    repository can reconstitute persisted orders without re-validating.
    """

    id: str
    buyer_id: str
    items: tuple[OrderLineItem, ...]
    total_amount: Money
    delivery_address: DeliveryAddress
    payment_method: PaymentMethod
    payment_status: PaymentStatus
    status: OrderStatus = OrderStatus.PENDING
    inventory_reserved: bool = False
    transaction_id: str | None = None
    gateway_ref: str | None = None
    payment_failure_reason: str | None = None
    created_at: datetime = field(default_factory=_utcnow)
    updated_at: datetime = field(default_factory=_utcnow)
    cancelled_at: datetime | None = None
    paid_at: datetime | None = None
    _events: list[OrderEvent] = field(default_factory=list, repr=False, compare=False)

    # --- Factory (used for NEW orders only) -----------------------------------

    @staticmethod
    def place(
        buyer_id: str,
        items: list[OrderLineItem],
        delivery_address: DeliveryAddress,
        payment_method: PaymentMethod,
    ) -> Order:
        """Create a new pending order, enforcing all invariants.

        The total is computed once here and stored; it is never recomputed
        from the catalog afterwards.
        """
        if not buyer_id or not buyer_id.strip():
            raise ValidationError("Buyer id is required")
        if not items:
            raise ValidationError("Order must contain at least one item")

        product_ids = [item.product_id for item in items]
        if len(set(product_ids)) != len(product_ids):
            raise ValidationError("Each product may appear only once per order")

        total = Money.total(
            (item.line_total for item in items), items[0].unit_price.currency
        )

        now = _utcnow()
        order_id = str(uuid4())
        order = Order(
            id=order_id,
            buyer_id=buyer_id,
            items=tuple(items),
            total_amount=total,
            delivery_address=delivery_address,
            payment_method=payment_method,
            payment_status=(
                PaymentStatus.INITIATED
                if payment_method.settles_via_gateway
                else PaymentStatus.PENDING
            ),
            inventory_reserved=not payment_method.settles_via_gateway,
            transaction_id=(
                generate_transaction_id(order_id, now)
                if payment_method.settles_via_gateway
                else None
            ),
            created_at=now,
            updated_at=now,
        )
        order._record(
            OrderPlaced(
                order_id=order.id,
                buyer_id=order.buyer_id,
                seller_ids=order.seller_ids,
                total_amount=str(order.total_amount.amount),
                payment_method=payment_method.value,
            )
        )
        return order

    # --- State transitions ----------------------------------------------------

    def cancel(self, by: Actor) -> None:
        """Transition PENDING -> CANCELLED.

        If ``inventory_reserved`` is set, the caller must restore every
        line's quantity in the same transaction.
        """
        if self.status is not OrderStatus.PENDING:
            raise InvalidStateError(
                f"Cannot cancel order #{self.id}: current status is {self.status.value}, "
                f"only pending orders can be cancelled",
                current_status=self.status.value,
            )
        now = _utcnow()
        self.status = OrderStatus.CANCELLED
        self.cancelled_at = now
        self.updated_at = now
        self._record(
            OrderCancelled(
                order_id=self.id,
                buyer_id=self.buyer_id,
                seller_ids=self.seller_ids,
                cancelled_by=by.role.value,
                restored_inventory=self.inventory_reserved,
            )
        )

    def change_status(self, new_status: OrderStatus, by: Actor) -> None:
        """Move the order forward along its lifecycle.

        Cancellation has its own path because it carries compensation.
        """
        self._assert_not_terminal()
        if new_status is OrderStatus.CANCELLED:
            raise InvalidStateError(
                "Cancellation must go through the cancel operation",
                current_status=self.status.value,
            )
        if _PROGRESS[new_status] <= _PROGRESS[self.status]:
            raise InvalidStateError(
                f"Cannot move order #{self.id} from {self.status.value} to {new_status.value}",
                current_status=self.status.value,
            )
        if not self.inventory_reserved:
            raise InvalidStateError(
                f"Order #{self.id} is awaiting payment confirmation",
                current_status=self.status.value,
            )

        previous = self.status
        self.status = new_status
        self.updated_at = _utcnow()
        if (
            new_status.is_terminal
            and self.payment_method is PaymentMethod.CASH_ON_DELIVERY
        ):
            # cash is collected on the doorstep
            self.payment_status = PaymentStatus.COMPLETED
            self.paid_at = self.updated_at
        self._record(
            OrderStatusChanged(
                order_id=self.id,
                buyer_id=self.buyer_id,
                seller_ids=self.seller_ids,
                previous_status=previous.value,
                status=new_status.value,
                changed_by=by.role.value,
            )
        )

    def ensure_payable(self) -> None:
        """Raise unless a gateway confirmation may be applied right now."""
        if not self.payment_method.settles_via_gateway:
            raise InvalidStateError(
                f"Order #{self.id} is paid by {self.payment_method.value}, not via a gateway",
                current_status=self.status.value,
            )
        if self.payment_status is PaymentStatus.COMPLETED:
            raise InvalidStateError(
                f"Payment for order #{self.id} is already completed",
                current_status=self.status.value,
            )
        if self.status is not OrderStatus.PENDING:
            raise InvalidStateError(
                f"Cannot confirm payment: order #{self.id} is {self.status.value}",
                current_status=self.status.value,
            )

    def confirm_payment(self, gateway_ref: str) -> None:
        """Transition PENDING -> CONFIRMED after gateway settlement.

        Inventory must have been reserved in the same transaction.
        """
        self.ensure_payable()
        now = _utcnow()
        self.payment_status = PaymentStatus.COMPLETED
        self.status = OrderStatus.CONFIRMED
        self.gateway_ref = gateway_ref
        self.payment_failure_reason = None
        self.inventory_reserved = True
        self.paid_at = now
        self.updated_at = now
        self._record(
            PaymentConfirmed(
                order_id=self.id,
                buyer_id=self.buyer_id,
                seller_ids=self.seller_ids,
                gateway_ref=gateway_ref,
                amount=str(self.total_amount.amount),
            )
        )

    def fail_payment(self, reason: str) -> None:
        self.ensure_payable()
        self.payment_status = PaymentStatus.FAILED
        self.payment_failure_reason = reason
        self.updated_at = _utcnow()
        self._record(
            PaymentFailed(
                order_id=self.id,
                buyer_id=self.buyer_id,
                seller_ids=self.seller_ids,
                reason=reason,
            )
        )

    def hold_unreservable_payment(self, gateway_ref: str, reason: str) -> None:
        """Record a verified payment whose stock could not be reserved.

        The order stays pending without stock. The gateway reference is kept
        so the payment can be refunded, or applied by a later confirmation.
        """
        self.ensure_payable()
        self.payment_status = PaymentStatus.FAILED
        self.payment_failure_reason = reason
        self.gateway_ref = gateway_ref
        self.updated_at = _utcnow()
        self._record(
            PaymentRefundDue(
                order_id=self.id,
                buyer_id=self.buyer_id,
                seller_ids=self.seller_ids,
                gateway_ref=gateway_ref,
                amount=str(self.total_amount.amount),
                reason=reason,
            )
        )

    # --- Computed properties --------------------------------------------------

    @property
    def seller_ids(self) -> tuple[str, ...]:
        return tuple(dict.fromkeys(item.seller_id for item in self.items))

    @property
    def is_terminal(self) -> bool:
        return self.status.is_terminal

    def involves_seller(self, seller_id: str) -> bool:
        return seller_id in self.seller_ids

    # --- Events ---------------------------------------------------------------

    def pull_events(self) -> list[OrderEvent]:
        events, self._events = self._events, []
        return events

    # --- Internal helpers -----------------------------------------------------

    def _record(self, event: OrderEvent) -> None:
        self._events.append(event)

    def _assert_not_terminal(self) -> None:
        if self.is_terminal:
            raise InvalidStateError(
                f"Order #{self.id} is {self.status.value} and can no longer change",
                current_status=self.status.value,
            )
