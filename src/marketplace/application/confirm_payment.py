"""Application service: Confirm Payment use case.

Gateway-settled orders (eSewa, Khalti) are placed without touching stock.
When the buyer returns from checkout, this handler verifies the payment
with the gateway and, in a single transaction, reserves the stock and
moves the order to confirmed. Stock is therefore reserved exactly once
per order: at placement for cash on delivery, here for gateway methods.

The gateway call happens outside any transaction; the order is re-read
afterwards and every write is guarded on it still being pending. If the
stock is gone by then, the verified payment is recorded on the order with
its gateway reference and a refund-due event before the error is raised.
"""

from __future__ import annotations

import logging
from decimal import Decimal
from typing import Callable

from marketplace.application.dto import OrderStatusDTO
from marketplace.domain.exceptions import (
    ConcurrentModificationError,
    DomainException,
    InsufficientStockError,
    NotFoundError,
    PaymentMismatchError,
    PaymentVerificationError,
)
from marketplace.domain.model.order import Order, OrderStatus
from marketplace.domain.port.payment_gateway import GatewayAssertion, PaymentGateway
from marketplace.domain.repository.unit_of_work import UnitOfWork, UnitOfWorkFactory
from marketplace.domain.service.inventory_reservation_service import (
    InventoryReservationService,
)

logger = logging.getLogger(__name__)


class ConfirmPaymentHandler:

    def __init__(
        self,
        uow_factory: UnitOfWorkFactory,
        gateway: PaymentGateway,
        after_commit: Callable[[], None] | None = None,
    ) -> None:
        self._uow_factory = uow_factory
        self._gateway = gateway
        self._after_commit = after_commit

    async def handle(self, order_id: str, assertion: GatewayAssertion) -> OrderStatusDTO:
        async with self._uow_factory() as uow:
            order = await _load(uow, order_id)
        order.ensure_payable()
        self._assert_amount(order, assertion.amount)

        verification = await self._gateway.verify(
            assertion.token, order.total_amount.amount, reference=order.transaction_id
        )
        if not verification.verified:
            reason = verification.reason or "Payment verification failed"
            await self._record_failure(order_id, reason)
            raise PaymentVerificationError(
                f"Payment for order #{order_id} was not verified: {reason}"
            )
        if verification.amount is not None:
            self._assert_amount(order, verification.amount)

        gateway_ref = verification.gateway_ref or assertion.token
        try:
            order = await self._reserve_and_confirm(order_id, gateway_ref)
        except (InsufficientStockError, ConcurrentModificationError) as exc:
            await self._record_refund_due(order_id, gateway_ref, exc)
            raise

        logger.info(
            "payment confirmed",
            extra={
                "order_id": order.id,
                "gateway_ref": order.gateway_ref,
                "total_amount": str(order.total_amount.amount),
            },
        )
        if self._after_commit is not None:
            self._after_commit()
        return OrderStatusDTO.from_order(order)

    async def _reserve_and_confirm(self, order_id: str, gateway_ref: str) -> Order:
        async with self._uow_factory() as uow:
            order = await _load(uow, order_id)
            order.ensure_payable()

            svc = InventoryReservationService(uow.products)
            snapshot = await svc.load_snapshot([item.product_id for item in order.items])
            svc.check_availability(order.items, snapshot)
            await svc.reserve(order.items)

            order.confirm_payment(gateway_ref)
            await _guarded_update(uow, order)
            await uow.publish_events(order)
            await uow.commit()
        return order

    async def _record_failure(self, order_id: str, reason: str) -> None:
        async with self._uow_factory() as uow:
            order = await _load(uow, order_id)
            order.fail_payment(reason)
            await _guarded_update(uow, order)
            await uow.publish_events(order)
            await uow.commit()
        logger.warning(
            "payment verification failed",
            extra={"order_id": order_id, "reason": reason},
        )
        if self._after_commit is not None:
            self._after_commit()

    async def _record_refund_due(
        self, order_id: str, gateway_ref: str, cause: DomainException
    ) -> None:
        """Keep a verified payment on record when its stock could not be reserved."""
        reason = f"Payment received but stock could not be reserved: {cause}"
        logger.error(
            "verified payment not applied",
            extra={"order_id": order_id, "gateway_ref": gateway_ref, "reason": reason},
        )
        async with self._uow_factory() as uow:
            order = await _load(uow, order_id)
            if order.status is not OrderStatus.PENDING:
                # cancelled or confirmed elsewhere; the log line above is the record
                return
            order.hold_unreservable_payment(gateway_ref, reason)
            await _guarded_update(uow, order)
            await uow.publish_events(order)
            await uow.commit()
        if self._after_commit is not None:
            self._after_commit()

    @staticmethod
    def _assert_amount(order: Order, amount: Decimal) -> None:
        if amount != order.total_amount.amount:
            logger.warning(
                "payment amount mismatch",
                extra={
                    "order_id": order.id,
                    "expected": str(order.total_amount.amount),
                    "asserted": str(amount),
                },
            )
            raise PaymentMismatchError(
                order_id=order.id,
                expected=str(order.total_amount.amount),
                asserted=str(amount),
            )


async def _load(uow: UnitOfWork, order_id: str) -> Order:
    order = await uow.orders.get_by_id(order_id)
    if order is None:
        raise NotFoundError(f"Order #{order_id} not found", entity_id=order_id)
    return order


async def _guarded_update(uow: UnitOfWork, order: Order) -> None:
    if not await uow.orders.update(order, expected_status=OrderStatus.PENDING):
        raise ConcurrentModificationError(
            f"Order #{order.id} changed while its payment was being processed; please retry",
            entity_id=order.id,
        )
