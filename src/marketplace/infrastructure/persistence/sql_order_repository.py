"""SQL implementation of OrderRepository."""

from __future__ import annotations

from decimal import Decimal

import sqlalchemy as sa
from sqlalchemy.ext.asyncio import AsyncSession

from marketplace.domain.model.order import (
    TERMINAL_STATUSES,
    Order,
    OrderLineItem,
    OrderStatus,
    PaymentMethod,
    PaymentStatus,
)
from marketplace.domain.model.value_objects import DeliveryAddress, Money, Quantity
from marketplace.domain.repository.order_repository import OrderRepository
from marketplace.infrastructure.persistence.sql_support import as_utc, guarded_update
from marketplace.infrastructure.persistence.tables import orders

_ACTIVE = orders.c.status.not_in([s.value for s in TERMINAL_STATUSES])


class SqlOrderRepository(OrderRepository):

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    # --- OrderRepository interface --------------------------------------------

    async def add(self, order: Order) -> None:
        await self._session.execute(sa.insert(orders).values(**_to_row(order)))

    async def get_by_id(self, order_id: str) -> Order | None:
        result = await self._session.execute(
            sa.select(orders).where(orders.c.id == order_id)
        )
        row = result.mappings().first()
        return _to_order(row) if row else None

    async def update(self, order: Order, expected_status: OrderStatus) -> bool:
        return await guarded_update(
            self._session,
            orders,
            order.id,
            orders.c.status == expected_status.value,
            {
                "status": order.status.value,
                "payment_status": order.payment_status.value,
                "inventory_reserved": order.inventory_reserved,
                "gateway_ref": order.gateway_ref,
                "payment_failure_reason": order.payment_failure_reason,
                "updated_at": order.updated_at,
                "cancelled_at": order.cancelled_at,
                "paid_at": order.paid_at,
            },
        )

    async def list_by_buyer(self, buyer_id: str) -> list[Order]:
        result = await self._session.execute(
            sa.select(orders)
            .where(orders.c.buyer_id == buyer_id)
            .order_by(orders.c.created_at.desc())
        )
        return [_to_order(row) for row in result.mappings()]

    async def list_by_seller(self, seller_id: str) -> list[Order]:
        # seller ids live inside the items document
        result = await self._session.execute(
            sa.select(orders).order_by(orders.c.created_at.desc())
        )
        return [
            order
            for order in (_to_order(row) for row in result.mappings())
            if order.involves_seller(seller_id)
        ]

    async def has_active_for_product(self, product_id: str) -> bool:
        result = await self._session.execute(sa.select(orders.c["items"]).where(_ACTIVE))
        return any(
            item["product_id"] == product_id
            for items in result.scalars()
            for item in items
        )


# --- Serialization helpers ----------------------------------------------------


def _to_row(order: Order) -> dict:
    return {
        "id": order.id,
        "buyer_id": order.buyer_id,
        "items": [
            {
                "product_id": item.product_id,
                "product_name": item.product_name,
                "seller_id": item.seller_id,
                "quantity": item.quantity.value,
                "unit_price": str(item.unit_price.amount),
            }
            for item in order.items
        ],
        "total_amount": str(order.total_amount.amount),
        "currency": order.total_amount.currency,
        "delivery_address": order.delivery_address.to_dict(),
        "payment_method": order.payment_method.value,
        "payment_status": order.payment_status.value,
        "status": order.status.value,
        "inventory_reserved": order.inventory_reserved,
        "transaction_id": order.transaction_id,
        "gateway_ref": order.gateway_ref,
        "payment_failure_reason": order.payment_failure_reason,
        "created_at": order.created_at,
        "updated_at": order.updated_at,
        "cancelled_at": order.cancelled_at,
        "paid_at": order.paid_at,
    }


def _to_order(row) -> Order:
    currency = row["currency"]
    items = tuple(
        OrderLineItem(
            product_id=item["product_id"],
            product_name=item["product_name"],
            seller_id=item["seller_id"],
            quantity=Quantity(item["quantity"]),
            unit_price=Money(Decimal(item["unit_price"]), currency),
        )
        for item in row["items"]
    )
    return Order(
        id=row["id"],
        buyer_id=row["buyer_id"],
        items=items,
        total_amount=Money(Decimal(row["total_amount"]), currency),
        delivery_address=DeliveryAddress.from_dict(row["delivery_address"]),
        payment_method=PaymentMethod(row["payment_method"]),
        payment_status=PaymentStatus(row["payment_status"]),
        status=OrderStatus(row["status"]),
        inventory_reserved=row["inventory_reserved"],
        transaction_id=row["transaction_id"],
        gateway_ref=row["gateway_ref"],
        payment_failure_reason=row["payment_failure_reason"],
        created_at=as_utc(row["created_at"]),
        updated_at=as_utc(row["updated_at"]),
        cancelled_at=as_utc(row["cancelled_at"]),
        paid_at=as_utc(row["paid_at"]),
    )
