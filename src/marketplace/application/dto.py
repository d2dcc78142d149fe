"""Data Transfer Objects: plain containers that cross layer boundaries.

DTOs carry data between the CLI and application layers without
exposing domain internals to the outside world.
"""

from __future__ import annotations

from dataclasses import dataclass

from marketplace.domain.model.order import Order
from marketplace.domain.model.product import Product
from marketplace.domain.model.value_objects import Money


@dataclass(frozen=True)
class OrderLineItemDTO:
    """Output: a single line item as displayed to the user."""

    product_id: str
    product_name: str
    seller_id: str
    quantity: int
    unit_price: str  # formatted, e.g. "NPR 15.00"
    line_total: str


@dataclass(frozen=True)
class OrderDTO:
    """Output: a complete order as displayed to the user.

    ``total`` is always the stored order total. ``seller_total`` is only
    set on a farmer's view and covers that farmer's lines alone.
    """

    id: str
    buyer_id: str
    status: str
    payment_method: str
    payment_status: str
    items: list[OrderLineItemDTO]
    total: str
    total_amount: str  # plain decimal, e.g. "70.00"
    delivery_address: str
    created_at: str
    transaction_id: str | None = None
    seller_total: str | None = None

    @staticmethod
    def from_order(order: Order, seller_id: str | None = None) -> OrderDTO:
        lines = [
            item for item in order.items
            if seller_id is None or item.seller_id == seller_id
        ]
        seller_total = None
        if seller_id is not None:
            seller_total = str(Money.total(
                (item.line_total for item in lines), order.total_amount.currency
            ))
        return OrderDTO(
            id=order.id,
            buyer_id=order.buyer_id,
            status=order.status.value,
            payment_method=order.payment_method.value,
            payment_status=order.payment_status.value,
            items=[
                OrderLineItemDTO(
                    product_id=item.product_id,
                    product_name=item.product_name,
                    seller_id=item.seller_id,
                    quantity=item.quantity.value,
                    unit_price=str(item.unit_price),
                    line_total=str(item.line_total),
                )
                for item in lines
            ],
            total=str(order.total_amount),
            total_amount=order.total_amount.plain(),
            delivery_address=str(order.delivery_address),
            created_at=order.created_at.strftime("%Y-%m-%d %H:%M UTC"),
            transaction_id=order.transaction_id,
            seller_total=seller_total,
        )


@dataclass(frozen=True)
class OrderStatusDTO:
    """Output: the outcome of a lifecycle operation."""

    order_id: str
    status: str
    payment_status: str

    @staticmethod
    def from_order(order: Order) -> OrderStatusDTO:
        return OrderStatusDTO(
            order_id=order.id,
            status=order.status.value,
            payment_status=order.payment_status.value,
        )


@dataclass(frozen=True)
class ProductDTO:
    id: str
    name: str
    price: str
    quantity: int
    seller_id: str
    status: str

    @staticmethod
    def from_product(product: Product) -> ProductDTO:
        return ProductDTO(
            id=product.id,
            name=product.name,
            price=str(product.price),
            quantity=product.quantity,
            seller_id=product.seller_id,
            status=product.status.value,
        )
