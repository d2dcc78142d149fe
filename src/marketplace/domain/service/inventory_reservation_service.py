"""Domain service: Inventory Reservation.

This service coordinates the cross-aggregate operation of reserving
or releasing stock for an order.  It lives in the domain layer
because the logic is a core business rule, not just orchestration.

The two-phase approach still applies (validate against a snapshot,
then mutate), but the mutation phase does not trust the snapshot: each
decrement is a conditional write that the store re-checks at write
time.  A competing buyer who read the same stale snapshot therefore
loses cleanly instead of driving stock negative.  Callers run both
phases inside one unit of work so an aborted reservation leaves no
partial decrement behind.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence

from marketplace.domain.exceptions import (
    ConcurrentModificationError,
    InsufficientStockError,
    NotFoundError,
    ValidationError,
)
from marketplace.domain.model.order import OrderLineItem
from marketplace.domain.model.product import Product
from marketplace.domain.model.value_objects import CartLine, Quantity
from marketplace.domain.repository.product_repository import ProductRepository

logger = logging.getLogger(__name__)


def validate_cart(cart: Sequence[CartLine]) -> None:
    """Shape checks that never need the store."""
    if not cart:
        raise ValidationError("Order must contain at least one item")
    seen: set[str] = set()
    for line in cart:
        if not line.product_id:
            raise ValidationError("Every cart line needs a product id")
        if (
            not isinstance(line.quantity, int)
            or isinstance(line.quantity, bool)
            or line.quantity <= 0
        ):
            raise ValidationError(
                f"Quantity for product '{line.product_id}' must be a positive integer"
            )
        if line.product_id in seen:
            raise ValidationError(
                f"Product '{line.product_id}' appears more than once in the cart"
            )
        seen.add(line.product_id)


class InventoryReservationService:

    def __init__(self, product_repo: ProductRepository) -> None:
        self._product_repo = product_repo

    async def load_snapshot(self, product_ids: Sequence[str]) -> dict[str, Product]:
        """Read every referenced product in a single call."""
        products = await self._product_repo.find_by_ids(list(product_ids))
        return {p.id: p for p in products}

    def price_cart(
        self, cart: Sequence[CartLine], snapshot: dict[str, Product]
    ) -> list[OrderLineItem]:
        """Phase 1: validate availability and freeze prices.

        The current catalog price is captured here; this is the moment
        the order's price snapshot is taken.
        """
        items: list[OrderLineItem] = []
        for line in cart:
            product = self._require_orderable(line.product_id, snapshot)
            if line.quantity > product.quantity:
                raise InsufficientStockError(
                    product_id=product.id,
                    product_name=product.name,
                    requested=line.quantity,
                    available=product.quantity,
                )
            items.append(
                OrderLineItem(
                    product_id=product.id,
                    product_name=product.name,
                    seller_id=product.seller_id,
                    quantity=Quantity(line.quantity),
                    unit_price=product.price,  # <-- price snapshot
                )
            )
        return items

    def check_availability(
        self, items: Sequence[OrderLineItem], snapshot: dict[str, Product]
    ) -> None:
        """Phase 1 for an order whose prices are already frozen."""
        for item in items:
            product = self._require_orderable(item.product_id, snapshot)
            if item.quantity.value > product.quantity:
                raise InsufficientStockError(
                    product_id=product.id,
                    product_name=product.name,
                    requested=item.quantity.value,
                    available=product.quantity,
                )

    async def reserve(self, items: Sequence[OrderLineItem]) -> None:
        """Phase 2: conditionally decrement stock for every line.

        Lines are written in product-id order so concurrent reservations
        touching the same products contend in the same sequence.
        """
        for item in sorted(items, key=lambda i: i.product_id):
            taken = await self._product_repo.conditional_decrement(
                item.product_id, item.quantity.value
            )
            if not taken:
                logger.warning(
                    "reservation lost race",
                    extra={"product_id": item.product_id, "requested": item.quantity.value},
                )
                raise ConcurrentModificationError(
                    f"Stock for '{item.product_name}' changed while the order was "
                    f"being placed; please retry",
                    entity_id=item.product_id,
                )

    async def release(self, items: Sequence[OrderLineItem]) -> None:
        """Compensation: give back exactly the quantities that were reserved."""
        for item in sorted(items, key=lambda i: i.product_id):
            restored = await self._product_repo.conditional_increment(
                item.product_id, item.quantity.value
            )
            if not restored:
                raise NotFoundError(
                    f"Product '{item.product_name}' no longer exists; cannot restore stock",
                    entity_id=item.product_id,
                )

    @staticmethod
    def _require_orderable(product_id: str, snapshot: dict[str, Product]) -> Product:
        product = snapshot.get(product_id)
        if product is None or product.is_deleted:
            raise NotFoundError(f"Product not found: '{product_id}'", entity_id=product_id)
        return product
