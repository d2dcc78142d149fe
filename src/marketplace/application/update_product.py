"""Application service: Update Product use case.

Each edit writes only the column it changes. A restock is applied only if
the quantity is still the one the seller saw, so a reservation that lands
in between is never overwritten.
"""

from __future__ import annotations

import logging

from marketplace.application.dto import ProductDTO
from marketplace.domain.exceptions import (
    ConcurrentModificationError,
    NotFoundError,
    PermissionDeniedError,
    ValidationError,
)
from marketplace.domain.model.actor import Actor, Role
from marketplace.domain.model.product import Product
from marketplace.domain.model.value_objects import Money
from marketplace.domain.repository.unit_of_work import UnitOfWork, UnitOfWorkFactory

logger = logging.getLogger(__name__)


class UpdateProductHandler:

    def __init__(self, uow_factory: UnitOfWorkFactory) -> None:
        self._uow_factory = uow_factory

    async def handle(
        self,
        actor: Actor,
        product_id: str,
        new_price: str | None = None,
        new_quantity: int | None = None,
    ) -> ProductDTO:
        """Update a product's price and/or stock level.

        Repricing does NOT affect any existing orders, which captured a
        price snapshot at creation time.
        """
        if new_price is None and new_quantity is None:
            raise ValidationError("Nothing to update")

        async with self._uow_factory() as uow:
            product = await load_owned_product(uow, product_id, actor)
            if new_price is not None:
                product.update_price(Money.of(new_price, product.price.currency))
                if not await uow.products.update_price(product.id, product.price):
                    raise _changed_meanwhile(product)
            if new_quantity is not None:
                seen_quantity = product.quantity
                product.set_quantity(new_quantity)
                if not await uow.products.set_quantity(product.id, new_quantity, seen_quantity):
                    raise _changed_meanwhile(product)
            product = await uow.products.get_by_id(product_id)
            await uow.commit()

        logger.info(
            "product updated",
            extra={
                "product_id": product.id,
                "price": str(product.price.amount),
                "quantity": product.quantity,
            },
        )
        return ProductDTO.from_product(product)


def _changed_meanwhile(product: Product) -> ConcurrentModificationError:
    return ConcurrentModificationError(
        f"Product '{product.name}' changed while it was being edited; please retry",
        entity_id=product.id,
    )


async def load_owned_product(uow: UnitOfWork, product_id: str, actor: Actor) -> Product:
    actor.require_role(Role.FARMER, Role.ADMIN)
    product = await uow.products.get_by_id(product_id)
    if product is None or product.is_deleted:
        raise NotFoundError(f"Product with ID '{product_id}' not found", entity_id=product_id)
    if not actor.is_admin and product.seller_id != actor.user_id:
        raise PermissionDeniedError("You can only manage your own products")
    return product
