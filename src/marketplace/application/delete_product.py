"""Application service: Delete Product use case.

Listings are soft-deleted so historical orders keep their snapshots.
A product referenced by any order that is still in flight cannot be
withdrawn.
"""

from __future__ import annotations

import logging

from marketplace.application.update_product import load_owned_product
from marketplace.domain.exceptions import InvalidStateError
from marketplace.domain.model.actor import Actor
from marketplace.domain.repository.unit_of_work import UnitOfWorkFactory

logger = logging.getLogger(__name__)


class DeleteProductHandler:

    def __init__(self, uow_factory: UnitOfWorkFactory) -> None:
        self._uow_factory = uow_factory

    async def handle(self, actor: Actor, product_id: str) -> None:
        async with self._uow_factory() as uow:
            product = await load_owned_product(uow, product_id, actor)
            product.delete()
            await uow.products.set_status(product.id, product.status)
            # checked after the write so no placement can commit in between
            if await uow.orders.has_active_for_product(product_id):
                raise InvalidStateError("Cannot delete product with active orders")
            await uow.commit()

        logger.info("product deleted", extra={"product_id": product_id})
