"""Application service: Add Product use case."""

from __future__ import annotations

import logging
from uuid import uuid4

from marketplace.application.dto import ProductDTO
from marketplace.domain.exceptions import ValidationError
from marketplace.domain.model.actor import Actor, Role
from marketplace.domain.model.product import Product
from marketplace.domain.model.value_objects import Money
from marketplace.domain.repository.unit_of_work import UnitOfWorkFactory

logger = logging.getLogger(__name__)


class AddProductHandler:

    def __init__(self, uow_factory: UnitOfWorkFactory) -> None:
        self._uow_factory = uow_factory

    async def handle(self, seller: Actor, name: str, price: str, quantity: int) -> ProductDTO:
        """List a new product in the catalog on behalf of a farmer."""
        seller.require_role(Role.FARMER)
        if not name or not name.strip():
            raise ValidationError("Product name is required")

        product = Product(
            id=str(uuid4()),
            name=name.strip(),
            price=Money.of(price),
            quantity=quantity,
            seller_id=seller.user_id,
        )
        async with self._uow_factory() as uow:
            await uow.products.add(product)
            await uow.commit()

        logger.info(
            "product listed",
            extra={"product_id": product.id, "seller_id": seller.user_id},
        )
        return ProductDTO.from_product(product)
