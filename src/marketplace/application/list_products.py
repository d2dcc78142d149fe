"""Application service: List Products use case (query)."""

from __future__ import annotations

from marketplace.application.dto import ProductDTO
from marketplace.domain.repository.unit_of_work import UnitOfWorkFactory


class ListProductsHandler:

    def __init__(self, uow_factory: UnitOfWorkFactory) -> None:
        self._uow_factory = uow_factory

    async def handle(self, seller_id: str | None = None, include_deleted: bool = False) -> list[ProductDTO]:
        async with self._uow_factory() as uow:
            if seller_id is None:
                products = await uow.products.list_all()
            else:
                products = await uow.products.list_by_seller(seller_id)
        return [
            ProductDTO.from_product(p)
            for p in products
            if include_deleted or not p.is_deleted
        ]
