"""SQL implementation of ProductRepository."""

from __future__ import annotations

from decimal import Decimal

import sqlalchemy as sa
from sqlalchemy.ext.asyncio import AsyncSession

from marketplace.domain.model.product import Product, ProductStatus, status_for_quantity
from marketplace.domain.model.value_objects import Money
from marketplace.domain.repository.product_repository import ProductRepository
from marketplace.infrastructure.persistence.sql_support import guarded_update
from marketplace.infrastructure.persistence.tables import products

_NOT_DELETED = products.c.status != ProductStatus.DELETED.value


class SqlProductRepository(ProductRepository):

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    # --- ProductRepository interface ------------------------------------------

    async def get_by_id(self, product_id: str) -> Product | None:
        result = await self._session.execute(
            sa.select(products).where(products.c.id == product_id)
        )
        row = result.mappings().first()
        return _to_product(row) if row else None

    async def find_by_ids(self, product_ids: list[str]) -> list[Product]:
        if not product_ids:
            return []
        result = await self._session.execute(
            sa.select(products).where(products.c.id.in_(product_ids))
        )
        return [_to_product(row) for row in result.mappings()]

    async def list_by_seller(self, seller_id: str) -> list[Product]:
        result = await self._session.execute(
            sa.select(products)
            .where(products.c.seller_id == seller_id)
            .order_by(products.c.name)
        )
        return [_to_product(row) for row in result.mappings()]

    async def list_all(self) -> list[Product]:
        result = await self._session.execute(
            sa.select(products).order_by(products.c.name)
        )
        return [_to_product(row) for row in result.mappings()]

    async def add(self, product: Product) -> None:
        await self._session.execute(sa.insert(products).values(**_to_row(product)))

    async def update_price(self, product_id: str, price: Money) -> bool:
        return await guarded_update(
            self._session,
            products,
            product_id,
            _NOT_DELETED,
            {"price": str(price.amount), "currency": price.currency},
        )

    async def set_quantity(
        self, product_id: str, quantity: int, expected_quantity: int
    ) -> bool:
        return await guarded_update(
            self._session,
            products,
            product_id,
            sa.and_(products.c.quantity == expected_quantity, _NOT_DELETED),
            {"quantity": quantity, "status": status_for_quantity(quantity).value},
        )

    async def conditional_decrement(self, product_id: str, amount: int) -> bool:
        remaining = products.c.quantity - amount
        return await guarded_update(
            self._session,
            products,
            product_id,
            sa.and_(products.c.quantity >= amount, _NOT_DELETED),
            {
                "quantity": remaining,
                "status": sa.case(
                    (remaining == 0, ProductStatus.SOLD_OUT.value),
                    else_=products.c.status,
                ),
            },
        )

    async def conditional_increment(self, product_id: str, amount: int) -> bool:
        return await guarded_update(
            self._session,
            products,
            product_id,
            None,
            {
                "quantity": products.c.quantity + amount,
                "status": sa.case(
                    (
                        products.c.status == ProductStatus.SOLD_OUT.value,
                        ProductStatus.AVAILABLE.value,
                    ),
                    else_=products.c.status,
                ),
            },
        )

    async def set_status(self, product_id: str, status: ProductStatus) -> None:
        await guarded_update(
            self._session, products, product_id, None, {"status": status.value}
        )


# --- Serialization helpers ----------------------------------------------------


def _to_product(row) -> Product:
    return Product(
        id=row["id"],
        name=row["name"],
        price=Money(Decimal(row["price"]), row["currency"]),
        quantity=row["quantity"],
        seller_id=row["seller_id"],
        status=ProductStatus(row["status"]),
    )


def _to_row(product: Product) -> dict:
    return {
        "id": product.id,
        "name": product.name,
        "price": str(product.price.amount),
        "currency": product.price.currency,
        "quantity": product.quantity,
        "seller_id": product.seller_id,
        "status": product.status.value,
    }
