"""Abstract repository for Product aggregate.

Defined in the domain layer so the domain never depends on
infrastructure. Concrete implementations (SQL, in-memory)
live in the infrastructure layer and the test fakes.

Stock is never written with a blind read-modify-write: the
``conditional_*`` operations and ``set_quantity`` are compare-and-swap
writes evaluated by the store at write time.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from marketplace.domain.model.product import Product, ProductStatus
from marketplace.domain.model.value_objects import Money


class ProductRepository(ABC):

    @abstractmethod
    async def get_by_id(self, product_id: str) -> Product | None:
        """Return a product by its ID, or None if not found."""

    @abstractmethod
    async def find_by_ids(self, product_ids: list[str]) -> list[Product]:
        """Return every existing product among *product_ids* in one read."""

    @abstractmethod
    async def list_by_seller(self, seller_id: str) -> list[Product]:
        """Return every listing owned by a farmer."""

    @abstractmethod
    async def list_all(self) -> list[Product]:
        """Return every product in the catalog."""

    @abstractmethod
    async def add(self, product: Product) -> None:
        """Persist a new product."""

    @abstractmethod
    async def update_price(self, product_id: str, price: Money) -> bool:
        """Write only the price of a listing that is not deleted.

        Returns False when the product is gone or deleted.
        """

    @abstractmethod
    async def set_quantity(
        self, product_id: str, quantity: int, expected_quantity: int
    ) -> bool:
        """Seller restock: overwrite the quantity and recompute the status.

        Applied only while the stored quantity still equals
        *expected_quantity* and the listing is not deleted, so a reservation
        that committed after the seller read the product is never undone.
        Returns False, changing nothing, otherwise.
        """

    @abstractmethod
    async def conditional_decrement(self, product_id: str, amount: int) -> bool:
        """Take *amount* units if at least that many are still available.

        Flips the product to sold out in the same write when it reaches zero.
        Returns False, changing nothing, when the guard no longer holds or the
        product is gone or deleted.
        """

    @abstractmethod
    async def conditional_increment(self, product_id: str, amount: int) -> bool:
        """Give back *amount* units; a sold-out product becomes available.

        Returns False when the product no longer exists.
        """

    @abstractmethod
    async def set_status(self, product_id: str, status: ProductStatus) -> None:
        """Overwrite the listing status."""
