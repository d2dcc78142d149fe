"""Abstract repository for Order aggregate."""

from __future__ import annotations

from abc import ABC, abstractmethod

from marketplace.domain.model.order import Order, OrderStatus


class OrderRepository(ABC):

    @abstractmethod
    async def add(self, order: Order) -> None:
        """Insert a newly placed order."""

    @abstractmethod
    async def get_by_id(self, order_id: str) -> Order | None:
        """Return an order by its ID, or None if not found."""

    @abstractmethod
    async def update(self, order: Order, expected_status: OrderStatus) -> bool:
        """Write the mutable status and payment fields of *order*.

        The write only applies while the stored status still equals
        *expected_status*; returns False otherwise. Line items and the
        total are never rewritten.
        """

    @abstractmethod
    async def list_by_buyer(self, buyer_id: str) -> list[Order]:
        """Return a buyer's orders, newest first."""

    @abstractmethod
    async def list_by_seller(self, seller_id: str) -> list[Order]:
        """Return orders containing at least one of a farmer's products, newest first."""

    @abstractmethod
    async def has_active_for_product(self, product_id: str) -> bool:
        """True when a non-terminal order references the product."""
