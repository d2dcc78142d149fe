"""Product aggregate.

Products live independently of orders. They are owned by the farmer who
listed them: prices change, stock is topped up, listings are withdrawn.
Orders only ever borrow a "decrement" lease on the quantity field.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from marketplace.domain.exceptions import ValidationError
from marketplace.domain.model.value_objects import Money


class ProductStatus(Enum):
    AVAILABLE = "available"
    SOLD_OUT = "sold out"
    DELETED = "deleted"


@dataclass
class Product:
    """A farmer's listing in the catalog.

    Invariant: ``SOLD_OUT`` whenever ``quantity`` is zero and
    ``AVAILABLE`` only while ``quantity`` is positive. Deleted listings
    keep their status regardless of quantity.
    """

    id: str
    name: str
    price: Money
    quantity: int
    seller_id: str
    status: ProductStatus = ProductStatus.AVAILABLE

    def __post_init__(self) -> None:
        if self.price.amount <= 0:
            raise ValidationError("Product price must be greater than zero")
        if self.quantity < 0:
            raise ValidationError("Product quantity cannot be negative")
        if self.status is not ProductStatus.DELETED:
            self.status = status_for_quantity(self.quantity)

    @property
    def is_deleted(self) -> bool:
        return self.status is ProductStatus.DELETED

    def update_price(self, new_price: Money) -> None:
        """Change the product price.

        This does NOT affect any existing orders because orders
        capture a price snapshot at creation time.
        """
        if new_price.amount <= 0:
            raise ValidationError("Product price must be greater than zero")
        self.price = new_price

    def set_quantity(self, quantity: int) -> None:
        """Seller edit of the stock level."""
        if self.is_deleted:
            raise ValidationError(f"Product '{self.name}' has been deleted")
        if quantity < 0:
            raise ValidationError("Product quantity cannot be negative")
        self.quantity = quantity
        self.status = status_for_quantity(quantity)

    def delete(self) -> None:
        self.status = ProductStatus.DELETED


def status_for_quantity(quantity: int) -> ProductStatus:
    return ProductStatus.AVAILABLE if quantity > 0 else ProductStatus.SOLD_OUT
