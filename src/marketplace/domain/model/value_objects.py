"""Value objects for prices, quantities and delivery details.

All of them are frozen dataclasses that validate on construction, so an
instance that exists is always usable.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Iterable

from marketplace.domain.exceptions import ValidationError

DEFAULT_CURRENCY = "NPR"

_PAISA = Decimal("0.01")


@dataclass(frozen=True)
class Money:
    """A non-negative rupee amount.

    Prices are entered with at most paisa precision, so arithmetic stays
    in ``Decimal`` and only display rounds.
    """

    amount: Decimal
    currency: str = DEFAULT_CURRENCY

    def __post_init__(self) -> None:
        if not isinstance(self.amount, Decimal):
            raise ValidationError(
                f"Money amount must be a Decimal, got {type(self.amount).__name__}"
            )
        if self.amount.is_signed() and self.amount != 0:
            raise ValidationError(f"Money amount cannot be negative, got {self.amount}")

    @classmethod
    def of(cls, amount: str | float | int | Decimal, currency: str = DEFAULT_CURRENCY) -> Money:
        try:
            value = Decimal(str(amount).strip())
        except (InvalidOperation, ValueError) as exc:
            raise ValidationError(f"Invalid money amount: {amount!r}") from exc
        if not value.is_finite():
            raise ValidationError(f"Invalid money amount: {amount!r}")
        return cls(value, currency)

    @classmethod
    def zero(cls, currency: str = DEFAULT_CURRENCY) -> Money:
        return cls(Decimal("0.00"), currency)

    @classmethod
    def total(cls, amounts: Iterable[Money], currency: str = DEFAULT_CURRENCY) -> Money:
        """Sum ``amounts``; an empty iterable gives zero in ``currency``."""
        result = cls.zero(currency)
        for amount in amounts:
            result = result + amount
        return result

    def __add__(self, other: Money) -> Money:
        self._same_currency(other)
        return Money(self.amount + other.amount, self.currency)

    def __mul__(self, factor: int) -> Money:
        if not isinstance(factor, int) or isinstance(factor, bool):
            raise TypeError(f"Can only multiply Money by int, got {type(factor).__name__}")
        return Money(self.amount * factor, self.currency)

    def __lt__(self, other: Money) -> bool:
        self._same_currency(other)
        return self.amount < other.amount

    def __le__(self, other: Money) -> bool:
        self._same_currency(other)
        return self.amount <= other.amount

    def plain(self) -> str:
        """Amount rounded to paisa, without the currency code."""
        return str(self.amount.quantize(_PAISA, rounding=ROUND_HALF_UP))

    def __str__(self) -> str:
        return f"{self.currency} {self.plain()}"

    def _same_currency(self, other: Money) -> None:
        if self.currency != other.currency:
            raise ValidationError(f"Cannot combine {self.currency} with {other.currency}")


@dataclass(frozen=True)
class Quantity:
    """Units of one product on an order line; always a positive int."""

    value: int

    def __post_init__(self) -> None:
        # bool is an int subclass
        if isinstance(self.value, bool) or not isinstance(self.value, int):
            raise ValidationError(
                f"Quantity must be an integer, got {type(self.value).__name__}"
            )
        if self.value < 1:
            raise ValidationError("Quantity must be positive")

    def __str__(self) -> str:
        return str(self.value)


@dataclass(frozen=True)
class DeliveryAddress:
    """Where the buyer wants the order delivered.

    Only presence is validated. Geocoding belongs to the location service.
    """

    region: str
    city: str
    street: str

    def __post_init__(self) -> None:
        for field_name in ("region", "city", "street"):
            value = getattr(self, field_name)
            if not isinstance(value, str) or not value.strip():
                raise ValidationError(f"Delivery address {field_name} is required")

    def to_dict(self) -> dict[str, str]:
        return {"region": self.region, "city": self.city, "street": self.street}

    @staticmethod
    def from_dict(raw: dict | None) -> DeliveryAddress:
        if not raw:
            raise ValidationError("Delivery address is required")
        return DeliveryAddress(
            region=raw.get("region", ""),
            city=raw.get("city", ""),
            street=raw.get("street", ""),
        )

    def __str__(self) -> str:
        return f"{self.street}, {self.city}, {self.region}"


@dataclass(frozen=True)
class CartLine:
    """One requested (product, quantity) pair, as submitted by the buyer.

    Quantity is kept as a raw int here so the reservation engine can report
    a precise error for the offending line.
    """

    product_id: str
    quantity: int
