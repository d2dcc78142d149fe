"""Domain-level exceptions.

All business rule violations are expressed as subclasses of DomainException
so the CLI layer can catch them uniformly and display user-friendly messages.
Each error carries the structured detail a caller needs to render a precise
message (offending product, shortfall, current status) and nothing about the
storage layer underneath.
"""

from __future__ import annotations


class DomainException(Exception):
    """Base class for all domain errors."""

    retryable = False


class ValidationError(DomainException):
    """Malformed or missing input. Raised before the store is touched."""


class NotFoundError(DomainException):
    """A referenced entity does not exist."""

    def __init__(self, message: str, entity_id: str | None = None) -> None:
        super().__init__(message)
        self.entity_id = entity_id


class InsufficientStockError(DomainException):
    """Requested quantity exceeds the quantity available at validation time."""

    def __init__(self, product_id: str, product_name: str, requested: int, available: int) -> None:
        super().__init__(
            f"Insufficient stock for {product_name} "
            f"(requested {requested}, available {available})"
        )
        self.product_id = product_id
        self.requested = requested
        self.available = available

    @property
    def shortfall(self) -> int:
        return self.requested - self.available


class ConcurrentModificationError(DomainException):
    """Lost a race against another writer. Retry with fresh data."""

    retryable = True

    def __init__(self, message: str, entity_id: str | None = None) -> None:
        super().__init__(message)
        self.entity_id = entity_id


class InvalidStateError(DomainException):
    """The operation is not legal for the order's current status."""

    def __init__(self, message: str, current_status: str | None = None) -> None:
        super().__init__(message)
        self.current_status = current_status


class PaymentMismatchError(DomainException):
    """Gateway-asserted amount disagrees with the stored order total."""

    def __init__(self, order_id: str, expected: str, asserted: str) -> None:
        super().__init__(
            f"Payment amount {asserted} does not match order #{order_id} total {expected}"
        )
        self.order_id = order_id
        self.expected = expected
        self.asserted = asserted


class PaymentVerificationError(DomainException):
    """The gateway refused to verify the payment."""


class PermissionDeniedError(DomainException):
    """The actor may not act on the resource."""
