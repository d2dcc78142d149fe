"""Port for the external payment gateways (eSewa, Khalti).

The core never talks to a gateway's API directly; it asks this port to
verify an assertion the buyer's client brought back from checkout.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from decimal import Decimal


@dataclass(frozen=True)
class GatewayAssertion:
    """What the buyer's client hands back after paying at the gateway."""

    token: str
    amount: Decimal


@dataclass(frozen=True)
class GatewayVerification:
    verified: bool
    gateway_ref: str | None
    amount: Decimal | None
    reason: str | None = None


class PaymentGateway(ABC):

    @abstractmethod
    async def verify(
        self, token: str, claimed_amount: Decimal, reference: str | None = None
    ) -> GatewayVerification:
        """Ask the gateway whether *token* settled *claimed_amount*."""
