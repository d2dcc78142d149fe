"""HTTP client for the payment verification service.

POSTs ``{token, amount, reference}`` to ``<base_url>/verify`` and maps the
JSON answer ``{verified, gateway_ref, amount, reason}``.

Retry policy: transport errors and HTTP 5xx are retried with exponential
backoff; after the last try the error is raised to the caller. Any other
non-2xx status is raised immediately.
"""

from __future__ import annotations

import asyncio
import logging
from decimal import Decimal, InvalidOperation

import httpx

from marketplace.domain.port.payment_gateway import GatewayVerification, PaymentGateway

logger = logging.getLogger(__name__)


def _should_retry(resp: httpx.Response | None, exc: Exception | None) -> bool:
    if exc is not None:
        return True
    return resp is not None and 500 <= resp.status_code < 600


class HttpPaymentGateway(PaymentGateway):

    def __init__(
        self,
        base_url: str,
        timeout: float = 10.0,
        max_retries: int = 3,
        backoff: float = 0.15,
        max_sleep: float = 2.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.max_retries = max(1, max_retries)
        self.backoff = backoff
        self.max_sleep = max_sleep
        self._transport = transport

    async def verify(
        self, token: str, claimed_amount: Decimal, reference: str | None = None
    ) -> GatewayVerification:
        payload = {"token": token, "amount": str(claimed_amount), "reference": reference}
        tries = 0

        async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
            while True:
                resp = None
                exc = None
                try:
                    resp = await client.post(f"{self.base_url}/verify", json=payload)
                    if resp.is_success:
                        return _to_verification(resp.json())
                    if not _should_retry(resp, None):
                        resp.raise_for_status()
                except httpx.RequestError as e:
                    exc = e

                tries += 1
                if tries >= self.max_retries:
                    logger.warning(
                        "payment gateway unavailable",
                        extra={"reference": reference, "tries": tries},
                    )
                    if exc is not None:
                        raise exc
                    resp.raise_for_status()

                await asyncio.sleep(min(self.backoff * (2 ** (tries - 1)), self.max_sleep))


def _to_verification(data: dict) -> GatewayVerification:
    amount = data.get("amount")
    try:
        parsed = Decimal(str(amount)) if amount is not None else None
    except InvalidOperation:
        parsed = None
    return GatewayVerification(
        verified=bool(data.get("verified", False)),
        gateway_ref=data.get("gateway_ref"),
        amount=parsed,
        reason=data.get("reason"),
    )
