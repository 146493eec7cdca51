"""
Snippe payment provider.
Creates hosted checkout sessions; Snippe reports the outcome later through
a signed webhook (see services/payment_webhook_service.py).
"""
from typing import Optional
import logging
import time

import httpx

from reelforge.providers.base import PaymentProvider, CheckoutSession, ProviderError
from reelforge.config import settings
from reelforge.utils.metrics import (
    provider_requests_total,
    provider_failures_total,
    provider_latency_seconds,
)
from reelforge.utils.logging import log_provider_request, log_provider_failure

logger = logging.getLogger(__name__)


class SnippeProvider(PaymentProvider):
    """Snippe checkout sessions over its REST API."""

    name = "snippe"

    def __init__(
        self,
        api_key: Optional[str] = None,
        api_url: Optional[str] = None,
        app_url: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.api_key = api_key if api_key is not None else settings.snippe_api_key
        self.api_url = (api_url or settings.snippe_api_url).rstrip("/")
        self.app_url = (app_url or settings.app_url).rstrip("/")
        self.timeout = timeout if timeout is not None else settings.provider_timeout_seconds
        self._transport = transport

    def is_configured(self) -> bool:
        return bool(self.api_key)

    async def create_checkout_session(
        self,
        amount: int,
        currency: str,
        reference: str,
        idempotency_key: str,
        customer_email: Optional[str] = None,
        description: Optional[str] = None,
    ) -> CheckoutSession:
        """
        Create a Snippe payment and return its hosted checkout URL.

        The Idempotency-Key header makes retries of the same payment return
        the same session instead of opening a second one.
        """
        if not self.is_configured():
            raise ProviderError("SNIPPE_API_KEY is not set")

        operation = "create_checkout"
        start_time = time.time()
        provider_requests_total.labels(provider=self.name, operation=operation).inc()

        payload = {
            "amount": amount,
            "currency": currency,
            "reference": reference,  # Our payment ID, echoed back in webhooks
            "webhook_url": f"{self.app_url}/api/webhooks/snippe",
            "success_url": f"{self.app_url}/payment/success",
            "cancel_url": f"{self.app_url}/payment/cancel",
        }
        if customer_email:
            payload["customer"] = {"email": customer_email}
        if description:
            payload["description"] = description

        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                response = await client.post(
                    f"{self.api_url}/v1/payments",
                    headers={
                        "Authorization": f"Bearer {self.api_key}",
                        "Idempotency-Key": idempotency_key,
                    },
                    json=payload,
                )
        except httpx.HTTPError as e:
            self._record_failure(operation, start_time, f"request failed: {e}")
            raise ProviderError(f"Snippe request failed: {e}") from e

        if not response.is_success:
            message = f"Snippe API error: {response.status_code} {response.text[:500]}"
            self._record_failure(operation, start_time, message)
            raise ProviderError(message, status_code=response.status_code)

        try:
            data = response.json()
        except ValueError as e:
            self._record_failure(operation, start_time, "invalid JSON in response")
            raise ProviderError("Snippe API returned invalid JSON") from e

        checkout_url = data.get("checkout_url") or data.get("payment_url")
        if not checkout_url:
            self._record_failure(operation, start_time, "no checkout URL in response")
            raise ProviderError("Snippe API response did not include a checkout URL")

        latency = time.time() - start_time
        provider_latency_seconds.labels(provider=self.name, operation=operation).observe(latency)
        log_provider_request(
            logger,
            provider=self.name,
            operation=operation,
            duration_ms=latency * 1000,
            payment_id=reference,
        )
        return CheckoutSession(session_id=data.get("id"), checkout_url=checkout_url)

    def _record_failure(self, operation: str, start_time: float, error: str):
        latency = time.time() - start_time
        provider_failures_total.labels(provider=self.name, operation=operation).inc()
        provider_latency_seconds.labels(provider=self.name, operation=operation).observe(latency)
        log_provider_failure(
            logger,
            provider=self.name,
            operation=operation,
            error=error,
            duration_ms=latency * 1000,
        )
