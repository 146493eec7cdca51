"""
Stripe payment provider.
Opens Stripe Checkout Sessions for credit purchases. Our payment ID travels
as client_reference_id and comes back in checkout.session.* webhook events.
"""
from typing import Optional
import logging
import time

import stripe
from starlette.concurrency import run_in_threadpool

from reelforge.providers.base import PaymentProvider, CheckoutSession, ProviderError
from reelforge.config import settings
from reelforge.utils.metrics import provider_requests_total, provider_failures_total
from reelforge.utils.logging import log_provider_request, log_provider_failure

logger = logging.getLogger(__name__)


class StripeProvider(PaymentProvider):
    """Service for Stripe checkout operations."""

    name = "stripe"

    def __init__(self, secret_key: Optional[str] = None, app_url: Optional[str] = None):
        """Initialize Stripe with API key."""
        self.secret_key = secret_key if secret_key is not None else settings.stripe_secret_key
        self.app_url = (app_url or settings.app_url).rstrip("/")
        if not self.secret_key:
            logger.warning("Stripe secret key not configured")

    def is_configured(self) -> bool:
        return bool(self.secret_key)

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
        Create a Stripe Checkout Session for a pending payment.

        Raises:
            ProviderError: If Stripe is not configured or the API call fails
        """
        if not self.is_configured():
            raise ProviderError("Stripe is not configured")

        operation = "create_checkout"
        start_time = time.time()
        provider_requests_total.labels(provider=self.name, operation=operation).inc()

        try:
            # The SDK is synchronous; keep it off the event loop
            checkout_session = await run_in_threadpool(
                stripe.checkout.Session.create,
                api_key=self.secret_key,
                mode="payment",
                line_items=[
                    {
                        "price_data": {
                            "currency": currency.lower(),
                            "unit_amount": amount,
                            "product_data": {"name": description or "Video credits"},
                        },
                        "quantity": 1,
                    }
                ],
                success_url=f"{self.app_url}/payment/success",
                cancel_url=f"{self.app_url}/payment/cancel",
                client_reference_id=reference,
                metadata={"payment_id": reference},
                payment_intent_data={"metadata": {"payment_id": reference}},
                customer_email=customer_email,
                idempotency_key=idempotency_key,
            )
        except stripe.StripeError as e:
            provider_failures_total.labels(provider=self.name, operation=operation).inc()
            log_provider_failure(
                logger,
                provider=self.name,
                operation=operation,
                error=str(e),
                duration_ms=(time.time() - start_time) * 1000,
            )
            raise ProviderError(f"Payment service error: {e}") from e

        log_provider_request(
            logger,
            provider=self.name,
            operation=operation,
            duration_ms=(time.time() - start_time) * 1000,
            payment_id=reference,
        )
        return CheckoutSession(session_id=checkout_session.id, checkout_url=checkout_session.url)
