"""
Payment webhook service.

Verifies payment-provider notifications and applies each event at most
once. The processed-event row, the payment status change and the credit
grant are written in one transaction; the unique event_id makes a
concurrent redelivery fail as a whole.
"""
import hashlib
import hmac
import json
import logging
from dataclasses import dataclass, asdict
from typing import Any, Dict, Optional

import stripe
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from reelforge.config import settings
from reelforge.errors import InvalidInput, Unauthorized, Internal
from reelforge.models.payment import PaymentStatus
from reelforge.repositories.payment_repository import PaymentRepository
from reelforge.services.credit_service import CreditService
from reelforge.utils.logging import log_webhook_event
from reelforge.utils.metrics import webhook_events_total, credits_purchased_total

logger = logging.getLogger(__name__)

PAYMENT_SUCCEEDED = "payment.succeeded"
PAYMENT_FAILED = "payment.failed"
HANDLED_EVENT_TYPES = (PAYMENT_SUCCEEDED, PAYMENT_FAILED)

# Stripe event type -> our event type
STRIPE_EVENT_TYPES = {
    "checkout.session.completed": PAYMENT_SUCCEEDED,
    "checkout.session.expired": PAYMENT_FAILED,
    "payment_intent.payment_failed": PAYMENT_FAILED,
}


@dataclass
class WebhookResult:
    """Outcome of a webhook delivery: processed, already_processed or ignored."""
    status: str
    event_id: Optional[str] = None
    payment_id: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {k: v for k, v in asdict(self).items() if v is not None}


def map_stripe_event(event: Dict[str, Any]) -> Dict[str, Any]:
    """
    Translate a verified Stripe event into the {id, type, data} shape.

    Our payment ID travels as client_reference_id on checkout sessions and
    as metadata.payment_id on payment intents.
    """
    obj = event["data"]["object"]
    metadata = obj.get("metadata") or {}
    return {
        "id": event["id"],
        "type": STRIPE_EVENT_TYPES.get(event["type"], event["type"]),
        "data": {
            "reference": obj.get("client_reference_id") or metadata.get("payment_id"),
            "id": obj.get("id"),
        },
    }


class PaymentWebhookService:
    """Service for verifying and applying payment provider events."""

    @staticmethod
    def verify_signature(raw_body: bytes, signature: Optional[str], secret: Optional[str]) -> None:
        """
        Check an HMAC-SHA256 hex signature over the exact received bytes.

        Raises:
            Unauthorized: If the secret or signature is missing, or they don't match
        """
        if not secret:
            logger.error("Webhook secret not configured, rejecting delivery")
            raise Unauthorized("Webhook secret not configured")
        if not signature:
            raise Unauthorized("Missing signature")

        expected = hmac.new(secret.encode("utf-8"), raw_body, hashlib.sha256).hexdigest()
        # Bytes, since compare_digest raises TypeError on non-ASCII str
        received = signature.strip().encode("utf-8", "surrogateescape")
        if not hmac.compare_digest(expected.encode("ascii"), received):
            raise Unauthorized("Invalid signature")

    @staticmethod
    async def handle(
        db: AsyncSession,
        raw_body: bytes,
        signature: Optional[str],
        secret: Optional[str] = None,
    ) -> WebhookResult:
        """
        Verify and apply a Snippe webhook delivery.

        Raises:
            Unauthorized: Bad or missing signature; nothing is read or written
            InvalidInput: Body is not a JSON event with id and type
        """
        secret = secret if secret is not None else settings.snippe_webhook_secret
        try:
            PaymentWebhookService.verify_signature(raw_body, signature, secret)
        except Unauthorized:
            webhook_events_total.labels(provider="snippe", outcome="rejected").inc()
            raise

        try:
            event = json.loads(raw_body)
        except (ValueError, UnicodeDecodeError) as e:
            raise InvalidInput("Invalid JSON payload") from e

        return await PaymentWebhookService.apply_event(db, event, provider="snippe")

    @staticmethod
    async def handle_stripe(
        db: AsyncSession,
        raw_body: bytes,
        signature: Optional[str],
        secret: Optional[str] = None,
    ) -> WebhookResult:
        """
        Verify a Stripe delivery with the Stripe SDK and apply it.

        Raises:
            Unauthorized: Bad or missing Stripe signature
            InvalidInput: Unparseable payload
        """
        secret = secret if secret is not None else settings.stripe_webhook_secret
        if not secret or not signature:
            webhook_events_total.labels(provider="stripe", outcome="rejected").inc()
            raise Unauthorized("Missing Stripe signature or webhook secret")

        try:
            event = stripe.Webhook.construct_event(raw_body, signature, secret)
        except ValueError as e:
            raise InvalidInput(f"Invalid payload: {e}") from e
        except stripe.SignatureVerificationError as e:
            webhook_events_total.labels(provider="stripe", outcome="rejected").inc()
            raise Unauthorized("Invalid signature") from e

        return await PaymentWebhookService.apply_event(db, map_stripe_event(event), provider="stripe")

    @staticmethod
    async def apply_event(db: AsyncSession, event: Any, provider: str = "snippe") -> WebhookResult:
        """
        Apply a verified event at most once.

        - payment.succeeded: pending -> paid and credits granted, together
          with the processed-event row
        - payment.failed: pending -> failed, no ledger effect
        - anything else: acknowledged and ignored, nothing recorded

        Raises:
            InvalidInput: If the event has no id or type
            Internal: On store failure (rolled back)
        """
        if not isinstance(event, dict):
            raise InvalidInput("Event must be a JSON object")

        event_id = event.get("id")
        event_type = event.get("type")
        if not event_id or not isinstance(event_id, str) or not event_type:
            raise InvalidInput("Event is missing id or type")

        data = event.get("data") or {}
        if not isinstance(data, dict):
            data = {}
        reference = data.get("reference")

        if event_type not in HANDLED_EVENT_TYPES:
            webhook_events_total.labels(provider=provider, outcome="ignored").inc()
            log_webhook_event(logger, provider, event_id, event_type, outcome="ignored")
            return WebhookResult(status="ignored", event_id=event_id)

        if await PaymentRepository.event_exists(db, event_id):
            return PaymentWebhookService._already_processed(provider, event_id, event_type, reference)

        payment = None
        granted = 0
        try:
            if reference:
                payment = await PaymentRepository.get_payment(db, str(reference))

            if payment is None or payment.status != PaymentStatus.PENDING:
                logger.warning(
                    f"Webhook {event_id} references no pending payment ({reference}), recording as no-op",
                    extra={"event": "webhook_noop", "webhook_event_id": event_id, "payment_id": reference},
                )
            elif event_type == PAYMENT_SUCCEEDED:
                if await PaymentRepository.mark_paid(db, payment.id, provider_ref=data.get("id")):
                    await CreditService.credit(db, payment.user_id, payment.credits_bought)
                    granted = payment.credits_bought
            else:
                await PaymentRepository.mark_failed(db, payment.id)

            await PaymentRepository.record_event(db, event_id, provider, event_type)
            await db.commit()
        except IntegrityError:
            # Another delivery of the same event committed first
            await db.rollback()
            return PaymentWebhookService._already_processed(provider, event_id, event_type, reference)
        except (SQLAlchemyError, ValueError) as e:
            await db.rollback()
            logger.error(f"Failed to apply webhook {event_id}: {e}", exc_info=True)
            raise Internal("Failed to apply payment event") from e

        if granted:
            credits_purchased_total.inc(granted)

        payment_id = payment.id if payment else None
        webhook_events_total.labels(provider=provider, outcome="processed").inc()
        log_webhook_event(
            logger,
            provider,
            event_id,
            event_type,
            outcome="processed",
            payment_id=payment_id,
            user_id=payment.user_id if payment else None,
            credits_granted=granted,
        )
        return WebhookResult(status="processed", event_id=event_id, payment_id=payment_id)

    @staticmethod
    def _already_processed(provider: str, event_id: str, event_type: str, reference: Any) -> WebhookResult:
        webhook_events_total.labels(provider=provider, outcome="already_processed").inc()
        log_webhook_event(logger, provider, event_id, event_type, outcome="already_processed")
        return WebhookResult(
            status="already_processed",
            event_id=event_id,
            payment_id=str(reference) if reference else None,
        )
