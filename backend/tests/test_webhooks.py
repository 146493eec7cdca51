"""
Tests for payment webhook verification and idempotent application.
"""
import hashlib
import hmac
import json
from unittest.mock import AsyncMock

import pytest
import stripe
from sqlalchemy.ext.asyncio import AsyncSession

from reelforge.config import settings
from reelforge.errors import InvalidInput, Unauthorized
from reelforge.models.payment import Payment, PaymentStatus
from reelforge.models.webhook_event import WebhookEvent
from reelforge.repositories.payment_repository import PaymentRepository
from reelforge.services.credit_service import CreditService
from reelforge.services.payment_webhook_service import PaymentWebhookService, map_stripe_event

from tests.fakes import WEBHOOK_SECRET


def sign(body: bytes, secret: str = WEBHOOK_SECRET) -> str:
    return hmac.new(secret.encode(), body, hashlib.sha256).hexdigest()


def event_body(event_id: str, event_type: str, reference, provider_ref: str = "sn_pay_1") -> bytes:
    return json.dumps({
        "id": event_id,
        "type": event_type,
        "data": {"reference": reference, "id": provider_ref},
    }).encode()


class TestSignatureVerification:
    """Tests for HMAC verification."""

    def test_valid_signature(self):
        body = b'{"id": "evt_1"}'
        PaymentWebhookService.verify_signature(body, sign(body), WEBHOOK_SECRET)

    def test_signature_over_exact_bytes(self):
        body = b'{"id": "evt_1"}'
        reformatted = b'{"id":"evt_1"}'
        with pytest.raises(Unauthorized):
            PaymentWebhookService.verify_signature(reformatted, sign(body), WEBHOOK_SECRET)

    def test_wrong_secret(self):
        body = b'{"id": "evt_1"}'
        with pytest.raises(Unauthorized):
            PaymentWebhookService.verify_signature(body, sign(body, "other"), WEBHOOK_SECRET)

    @pytest.mark.parametrize("signature", ["sig\u00e9", "abc\xe9", "\u2603" * 64])
    def test_non_ascii_signature_rejected(self, signature):
        with pytest.raises(Unauthorized):
            PaymentWebhookService.verify_signature(b'{"id": "e"}', signature, WEBHOOK_SECRET)

    @pytest.mark.parametrize("signature,secret", [(None, WEBHOOK_SECRET), ("", WEBHOOK_SECRET), ("abc", None)])
    def test_missing_signature_or_secret(self, signature, secret):
        with pytest.raises(Unauthorized):
            PaymentWebhookService.verify_signature(b"{}", signature, secret)


class TestPaymentWebhookService:
    """Tests for PaymentWebhookService.handle / apply_event."""

    async def _handle(self, db_session, body: bytes):
        return await PaymentWebhookService.handle(db_session, body, sign(body), secret=WEBHOOK_SECRET)

    @pytest.mark.asyncio
    async def test_payment_succeeded_credits_once(self, db_session: AsyncSession, pending_payment: Payment):
        payment_id, user_id = pending_payment.id, pending_payment.user_id
        body = event_body("evt_1", "payment.succeeded", payment_id)

        result = await self._handle(db_session, body)
        assert result.status == "processed"
        assert result.payment_id == payment_id
        assert await CreditService.get_balance(db_session, user_id) == 15

        payment = await PaymentRepository.get_payment(db_session, payment_id)
        assert payment.status == PaymentStatus.PAID
        assert payment.provider_ref == "sn_pay_1"
        assert payment.completed_at is not None

        # Replay of the same event
        replay = await self._handle(db_session, body)
        assert replay.status == "already_processed"
        assert await CreditService.get_balance(db_session, user_id) == 15

    @pytest.mark.asyncio
    async def test_concurrent_redelivery_rolls_back(
        self, db_session: AsyncSession, pending_payment: Payment, monkeypatch
    ):
        """The unique event row decides, even when the pre-check missed it."""
        payment_id, user_id = pending_payment.id, pending_payment.user_id
        db_session.add(WebhookEvent(event_id="evt_race", provider="snippe", event_type="payment.succeeded"))
        await db_session.commit()
        monkeypatch.setattr(PaymentRepository, "event_exists", AsyncMock(return_value=False))

        result = await self._handle(db_session, event_body("evt_race", "payment.succeeded", payment_id))

        assert result.status == "already_processed"
        assert await CreditService.get_balance(db_session, user_id) == 5
        payment = await PaymentRepository.get_payment(db_session, payment_id)
        assert payment.status == PaymentStatus.PENDING

    @pytest.mark.asyncio
    async def test_payment_failed(self, db_session: AsyncSession, pending_payment: Payment):
        payment_id, user_id = pending_payment.id, pending_payment.user_id

        result = await self._handle(db_session, event_body("evt_f", "payment.failed", payment_id))

        assert result.status == "processed"
        payment = await PaymentRepository.get_payment(db_session, payment_id)
        assert payment.status == PaymentStatus.FAILED
        assert await CreditService.get_balance(db_session, user_id) == 5
        assert await PaymentRepository.event_exists(db_session, "evt_f")

    @pytest.mark.asyncio
    async def test_success_after_failure_is_noop(self, db_session: AsyncSession, pending_payment: Payment):
        payment_id, user_id = pending_payment.id, pending_payment.user_id
        await self._handle(db_session, event_body("evt_f", "payment.failed", payment_id))

        result = await self._handle(db_session, event_body("evt_s", "payment.succeeded", payment_id))

        assert result.status == "processed"
        assert await CreditService.get_balance(db_session, user_id) == 5
        payment = await PaymentRepository.get_payment(db_session, payment_id)
        assert payment.status == PaymentStatus.FAILED
        assert await PaymentRepository.event_exists(db_session, "evt_s")

    @pytest.mark.asyncio
    async def test_unknown_reference_recorded_as_noop(self, db_session: AsyncSession, test_user):
        user_id = test_user.id

        result = await self._handle(db_session, event_body("evt_x", "payment.succeeded", "no-such-payment"))

        assert result.status == "processed"
        assert result.payment_id is None
        assert await PaymentRepository.event_exists(db_session, "evt_x")
        assert await CreditService.get_balance(db_session, user_id) == 5

    @pytest.mark.asyncio
    async def test_unknown_type_ignored(self, db_session: AsyncSession, pending_payment: Payment):
        payment_id = pending_payment.id

        result = await self._handle(db_session, event_body("evt_r", "payment.refunded", payment_id))

        assert result.status == "ignored"
        assert not await PaymentRepository.event_exists(db_session, "evt_r")
        payment = await PaymentRepository.get_payment(db_session, payment_id)
        assert payment.status == PaymentStatus.PENDING

    @pytest.mark.asyncio
    async def test_bad_signature_changes_nothing(self, db_session: AsyncSession, pending_payment: Payment):
        payment_id, user_id = pending_payment.id, pending_payment.user_id
        body = event_body("evt_1", "payment.succeeded", payment_id)

        with pytest.raises(Unauthorized):
            await PaymentWebhookService.handle(db_session, body, "0" * 64, secret=WEBHOOK_SECRET)

        assert await CreditService.get_balance(db_session, user_id) == 5
        assert not await PaymentRepository.event_exists(db_session, "evt_1")

    @pytest.mark.asyncio
    async def test_invalid_json(self, db_session: AsyncSession):
        body = b"not json"
        with pytest.raises(InvalidInput):
            await self._handle(db_session, body)

    @pytest.mark.asyncio
    @pytest.mark.parametrize("event", [{"type": "payment.succeeded"}, {"id": "evt_1"}, ["evt_1"]])
    async def test_missing_id_or_type(self, db_session: AsyncSession, event):
        with pytest.raises(InvalidInput):
            await self._handle(db_session, json.dumps(event).encode())

    @pytest.mark.asyncio
    async def test_stripe_checkout_completed(self, db_session: AsyncSession, pending_payment: Payment, monkeypatch):
        payment_id, user_id = pending_payment.id, pending_payment.user_id
        stripe_event = {
            "id": "evt_stripe_1",
            "type": "checkout.session.completed",
            "data": {"object": {"id": "cs_test_1", "client_reference_id": payment_id}},
        }
        monkeypatch.setattr(stripe.Webhook, "construct_event", lambda body, sig, secret: stripe_event)

        result = await PaymentWebhookService.handle_stripe(db_session, b"{}", "t=1,v1=abc", secret="whsec_stripe")

        assert result.status == "processed"
        assert await CreditService.get_balance(db_session, user_id) == 15
        payment = await PaymentRepository.get_payment(db_session, payment_id)
        assert payment.provider_ref == "cs_test_1"

    @pytest.mark.asyncio
    async def test_stripe_bad_signature(self, db_session: AsyncSession, monkeypatch):
        def raise_signature_error(body, sig, secret):
            raise stripe.SignatureVerificationError("bad", sig)

        monkeypatch.setattr(stripe.Webhook, "construct_event", raise_signature_error)

        with pytest.raises(Unauthorized):
            await PaymentWebhookService.handle_stripe(db_session, b"{}", "t=1,v1=abc", secret="whsec_stripe")

    @pytest.mark.asyncio
    async def test_stripe_missing_secret(self, db_session: AsyncSession, monkeypatch):
        monkeypatch.setattr(settings, "stripe_webhook_secret", None)
        with pytest.raises(Unauthorized):
            await PaymentWebhookService.handle_stripe(db_session, b"{}", "t=1,v1=abc")


class TestStripeEventMapping:
    """Tests for map_stripe_event."""

    def test_checkout_completed(self):
        mapped = map_stripe_event({
            "id": "evt_1",
            "type": "checkout.session.completed",
            "data": {"object": {"id": "cs_1", "client_reference_id": "pay_1"}},
        })
        assert mapped == {"id": "evt_1", "type": "payment.succeeded", "data": {"reference": "pay_1", "id": "cs_1"}}

    def test_checkout_expired(self):
        mapped = map_stripe_event({
            "id": "evt_2",
            "type": "checkout.session.expired",
            "data": {"object": {"id": "cs_1", "client_reference_id": "pay_1"}},
        })
        assert mapped["type"] == "payment.failed"

    def test_payment_intent_failed_uses_metadata(self):
        mapped = map_stripe_event({
            "id": "evt_3",
            "type": "payment_intent.payment_failed",
            "data": {"object": {"id": "pi_1", "metadata": {"payment_id": "pay_1"}}},
        })
        assert mapped["type"] == "payment.failed"
        assert mapped["data"]["reference"] == "pay_1"

    def test_other_types_pass_through(self):
        mapped = map_stripe_event({
            "id": "evt_4",
            "type": "customer.created",
            "data": {"object": {"id": "cus_1"}},
        })
        assert mapped["type"] == "customer.created"
