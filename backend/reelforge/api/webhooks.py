"""
Webhook endpoints for payment providers.
Signatures are checked over the raw request body, before any parsing.
"""
from typing import Optional

from fastapi import APIRouter, Depends, Request, Header
from sqlalchemy.ext.asyncio import AsyncSession

from reelforge.database import get_db
from reelforge.schemas.payment import WebhookResponse
from reelforge.services.payment_webhook_service import PaymentWebhookService

router = APIRouter()


@router.post("/snippe", response_model=WebhookResponse, response_model_exclude_none=True)
async def snippe_webhook(
    request: Request,
    db: AsyncSession = Depends(get_db),
    snippe_signature: Optional[str] = Header(None, alias="X-Snippe-Signature"),
):
    """
    Snippe webhook endpoint.

    Handles:
    - payment.succeeded: marks the payment paid and grants its credits
    - payment.failed: marks the payment failed

    Replays of an already applied event are acknowledged without effect.
    """
    body = await request.body()
    result = await PaymentWebhookService.handle(db, body, snippe_signature)
    return WebhookResponse(**result.to_dict())


@router.post("/stripe", response_model=WebhookResponse, response_model_exclude_none=True)
async def stripe_webhook(
    request: Request,
    db: AsyncSession = Depends(get_db),
    stripe_signature: Optional[str] = Header(None, alias="stripe-signature"),
):
    """
    Stripe webhook endpoint.

    checkout.session.completed grants credits; checkout.session.expired and
    payment_intent.payment_failed mark the payment failed.
    """
    body = await request.body()
    result = await PaymentWebhookService.handle_stripe(db, body, stripe_signature)
    return WebhookResponse(**result.to_dict())
