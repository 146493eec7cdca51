"""
Repository for payments and processed webhook events.
"""
from typing import List, Optional

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from reelforge.models.base import utcnow
from reelforge.models.payment import Payment, PaymentStatus
from reelforge.models.webhook_event import WebhookEvent


class PaymentRepository:
    """Repository for payment database operations."""

    @staticmethod
    async def create_payment(
        db: AsyncSession,
        user_id: str,
        amount: int,
        currency: str,
        credits_bought: int,
        idempotency_key: str,
        provider: str,
        package_id: Optional[str] = None,
    ) -> Payment:
        """Create a pending payment (flushed, not committed)."""
        payment = Payment(
            user_id=user_id,
            amount=amount,
            currency=currency,
            credits_bought=credits_bought,
            idempotency_key=idempotency_key,
            provider=provider,
            package_id=package_id,
            status=PaymentStatus.PENDING,
        )
        db.add(payment)
        await db.flush()
        return payment

    @staticmethod
    async def get_payment(db: AsyncSession, payment_id: str) -> Optional[Payment]:
        result = await db.execute(
            select(Payment)
            .where(Payment.id == payment_id)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    @staticmethod
    async def get_user_payments(db: AsyncSession, user_id: str, limit: int = 20) -> List[Payment]:
        """
        Get payment history for a user.

        Args:
            db: Database session
            user_id: User ID
            limit: Maximum number of records

        Returns:
            List of Payment records, newest first
        """
        result = await db.execute(
            select(Payment)
            .where(Payment.user_id == user_id)
            .order_by(Payment.created_at.desc())
            .limit(limit)
            .execution_options(populate_existing=True)
        )
        return list(result.scalars().all())

    @staticmethod
    async def set_provider_ref(db: AsyncSession, payment_id: str, provider_ref: str) -> None:
        await db.execute(
            update(Payment)
            .where(Payment.id == payment_id)
            .values(provider_ref=provider_ref)
            .execution_options(synchronize_session=False)
        )

    @staticmethod
    async def mark_paid(db: AsyncSession, payment_id: str, provider_ref: Optional[str] = None) -> bool:
        """
        Move pending -> paid. Returns False if the payment was not pending,
        in which case the caller must not grant credits.
        """
        values = {"status": PaymentStatus.PAID, "completed_at": utcnow()}
        if provider_ref:
            values["provider_ref"] = provider_ref
        result = await db.execute(
            update(Payment)
            .where(Payment.id == payment_id)
            .where(Payment.status == PaymentStatus.PENDING)
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount > 0

    @staticmethod
    async def mark_failed(db: AsyncSession, payment_id: str) -> bool:
        """Move pending -> failed. Returns False if the payment was not pending."""
        result = await db.execute(
            update(Payment)
            .where(Payment.id == payment_id)
            .where(Payment.status == PaymentStatus.PENDING)
            .values(status=PaymentStatus.FAILED, completed_at=utcnow())
            .execution_options(synchronize_session=False)
        )
        return result.rowcount > 0

    @staticmethod
    async def event_exists(db: AsyncSession, event_id: str) -> bool:
        result = await db.execute(
            select(WebhookEvent.id).where(WebhookEvent.event_id == event_id)
        )
        return result.scalar_one_or_none() is not None

    @staticmethod
    async def record_event(
        db: AsyncSession,
        event_id: str,
        provider: str,
        event_type: Optional[str] = None,
    ) -> WebhookEvent:
        """
        Insert the processed-event row. The unique constraint on event_id
        makes a concurrent duplicate fail at flush time.
        """
        event = WebhookEvent(event_id=event_id, provider=provider, event_type=event_type)
        db.add(event)
        await db.flush()
        return event
