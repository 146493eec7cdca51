"""
Payment service for credit purchases.
Handles checkout creation and payment history. Credits are granted later,
by the payment webhook, never here.
"""
import logging
import uuid
from typing import Any, Dict, List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from reelforge.errors import InvalidInput, ProviderUnavailable, Internal
from reelforge.models.payment import Payment
from reelforge.providers.base import PaymentProvider
from reelforge.repositories.payment_repository import PaymentRepository
from reelforge.services.pricing import CREDIT_PACKAGES, get_package

logger = logging.getLogger(__name__)


class PaymentService:
    """Service for credit purchase operations."""

    @staticmethod
    def get_packages() -> List[Dict[str, Any]]:
        """Available credit packages with pricing details."""
        return [package.to_dict() for package in CREDIT_PACKAGES]

    @staticmethod
    async def create_checkout(
        db: AsyncSession,
        user_id: str,
        package_id: str,
        provider: PaymentProvider,
        customer_email: Optional[str] = None,
    ) -> Dict[str, Any]:
        """
        Create a pending payment and open a checkout session for it.

        Args:
            db: Database session
            user_id: User ID
            package_id: ID of the credit package
            provider: Payment provider
            customer_email: Optional receipt email

        Returns:
            Dict with payment_id, checkout_url and session_id

        Raises:
            InvalidInput: If the package is unknown
            ProviderUnavailable: If the provider could not open a session;
                the payment stays pending
        """
        package = get_package(package_id)
        if not package:
            raise InvalidInput(f"Invalid package: {package_id}")

        try:
            payment = await PaymentRepository.create_payment(
                db,
                user_id=user_id,
                amount=package.price,
                currency=package.currency,
                credits_bought=package.credits,
                idempotency_key=str(uuid.uuid4()),
                provider=provider.name,
                package_id=package.id,
            )
            await db.commit()
        except SQLAlchemyError as e:
            await db.rollback()
            logger.error(f"Failed to create payment for user {user_id}: {e}", exc_info=True)
            raise Internal("Failed to create payment") from e

        try:
            session = await provider.create_checkout_session(
                amount=payment.amount,
                currency=payment.currency,
                reference=payment.id,
                idempotency_key=payment.idempotency_key,
                customer_email=customer_email,
                description=f"{package.name} ({package.credits} credits)",
            )
        except Exception as e:
            # Only a verified webhook settles a payment; the session may exist anyway
            logger.error(
                f"Checkout creation failed for payment {payment.id}: {e}",
                extra={"event": "checkout_failed", "payment_id": payment.id, "user_id": user_id},
            )
            raise ProviderUnavailable("Failed to create checkout session", payment_id=payment.id) from e

        if session.session_id:
            await PaymentRepository.set_provider_ref(db, payment.id, session.session_id)
            await db.commit()

        logger.info(
            f"Created checkout for user {user_id}: package={package.id}, "
            f"credits={package.credits}, payment_id={payment.id}",
            extra={"event": "checkout_created", "payment_id": payment.id, "user_id": user_id},
        )

        return {
            "payment_id": payment.id,
            "checkout_url": session.checkout_url,
            "session_id": session.session_id,
        }

    @staticmethod
    async def get_user_payments(db: AsyncSession, user_id: str, limit: int = 20) -> List[Payment]:
        """Payment history for a user, newest first."""
        return await PaymentRepository.get_user_payments(db, user_id, limit=limit)
