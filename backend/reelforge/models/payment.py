"""
Payment model for tracking credit purchases.
Ensures idempotency and provides audit trail for credit purchases.
"""
from sqlalchemy import Column, String, Integer, DateTime, ForeignKey, Enum, Index
import enum

from reelforge.models.base import Base, generate_uuid, utcnow


class PaymentStatus(str, enum.Enum):
    """Status of a payment transaction."""
    PENDING = "pending"
    PAID = "paid"
    FAILED = "failed"


class Payment(Base):
    """
    Payment model for tracking credit purchases.

    Used for:
    - Idempotency: the idempotency key deduplicates checkout creation at
      the provider, and the pending->paid transition happens once
    - Audit trail: Track all purchases
    """

    __tablename__ = "payments"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    user_id = Column(String(36), ForeignKey("users.id"), nullable=False)

    # Immutable terms of the purchase
    amount = Column(Integer, nullable=False)  # Minor units of `currency`
    currency = Column(String(3), nullable=False)
    credits_bought = Column(Integer, nullable=False)
    package_id = Column(String(50), nullable=True)

    idempotency_key = Column(String(64), nullable=False, unique=True)

    # Provider identifiers
    provider = Column(String(32), nullable=False, default="snippe")
    provider_ref = Column(String(255), nullable=True)

    # Status tracking
    status = Column(
        Enum(
            PaymentStatus,
            name="payment_status",
            native_enum=False,
            values_callable=lambda e: [m.value for m in e],
        ),
        nullable=False,
        default=PaymentStatus.PENDING
    )

    # Timestamps
    created_at = Column(DateTime, nullable=False, default=utcnow)
    completed_at = Column(DateTime, nullable=True)

    __table_args__ = (
        Index("idx_payment_user_id", "user_id"),
        Index("idx_payment_provider_ref", "provider_ref"),
    )

    def __repr__(self):
        return (
            f"<Payment(id={self.id}, user_id={self.user_id}, "
            f"credits={self.credits_bought}, status={self.status})>"
        )
