"""
Processed webhook events.
A row for an event_id means the event has already been applied.
"""
from sqlalchemy import Column, String, DateTime

from reelforge.models.base import Base, generate_uuid, utcnow


class WebhookEvent(Base):
    """Ledger of applied payment-provider events."""

    __tablename__ = "webhook_events"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    event_id = Column(String(255), nullable=False, unique=True)
    provider = Column(String(32), nullable=False)
    event_type = Column(String(64), nullable=True)

    created_at = Column(DateTime, nullable=False, default=utcnow)

    def __repr__(self):
        return f"<WebhookEvent(event_id={self.event_id}, provider={self.provider})>"
