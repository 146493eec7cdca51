"""
Database models package.
"""
from reelforge.models.base import Base
from reelforge.models.user import User
from reelforge.models.video_job import VideoJob, JobStatus
from reelforge.models.payment import Payment, PaymentStatus
from reelforge.models.webhook_event import WebhookEvent

__all__ = [
    "Base",
    "User",
    "VideoJob",
    "JobStatus",
    "Payment",
    "PaymentStatus",
    "WebhookEvent",
]
