"""
VideoJob model for tracking video generation jobs.
Each job reserves credits at creation and records the cost it paid, so
refunds never depend on the current price table.
"""
from sqlalchemy import Column, String, Integer, DateTime, Text, ForeignKey, Index, Enum as SQLEnum
from sqlalchemy.orm import relationship
import enum

from reelforge.models.base import Base, generate_uuid, utcnow


class JobStatus(str, enum.Enum):
    """Video job status enum."""
    QUEUED = "queued"
    RUNNING = "running"
    SUCCEEDED = "succeeded"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in TERMINAL_STATUSES


TERMINAL_STATUSES = (JobStatus.SUCCEEDED, JobStatus.FAILED)
ACTIVE_STATUSES = (JobStatus.QUEUED, JobStatus.RUNNING)

# Provider error details are cut to this length before they are stored
MAX_ERROR_LENGTH = 1000


class VideoJob(Base):
    """VideoJob model tracking generation state and credit consumption."""

    __tablename__ = "video_jobs"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    user_id = Column(String(36), ForeignKey("users.id"), nullable=False)

    prompt = Column(String(800), nullable=False)
    duration_seconds = Column(Integer, nullable=False)
    credit_cost = Column(Integer, nullable=False)  # Credits debited at creation
    status = Column(
        SQLEnum(
            JobStatus,
            name="job_status",
            native_enum=False,
            values_callable=lambda e: [m.value for m in e],
        ),
        nullable=False,
        default=JobStatus.QUEUED,
    )

    provider_job_id = Column(String(512), nullable=True)  # Operation handle from the provider
    video_url = Column(Text, nullable=True)  # Set only when succeeded
    error = Column(Text, nullable=True)  # Set only when failed

    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)
    completed_at = Column(DateTime, nullable=True)

    # Relationships
    user = relationship("User", backref="video_jobs")

    # Rate limiting counts jobs per user inside a trailing window
    __table_args__ = (
        Index("idx_video_job_user_created", "user_id", "created_at"),
    )

    def __repr__(self):
        return f"<VideoJob(id={self.id}, user_id={self.user_id}, status={self.status}, cost={self.credit_cost})>"
