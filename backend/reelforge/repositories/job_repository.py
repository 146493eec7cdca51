"""
Repository for video job operations.

Status transitions are conditional UPDATEs keyed on the current status, so a
transition applied twice (duplicate polls, concurrent requests) changes the
row at most once. Callers check the returned flag before any ledger effect.
"""
from datetime import datetime
from typing import List, Optional

from sqlalchemy import select, update, func
from sqlalchemy.ext.asyncio import AsyncSession

from reelforge.models.base import utcnow
from reelforge.models.video_job import VideoJob, JobStatus, ACTIVE_STATUSES


class JobRepository:
    """Repository for video job database operations."""

    @staticmethod
    async def create_job(
        db: AsyncSession,
        user_id: str,
        prompt: str,
        duration_seconds: int,
        credit_cost: int,
    ) -> VideoJob:
        """
        Create a queued job.

        Args:
            db: Database session
            user_id: Owning user ID
            prompt: Normalized prompt
            duration_seconds: Requested duration
            credit_cost: Credits debited for this job

        Returns:
            Created VideoJob instance (flushed, not committed)
        """
        job = VideoJob(
            user_id=user_id,
            prompt=prompt,
            duration_seconds=duration_seconds,
            credit_cost=credit_cost,
            status=JobStatus.QUEUED,
        )
        db.add(job)
        await db.flush()  # Flush to get ID without committing
        return job

    @staticmethod
    async def get_job_for_user(db: AsyncSession, job_id: str, user_id: str) -> Optional[VideoJob]:
        """
        Get job by ID, ensuring it belongs to the user.
        Returns None if job not found or doesn't belong to user.
        """
        result = await db.execute(
            select(VideoJob).where(
                VideoJob.id == job_id,
                VideoJob.user_id == user_id
            ).execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    @staticmethod
    async def list_for_user(db: AsyncSession, user_id: str, limit: int = 10) -> List[VideoJob]:
        """Most recent jobs of a user, newest first."""
        result = await db.execute(
            select(VideoJob)
            .where(VideoJob.user_id == user_id)
            .order_by(VideoJob.created_at.desc())
            .limit(limit)
            .execution_options(populate_existing=True)
        )
        return list(result.scalars().all())

    @staticmethod
    async def count_created_since(db: AsyncSession, user_id: str, since: datetime) -> int:
        """Number of jobs the user created at or after `since`."""
        result = await db.execute(
            select(func.count(VideoJob.id)).where(
                VideoJob.user_id == user_id,
                VideoJob.created_at >= since,
            )
        )
        return result.scalar_one()

    @staticmethod
    async def mark_running(db: AsyncSession, job_id: str, provider_job_id: str) -> bool:
        """Attach the provider handle and move queued -> running."""
        result = await db.execute(
            update(VideoJob)
            .where(VideoJob.id == job_id)
            .where(VideoJob.status == JobStatus.QUEUED)
            .values(provider_job_id=provider_job_id, status=JobStatus.RUNNING)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount > 0

    @staticmethod
    async def mark_failed(db: AsyncSession, job_id: str, error: str) -> bool:
        """Move a non-terminal job to failed. Returns False if it was already terminal."""
        result = await db.execute(
            update(VideoJob)
            .where(VideoJob.id == job_id)
            .where(VideoJob.status.in_(ACTIVE_STATUSES))
            .values(status=JobStatus.FAILED, error=error, completed_at=utcnow())
            .execution_options(synchronize_session=False)
        )
        return result.rowcount > 0

    @staticmethod
    async def mark_succeeded(db: AsyncSession, job_id: str, video_url: str) -> bool:
        """Move a non-terminal job to succeeded. Returns False if it was already terminal."""
        result = await db.execute(
            update(VideoJob)
            .where(VideoJob.id == job_id)
            .where(VideoJob.status.in_(ACTIVE_STATUSES))
            .values(status=JobStatus.SUCCEEDED, video_url=video_url, completed_at=utcnow())
            .execution_options(synchronize_session=False)
        )
        return result.rowcount > 0
