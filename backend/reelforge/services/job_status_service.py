"""
Job status service.
Answers status queries and, for running jobs, asks the generation provider
once and applies the outcome: success stores the video URL, failure refunds
the job's stored credit cost exactly once.
"""
import asyncio
import logging
from typing import List

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from reelforge.config import settings
from reelforge.errors import NotFound, Internal
from reelforge.models.video_job import VideoJob, MAX_ERROR_LENGTH
from reelforge.providers.base import GenerationProvider, GenerationStatus, ProviderError
from reelforge.repositories.job_repository import JobRepository
from reelforge.services.credit_service import CreditService
from reelforge.utils.logging import log_job_transition, log_job_refunded
from reelforge.utils.metrics import video_jobs_completed_total, credits_refunded_total

logger = logging.getLogger(__name__)


class JobStatusService:
    """Service for reading and advancing job state."""

    @staticmethod
    async def poll(
        db: AsyncSession,
        job_id: str,
        user_id: str,
        provider: GenerationProvider,
    ) -> VideoJob:
        """
        Return the caller's job, advancing it if the provider has finished.

        Terminal jobs and jobs without a provider handle are returned as
        stored. A failed provider query leaves the job untouched.

        Raises:
            NotFound: If the job does not exist or belongs to another user
            Internal: If a transition could not be written
        """
        job = await JobRepository.get_job_for_user(db, job_id, user_id)
        if not job:
            raise NotFound("Job not found")

        if job.status.is_terminal or not job.provider_job_id:
            return job

        # End the read transaction before the network call
        await db.commit()

        try:
            status = await asyncio.wait_for(
                provider.poll_generation(job.provider_job_id),
                timeout=settings.provider_timeout_seconds,
            )
        except (ProviderError, asyncio.TimeoutError) as e:
            logger.warning(
                f"Status query failed for job {job.id}, returning stored state: {e}",
                extra={"event": "job_poll_failed", "job_id": job.id, "user_id": user_id},
            )
            return job

        if not status.done:
            return job

        if status.failed:
            await JobStatusService._apply_failure(db, job, status)
        else:
            await JobStatusService._apply_success(db, job, status)

        await db.refresh(job)
        return job

    @staticmethod
    async def _apply_failure(db: AsyncSession, job: VideoJob, status: GenerationStatus) -> None:
        job_id, user_id, credit_cost = job.id, job.user_id, job.credit_cost
        error = (status.error_message or "Video generation failed")[:MAX_ERROR_LENGTH]
        try:
            transitioned = await JobRepository.mark_failed(db, job_id, error)
            if transitioned:
                await CreditService.credit(db, user_id, credit_cost)
            await db.commit()
        except (SQLAlchemyError, ValueError) as e:
            await db.rollback()
            logger.error(
                f"Failed to record failure for job {job_id}: {e}",
                extra={"event": "job_transition_failed", "job_id": job_id, "user_id": user_id},
                exc_info=True,
            )
            raise Internal("Failed to update job") from e

        if transitioned:
            video_jobs_completed_total.labels(status="failed").inc()
            credits_refunded_total.labels(reason="generation_failed").inc(credit_cost)
            log_job_transition(logger, job_id=job_id, user_id=user_id, status="failed", error=error)
            log_job_refunded(
                logger,
                job_id=job_id,
                user_id=user_id,
                credits=credit_cost,
                reason="generation_failed",
            )

    @staticmethod
    async def _apply_success(db: AsyncSession, job: VideoJob, status: GenerationStatus) -> None:
        """Done with a URL: succeeded. Done without one counts as a failure."""
        if not status.result_url:
            await JobStatusService._apply_failure(
                db,
                job,
                GenerationStatus(done=True, error_message="Generation finished without a video URL"),
            )
            return

        job_id, user_id = job.id, job.user_id
        try:
            transitioned = await JobRepository.mark_succeeded(db, job_id, status.result_url)
            await db.commit()
        except SQLAlchemyError as e:
            await db.rollback()
            logger.error(
                f"Failed to record success for job {job_id}: {e}",
                extra={"event": "job_transition_failed", "job_id": job_id, "user_id": user_id},
                exc_info=True,
            )
            raise Internal("Failed to update job") from e

        if transitioned:
            video_jobs_completed_total.labels(status="succeeded").inc()
            log_job_transition(logger, job_id=job_id, user_id=user_id, status="succeeded")

    @staticmethod
    async def list_recent(db: AsyncSession, user_id: str, limit: int = 10) -> List[VideoJob]:
        """The user's most recent jobs, newest first, as stored."""
        return await JobRepository.list_for_user(db, user_id, limit=limit)
