"""
Job submission: validate a generation request, reserve credits, create the
job and hand it to the generation provider.

Credits and the queued job are written in one transaction. The provider
call happens only after that transaction commits; if the provider refuses,
a compensating transaction fails the job and returns the credits together.
"""
import asyncio
import logging
import time
from datetime import datetime
from typing import Any, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from reelforge.config import settings
from reelforge.errors import InvalidInput, InsufficientCredits, ProviderUnavailable, Internal, RateLimited
from reelforge.models.video_job import VideoJob, MAX_ERROR_LENGTH
from reelforge.providers.base import GenerationProvider
from reelforge.repositories.job_repository import JobRepository
from reelforge.services.credit_service import CreditService
from reelforge.services.pricing import CREDIT_COSTS, DURATION_OPTIONS
from reelforge.services.rate_limiter import RateLimiter
from reelforge.utils.logging import log_job_submitted, log_job_refunded, log_job_transition
from reelforge.utils.metrics import (
    video_jobs_submitted_total,
    video_jobs_rejected_total,
    video_jobs_completed_total,
    credits_refunded_total,
)

logger = logging.getLogger(__name__)

MAX_PROMPT_LENGTH = 800


def normalize_prompt(prompt: Any) -> str:
    """
    Trim the prompt and truncate it to MAX_PROMPT_LENGTH characters.

    Raises:
        InvalidInput: If the prompt is not a string or is blank
    """
    if not isinstance(prompt, str) or not prompt.strip():
        raise InvalidInput("Invalid prompt")
    return prompt.strip()[:MAX_PROMPT_LENGTH]


def validate_duration(duration_seconds: Any) -> int:
    """
    Ensure the duration is one of the offered options.

    Raises:
        InvalidInput: If the duration is not in DURATION_OPTIONS
    """
    # bool is an int subclass; True must not pass as a 1-second video
    if isinstance(duration_seconds, bool) or duration_seconds not in CREDIT_COSTS:
        raise InvalidInput(
            "Invalid duration",
            allowed=list(DURATION_OPTIONS),
        )
    return int(duration_seconds)


class JobSubmissionService:
    """Service for submitting video generation jobs."""

    @staticmethod
    async def submit(
        db: AsyncSession,
        user_id: str,
        prompt: Any,
        duration_seconds: Any,
        provider: GenerationProvider,
        rate_limiter: Optional[RateLimiter] = None,
        now: Optional[datetime] = None,
    ) -> VideoJob:
        """
        Submit a job for the authenticated user.

        Args:
            db: Database session
            user_id: Authenticated user's ID
            prompt: Raw prompt (trimmed and truncated before storage)
            duration_seconds: Requested duration, one of 4, 10, 30, 60
            provider: Generation provider
            rate_limiter: Optional limiter (defaults to settings)
            now: Optional clock override for the rate limit window

        Returns:
            The job, in status running

        Raises:
            InvalidInput: Bad prompt or duration, nothing written
            RateLimited: Too many recent jobs, nothing written
            InsufficientCredits: Balance below cost, nothing written
            ProviderUnavailable: Provider refused; the job is failed and
                its credits were refunded
            Internal: Store failure
        """
        start_time = time.time()

        clean_prompt = normalize_prompt(prompt)
        duration = validate_duration(duration_seconds)
        credit_cost = CREDIT_COSTS[duration]

        limiter = rate_limiter or RateLimiter()
        try:
            await limiter.check(db, user_id, now)
        except RateLimited:
            video_jobs_rejected_total.labels(reason="rate_limited").inc()
            raise

        job = await JobSubmissionService._reserve(db, user_id, clean_prompt, duration, credit_cost)
        # Plain values: a rollback below expires the instance
        job_id = job.id

        # No transaction is open past this point while we wait on the provider
        try:
            handle = await asyncio.wait_for(
                provider.start_generation(clean_prompt, duration),
                timeout=settings.provider_timeout_seconds,
            )
        except asyncio.CancelledError:
            await JobSubmissionService._refund_failed_start(
                db, job_id, user_id, credit_cost, "Generation request was cancelled"
            )
            raise
        except asyncio.TimeoutError as e:
            await JobSubmissionService._refund_failed_start(
                db, job_id, user_id, credit_cost, "Generation provider timed out"
            )
            raise ProviderUnavailable(
                "Failed to start generation, credits refunded", job_id=job_id, refunded=True
            ) from e
        except Exception as e:
            await JobSubmissionService._refund_failed_start(
                db, job_id, user_id, credit_cost, str(e) or "Failed to start generation"
            )
            raise ProviderUnavailable(
                "Failed to start generation, credits refunded", job_id=job_id, refunded=True
            ) from e

        try:
            await JobRepository.mark_running(db, job_id, handle.operation_id)
            await db.commit()
        except SQLAlchemyError as e:
            await db.rollback()
            logger.error(
                f"Failed to record provider handle for job {job_id}: {e}",
                extra={"event": "job_handle_store_failed", "job_id": job_id, "user_id": user_id},
                exc_info=True,
            )
            await JobSubmissionService._refund_failed_start(
                db, job_id, user_id, credit_cost, "Failed to record generation handle"
            )
            raise Internal("Failed to record generation handle, credits refunded") from e

        await db.refresh(job)

        video_jobs_submitted_total.labels(duration_seconds=str(duration)).inc()
        log_job_submitted(
            logger,
            job_id=job.id,
            user_id=user_id,
            duration_seconds=duration,
            credit_cost=credit_cost,
            duration_ms=(time.time() - start_time) * 1000,
            provider_job_id=handle.operation_id,
        )
        return job

    @staticmethod
    async def _reserve(
        db: AsyncSession,
        user_id: str,
        prompt: str,
        duration_seconds: int,
        credit_cost: int,
    ) -> VideoJob:
        """
        Debit the cost and insert the queued job in a single transaction.

        Raises:
            InsufficientCredits: If the conditional debit matched no row
            Internal: On store failure (rolled back, nothing written)
        """
        try:
            debited = await CreditService.debit(db, user_id, credit_cost)
            if debited:
                job = await JobRepository.create_job(
                    db,
                    user_id=user_id,
                    prompt=prompt,
                    duration_seconds=duration_seconds,
                    credit_cost=credit_cost,
                )
                await db.commit()
            else:
                await db.rollback()
        except SQLAlchemyError as e:
            await db.rollback()
            logger.error(
                f"Credit reservation failed for user {user_id}: {e}",
                extra={"event": "credit_reservation_failed", "user_id": user_id},
                exc_info=True,
            )
            raise Internal("Failed to reserve credits") from e

        if not debited:
            video_jobs_rejected_total.labels(reason="insufficient_credits").inc()
            raise InsufficientCredits("Insufficient credits", required=credit_cost)

        return job

    @staticmethod
    async def _refund_failed_start(
        db: AsyncSession,
        job_id: str,
        user_id: str,
        credit_cost: int,
        error: str,
    ) -> None:
        """
        Compensating transaction: fail the job and return its credits atomically.

        Raises:
            Internal: If the refund could not be written
        """
        error = error[:MAX_ERROR_LENGTH]
        try:
            failed = await JobRepository.mark_failed(db, job_id, error)
            if failed:
                await CreditService.credit(db, user_id, credit_cost)
            await db.commit()
        except (SQLAlchemyError, ValueError) as e:
            await db.rollback()
            logger.critical(
                f"Refund failed for job {job_id}: {e}",
                extra={
                    "event": "job_refund_failed",
                    "job_id": job_id,
                    "user_id": user_id,
                    "credits": credit_cost,
                },
                exc_info=True,
            )
            raise Internal("Failed to refund credits after provider failure") from e

        if failed:
            video_jobs_completed_total.labels(status="failed").inc()
            credits_refunded_total.labels(reason="submission_failed").inc(credit_cost)
            log_job_transition(logger, job_id=job_id, user_id=user_id, status="failed", error=error)
            log_job_refunded(
                logger,
                job_id=job_id,
                user_id=user_id,
                credits=credit_cost,
                reason="submission_failed",
            )
