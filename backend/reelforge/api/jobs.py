"""
Video job endpoints: submit a generation, check on it, list recent ones.
All endpoints require Firebase JWT authentication.
"""
import logging
from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from reelforge.database import get_db
from reelforge.models.user import User
from reelforge.auth.dependencies import get_current_user
from reelforge.providers.base import GenerationProvider
from reelforge.providers.factory import get_generation_provider
from reelforge.schemas.job import JobCreate, JobCreated, JobResponse, JobListResponse
from reelforge.services.job_submission_service import JobSubmissionService
from reelforge.services.job_status_service import JobStatusService

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("", response_model=JobCreated, status_code=status.HTTP_201_CREATED)
async def create_job(
    job_data: JobCreate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
    provider: GenerationProvider = Depends(get_generation_provider),
):
    """
    Submit a video generation job.

    Debits the duration's credit cost up front. If the provider refuses
    the request the credits are refunded and a 502 carries the job ID.
    """
    job = await JobSubmissionService.submit(
        db,
        user_id=current_user.id,
        prompt=job_data.prompt,
        duration_seconds=job_data.duration_seconds,
        provider=provider,
    )
    return JobCreated(job_id=job.id)


@router.get("", response_model=JobListResponse)
async def list_jobs(
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
    limit: int = 10,
):
    """Recent jobs of the authenticated user, newest first."""
    jobs = await JobStatusService.list_recent(db, current_user.id, limit=max(1, min(limit, 50)))
    return JobListResponse(jobs=[JobResponse.model_validate(job) for job in jobs])


@router.get("/{job_id}", response_model=JobResponse, response_model_exclude_none=True)
async def get_job(
    job_id: str,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
    provider: GenerationProvider = Depends(get_generation_provider),
):
    """
    Get a job's status, checking with the provider once if it is still running.
    Returns 404 if the job doesn't exist or belongs to another user.
    """
    job = await JobStatusService.poll(db, job_id, current_user.id, provider)
    return JobResponse.model_validate(job)
