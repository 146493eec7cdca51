"""
Pydantic schemas for video job endpoints.
Job payloads use camelCase on the wire.
"""
from pydantic import BaseModel, Field
from typing import List, Optional
from datetime import datetime
from reelforge.models.video_job import JobStatus


class JobCreate(BaseModel):
    """Schema for submitting a generation job."""
    prompt: Optional[str] = Field(None, description="Video description, trimmed and truncated to 800 characters")
    duration_seconds: Optional[int] = Field(None, alias="durationSeconds", description="One of 4, 10, 30, 60")

    class Config:
        populate_by_name = True


class JobCreated(BaseModel):
    """Schema for an accepted job."""
    job_id: str = Field(..., alias="jobId")

    class Config:
        populate_by_name = True


class JobResponse(BaseModel):
    """Schema for job status response."""
    id: str
    status: JobStatus
    prompt: str
    duration_seconds: int = Field(..., alias="durationSeconds")
    credit_cost: int = Field(..., alias="creditCost")
    video_url: Optional[str] = Field(None, alias="videoUrl")
    error: Optional[str] = None
    created_at: datetime = Field(..., alias="createdAt")
    completed_at: Optional[datetime] = Field(None, alias="completedAt")

    class Config:
        from_attributes = True
        populate_by_name = True


class JobListResponse(BaseModel):
    """Schema for the recent jobs list."""
    jobs: List[JobResponse]
