"""
Per-user job submission rate limiter.
Counts the user's jobs inside a trailing window; keeps no state of its own.
"""
from datetime import datetime, timedelta
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from reelforge.config import settings
from reelforge.errors import RateLimited
from reelforge.models.base import utcnow
from reelforge.repositories.job_repository import JobRepository


class RateLimiter:
    """Coarse submission guard: at most `max_jobs` per `window_seconds`."""

    def __init__(self, window_seconds: Optional[int] = None, max_jobs: Optional[int] = None):
        self.window_seconds = window_seconds if window_seconds is not None else settings.rate_limit_window_seconds
        self.max_jobs = max_jobs if max_jobs is not None else settings.rate_limit_max_jobs

    async def count_recent(self, db: AsyncSession, user_id: str, now: Optional[datetime] = None) -> int:
        """Jobs the user created within the trailing window ending at `now`."""
        now = now or utcnow()
        since = now - timedelta(seconds=self.window_seconds)
        return await JobRepository.count_created_since(db, user_id, since)

    async def check(self, db: AsyncSession, user_id: str, now: Optional[datetime] = None) -> None:
        """
        Raise RateLimited if the user is at or above the ceiling.

        Raises:
            RateLimited: With the window and ceiling in the error details
        """
        recent = await self.count_recent(db, user_id, now)
        if recent >= self.max_jobs:
            raise RateLimited(
                "Rate limit exceeded. Please wait a minute before trying again.",
                window_seconds=self.window_seconds,
                max_jobs=self.max_jobs,
            )
