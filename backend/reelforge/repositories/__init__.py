"""
Repository layer for database operations.
Provides higher-level abstractions for the job and payment stores.
"""
from reelforge.repositories.job_repository import JobRepository
from reelforge.repositories.payment_repository import PaymentRepository

__all__ = ["JobRepository", "PaymentRepository"]
