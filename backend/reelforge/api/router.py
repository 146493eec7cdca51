"""
API router aggregator.
Includes all route modules.
"""
from fastapi import APIRouter
from reelforge.api import health, jobs, me, payments, webhooks

api_router = APIRouter()

api_router.include_router(health.router, prefix="/health", tags=["health"])
api_router.include_router(jobs.router, prefix="/jobs", tags=["jobs"])
api_router.include_router(me.router, prefix="/me", tags=["me"])
api_router.include_router(payments.router, prefix="/payments", tags=["payments"])
api_router.include_router(webhooks.router, prefix="/webhooks", tags=["webhooks"])
