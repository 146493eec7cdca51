"""
Health check endpoint.
The database decides liveness; provider configuration is reported so a
deployment missing API keys is visible before the first job fails.
"""
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from reelforge.database import get_db
from reelforge.providers.base import GenerationProvider, PaymentProvider
from reelforge.providers.factory import get_generation_provider, get_payment_provider

router = APIRouter()


def _provider_state(provider) -> str:
    return "configured" if provider.is_configured() else "not_configured"


@router.get("")
async def health_check(
    db: AsyncSession = Depends(get_db),
    generation_provider: GenerationProvider = Depends(get_generation_provider),
    payment_provider: PaymentProvider = Depends(get_payment_provider),
):
    """503 when the database is unreachable; providers never fail the check."""
    try:
        await db.execute(text("SELECT 1"))
        database = "connected"
    except (SQLAlchemyError, OSError) as e:
        database = f"error: {e}"

    body = {
        "status": "healthy" if database == "connected" else "unhealthy",
        "database": database,
        "providers": {
            generation_provider.name: _provider_state(generation_provider),
            payment_provider.name: _provider_state(payment_provider),
        },
    }

    if body["status"] == "unhealthy":
        raise HTTPException(status_code=503, detail=body)
    return body
