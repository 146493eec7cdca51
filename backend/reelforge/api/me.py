"""
Endpoints about the signed-in user: profile and credit balance.
"""
from datetime import datetime
from typing import Dict, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from reelforge.auth.dependencies import get_current_user
from reelforge.database import get_db
from reelforge.models.user import User
from reelforge.services.credit_service import CreditService
from reelforge.services.pricing import CREDIT_COSTS

router = APIRouter()


class ProfileResponse(BaseModel):
    id: str
    email: Optional[str] = None
    credits: int
    created_at: datetime


class CreditsResponse(BaseModel):
    """Balance plus what each video length costs, keyed by seconds."""
    credits: int
    user_id: str
    costs: Dict[str, int]


@router.get("", response_model=ProfileResponse)
async def get_profile(current_user: User = Depends(get_current_user)):
    return ProfileResponse(
        id=current_user.id,
        email=current_user.email,
        credits=current_user.credits,
        created_at=current_user.created_at,
    )


@router.get("/credits", response_model=CreditsResponse)
async def get_credits(
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    # Read the column, not the cached instance, so a concurrent debit shows up
    balance = await CreditService.get_balance(db, current_user.id)
    return CreditsResponse(
        credits=balance,
        user_id=current_user.id,
        costs={str(seconds): cost for seconds, cost in CREDIT_COSTS.items()},
    )
