"""
Payment API endpoints.
Handles credit package listing, checkout creation and payment history.
"""
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from reelforge.database import get_db
from reelforge.models.user import User
from reelforge.models.payment import PaymentStatus
from reelforge.auth.dependencies import get_current_user
from reelforge.providers.base import PaymentProvider
from reelforge.providers.factory import get_payment_provider
from reelforge.schemas.payment import (
    PackagesListResponse,
    CreateCheckoutRequest,
    CheckoutResponse,
    PaymentHistoryItem,
    PaymentHistoryResponse,
)
from reelforge.services.payment_service import PaymentService

router = APIRouter()


@router.get("/packages", response_model=PackagesListResponse)
async def list_packages():
    """
    Get list of available credit packages.
    No authentication required - packages are public information.
    """
    return PackagesListResponse(packages=PaymentService.get_packages())


@router.post("/checkout", response_model=CheckoutResponse)
async def create_checkout(
    request: CreateCheckoutRequest,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
    provider: PaymentProvider = Depends(get_payment_provider),
):
    """
    Create a checkout session for a credit package.

    Returns the provider's hosted checkout URL. Credits are granted when
    the provider's webhook confirms the payment.
    """
    result = await PaymentService.create_checkout(
        db,
        user_id=current_user.id,
        package_id=request.package_id,
        provider=provider,
        customer_email=current_user.email,
    )
    return CheckoutResponse(**result)


@router.get("/history", response_model=PaymentHistoryResponse)
async def get_payment_history(
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
    limit: int = 20,
):
    """
    Get payment history for the authenticated user.
    Returns list of past payments and total credits purchased.
    """
    payments = await PaymentService.get_user_payments(db, current_user.id, limit=limit)

    total_credits = sum(
        p.credits_bought
        for p in payments
        if p.status == PaymentStatus.PAID
    )

    return PaymentHistoryResponse(
        payments=[
            PaymentHistoryItem(
                id=p.id,
                credits_bought=p.credits_bought,
                amount=p.amount,
                currency=p.currency,
                status=p.status.value,
                provider=p.provider,
                package_id=p.package_id,
                created_at=p.created_at.isoformat(),
                completed_at=p.completed_at.isoformat() if p.completed_at else None,
            )
            for p in payments
        ],
        total_credits_purchased=total_credits,
    )
