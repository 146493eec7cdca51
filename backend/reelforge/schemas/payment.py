"""
Pydantic schemas for payment and webhook endpoints.
"""
from pydantic import BaseModel, Field
from typing import List, Optional


class CreditPackageResponse(BaseModel):
    """Response schema for a credit package."""
    id: str
    name: str
    credits: int
    price: int
    currency: str
    popular: bool
    price_per_credit: float


class PackagesListResponse(BaseModel):
    """Response schema for listing all packages."""
    packages: List[CreditPackageResponse]


class CreateCheckoutRequest(BaseModel):
    """Request schema for creating a checkout session."""
    package_id: str = Field(..., alias="packageId", description="ID of the credit package to purchase")

    class Config:
        populate_by_name = True


class CheckoutResponse(BaseModel):
    """Response schema for checkout session."""
    checkout_url: str
    payment_id: str
    session_id: Optional[str] = None


class PaymentHistoryItem(BaseModel):
    """Schema for a single payment in history."""
    id: str
    credits_bought: int
    amount: int
    currency: str
    status: str
    provider: str
    package_id: Optional[str]
    created_at: str
    completed_at: Optional[str]


class PaymentHistoryResponse(BaseModel):
    """Response schema for payment history."""
    payments: List[PaymentHistoryItem]
    total_credits_purchased: int


class WebhookResponse(BaseModel):
    """Acknowledgement returned to the payment provider."""
    status: str
    event_id: Optional[str] = None
    payment_id: Optional[str] = None
