"""
Pydantic schemas for API request/response validation.
"""
from reelforge.schemas.job import (
    JobCreate,
    JobCreated,
    JobResponse,
    JobListResponse,
)
from reelforge.schemas.payment import (
    CreditPackageResponse,
    PackagesListResponse,
    CreateCheckoutRequest,
    CheckoutResponse,
    PaymentHistoryItem,
    PaymentHistoryResponse,
    WebhookResponse,
)

__all__ = [
    "JobCreate",
    "JobCreated",
    "JobResponse",
    "JobListResponse",
    "CreditPackageResponse",
    "PackagesListResponse",
    "CreateCheckoutRequest",
    "CheckoutResponse",
    "PaymentHistoryItem",
    "PaymentHistoryResponse",
    "WebhookResponse",
]
