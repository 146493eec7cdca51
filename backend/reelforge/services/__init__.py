"""
Business logic services.
"""
from reelforge.services.credit_service import CreditService
from reelforge.services.rate_limiter import RateLimiter
from reelforge.services.job_submission_service import JobSubmissionService
from reelforge.services.job_status_service import JobStatusService
from reelforge.services.payment_service import PaymentService
from reelforge.services.payment_webhook_service import PaymentWebhookService, WebhookResult

__all__ = [
    "CreditService",
    "RateLimiter",
    "JobSubmissionService",
    "JobStatusService",
    "PaymentService",
    "PaymentWebhookService",
    "WebhookResult",
]
