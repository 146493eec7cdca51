"""
Error taxonomy for the credit ledger and job lifecycle.

Services raise these; the API layer maps them to HTTP responses in a single
exception handler (see main.py). Each error knows its public code and status.
"""
from typing import Any, Dict, Optional


class ReelForgeError(Exception):
    """Base class for all domain errors."""

    code = "internal"
    status_code = 500

    def __init__(self, message: str = "", **details: Any):
        super().__init__(message or self.code)
        self.message = message or self.code
        self.details = details

    def to_dict(self) -> Dict[str, Any]:
        body: Dict[str, Any] = {"error": self.message, "code": self.code}
        body.update(self.details)
        return body


class InvalidInput(ReelForgeError):
    """Bad prompt, duration or package. User-correctable, no side effects."""
    code = "invalid_input"
    status_code = 400


class RateLimited(ReelForgeError):
    """Too many recent submissions."""
    code = "rate_limited"
    status_code = 429


class InsufficientCredits(ReelForgeError):
    """Balance lower than the job cost. Nothing was debited."""
    code = "insufficient_credits"
    status_code = 402


class ProviderUnavailable(ReelForgeError):
    """
    A provider rejected or failed a call after local state was written.
    For job submission the credits have already been refunded.
    """
    code = "provider_unavailable"
    status_code = 502

    def __init__(self, message: str = "", job_id: Optional[str] = None, refunded: bool = False, **details: Any):
        if job_id is not None:
            details["jobId"] = job_id
            details["refunded"] = refunded
        super().__init__(message, **details)
        self.job_id = job_id
        self.refunded = refunded


class NotFound(ReelForgeError):
    """Job or payment absent, or not owned by the caller."""
    code = "not_found"
    status_code = 404


class Unauthorized(ReelForgeError):
    """Webhook signature missing or mismatched."""
    code = "unauthorized"
    status_code = 401


class Internal(ReelForgeError):
    """Unexpected store or serialization failure."""
    code = "internal"
    status_code = 500
