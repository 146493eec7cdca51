"""
Base classes for external providers.

The generation provider starts a video job and reports on it; the payment
provider opens checkout sessions. Services depend only on these interfaces,
so tests substitute fakes and deployments pick an adapter in factory.py.
"""
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional


class ProviderError(Exception):
    """A provider rejected a request or could not be reached."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class ProviderTransientError(ProviderError):
    """A status query failed in a way that is expected to resolve by itself."""


@dataclass
class GenerationHandle:
    """Opaque handle returned when the provider accepts a generation."""
    operation_id: str


@dataclass
class GenerationStatus:
    """Snapshot of a provider operation."""
    done: bool
    result_url: Optional[str] = None
    error_message: Optional[str] = None

    @property
    def failed(self) -> bool:
        return self.done and self.error_message is not None


@dataclass
class CheckoutSession:
    """Checkout session opened at the payment provider."""
    session_id: Optional[str]
    checkout_url: str


class GenerationProvider(ABC):
    """
    Abstract base class for video generation providers.

    All providers must implement:
    - start_generation(): submit a prompt, return an operation handle
    - poll_generation(): report the state of an operation
    """

    name = "generation"

    @abstractmethod
    async def start_generation(self, prompt: str, duration_seconds: int) -> GenerationHandle:
        """
        Submit a generation request.

        Raises:
            ProviderError: If the provider rejects the request, errors or times out
        """
        pass

    @abstractmethod
    async def poll_generation(self, operation_id: str) -> GenerationStatus:
        """
        Query an operation once.

        Raises:
            ProviderTransientError: On network errors, non-2xx responses or
                unreadable bodies
        """
        pass

    @abstractmethod
    def is_configured(self) -> bool:
        """
        Check if provider is properly configured (API key present, etc.).
        """
        pass


class PaymentProvider(ABC):
    """Abstract base class for payment providers."""

    name = "payment"

    @abstractmethod
    async def create_checkout_session(
        self,
        amount: int,
        currency: str,
        reference: str,
        idempotency_key: str,
        customer_email: Optional[str] = None,
        description: Optional[str] = None,
    ) -> CheckoutSession:
        """
        Open a checkout session for a pending payment.

        Args:
            amount: Amount in minor units
            currency: ISO currency code
            reference: Our payment ID, echoed back in webhook events
            idempotency_key: Deduplicates session creation at the provider
            customer_email: Optional receipt email
            description: Optional line item description

        Raises:
            ProviderError: If the session could not be created
        """
        pass

    @abstractmethod
    def is_configured(self) -> bool:
        pass
