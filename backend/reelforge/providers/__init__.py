"""
External provider abstraction module.
Provides unified interfaces for the video generation and payment providers.
"""
from reelforge.providers.base import (
    GenerationProvider,
    PaymentProvider,
    GenerationHandle,
    GenerationStatus,
    CheckoutSession,
    ProviderError,
    ProviderTransientError,
)
from reelforge.providers.factory import get_generation_provider, get_payment_provider

__all__ = [
    "GenerationProvider",
    "PaymentProvider",
    "GenerationHandle",
    "GenerationStatus",
    "CheckoutSession",
    "ProviderError",
    "ProviderTransientError",
    "get_generation_provider",
    "get_payment_provider",
]
