"""
Provider factory.
Selects and returns the appropriate providers based on environment configuration.
Both factories double as FastAPI dependencies, so tests override them with fakes.
"""
import logging
from reelforge.config import settings
from reelforge.providers.base import GenerationProvider, PaymentProvider
from reelforge.providers.veo_provider import VeoProvider
from reelforge.providers.snippe_provider import SnippeProvider
from reelforge.providers.stripe_provider import StripeProvider

logger = logging.getLogger(__name__)


def get_generation_provider() -> GenerationProvider:
    """
    Factory function to get the configured video generation provider.

    Provider selection is controlled by GENERATION_PROVIDER environment variable:
    - "veo" → VeoProvider (default)

    An unconfigured provider is still returned: its calls fail, and job
    submission refunds the reserved credits.

    Raises:
        ValueError: If the provider name is invalid
    """
    provider_name = (settings.generation_provider or "veo").lower()

    if provider_name == "veo":
        provider = VeoProvider()
        if not provider.is_configured():
            logger.warning("Veo provider selected but GEMINI_API_KEY not configured")
        return provider

    logger.error(f"Unknown generation provider: {provider_name}")
    raise ValueError(
        f"Invalid generation provider: {provider_name}. "
        f"Must be one of: 'veo'"
    )


def get_payment_provider() -> PaymentProvider:
    """
    Factory function to get the configured payment provider.

    Provider selection is controlled by PAYMENT_PROVIDER environment variable:
    - "snippe" → SnippeProvider (default)
    - "stripe" → StripeProvider

    Raises:
        ValueError: If the provider name is invalid
    """
    provider_name = get_payment_provider_name()

    if provider_name == "snippe":
        provider = SnippeProvider()
        if not provider.is_configured():
            logger.warning("Snippe provider selected but SNIPPE_API_KEY not configured")
        return provider

    elif provider_name == "stripe":
        return StripeProvider()

    logger.error(f"Unknown payment provider: {provider_name}")
    raise ValueError(
        f"Invalid payment provider: {provider_name}. "
        f"Must be one of: 'snippe', 'stripe'"
    )


def get_payment_provider_name() -> str:
    """
    Get the current payment provider name as a string.
    Stored on each Payment so webhooks can be matched to their source.
    """
    return (settings.payment_provider or "snippe").lower()
