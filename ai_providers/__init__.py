"""
AI Providers Package
Subtitle Translator - remote translation/extraction clients

Usage:
    from ai_providers import create_provider
    from config.settings import settings

    provider = create_provider(settings)
    text = await provider.translate_chunk(chunk, "English", "Vietnamese",
                                          instruction, glossary, model)
"""

from .base import (
    BaseAIProvider,
    AIProviderType,
    AIConfig,
)
from .gemini_provider import GeminiProvider
from config.constants import TRANSLATION_TEMPERATURE


def create_provider(settings, provider_type: AIProviderType = AIProviderType.GEMINI) -> BaseAIProvider:
    """Create the provider described by ``settings``"""
    if provider_type != AIProviderType.GEMINI:
        raise ValueError(f"Unsupported provider: {provider_type.value}")
    return GeminiProvider(AIConfig(
        api_key=settings.google_api_key,
        model=settings.model,
        temperature=TRANSLATION_TEMPERATURE,
    ))


__all__ = [
    # Base classes
    "BaseAIProvider",
    "AIProviderType",
    "AIConfig",

    # Providers
    "GeminiProvider",
    "create_provider",
]

__version__ = "1.0.0"
