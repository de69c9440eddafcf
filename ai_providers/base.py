"""
Base AI Provider - Abstract Interface
Subtitle Translator - remote translation/extraction client
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Optional

from core.cancellation import CancellationToken


class AIProviderType(Enum):
    """Supported AI Providers"""
    GEMINI = "gemini"


@dataclass
class AIConfig:
    """Provider configuration"""
    api_key: str
    model: str
    temperature: float = 0.3
    max_tokens: Optional[int] = None


class BaseAIProvider(ABC):
    """
    Abstract base class for AI providers.

    The job runner only ever calls ``extract_glossary`` and
    ``translate_chunk``; both check the cancellation token before calling
    out and raise ``RemoteCallError`` for failed calls. Calls already in
    flight are cancelled by the runner, which awaits them through the token.
    """

    def __init__(self, config: AIConfig):
        self.config = config

    @property
    @abstractmethod
    def provider_type(self) -> AIProviderType:
        """Return the provider type"""
        pass

    @property
    @abstractmethod
    def supported_models(self) -> List[str]:
        """Return list of supported models"""
        pass

    @property
    def is_configured(self) -> bool:
        return bool(self.config.api_key)

    @abstractmethod
    def ensure_configured(self) -> None:
        """
        Fail fast when the provider cannot make calls.

        Raises:
            ConfigurationError: If the API key is missing
        """
        pass

    @abstractmethod
    async def extract_glossary(
        self,
        text: str,
        source_lang: str,
        target_lang: str,
        token: Optional[CancellationToken] = None,
    ) -> Dict[str, str]:
        """
        Build a term -> translation glossary from a subtitle sample.

        Args:
            text: Subtitle content (already truncated by the caller)
            source_lang: Source language name
            target_lang: Target language name
            token: Cancellation token of the owning run

        Returns:
            Mapping of source terms to suggested translations
        """
        pass

    @abstractmethod
    async def translate_chunk(
        self,
        text: str,
        source_lang: str,
        target_lang: str,
        instruction: str,
        glossary: Optional[Dict[str, str]],
        model: str,
        token: Optional[CancellationToken] = None,
        chunk_number: int = 1,
        chunk_total: int = 1,
    ) -> str:
        """
        Translate one chunk of subtitle entries.

        Args:
            text: Chunk content (entries joined by blank lines)
            source_lang: Source language name
            target_lang: Target language name
            instruction: User's translation instructions
            glossary: Terms the translation must follow
            model: Model identifier to use
            token: Cancellation token of the owning run
            chunk_number: 1-based position of the chunk
            chunk_total: Number of chunks in the job

        Returns:
            Translated subtitle content
        """
        pass

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} model={self.config.model}>"
