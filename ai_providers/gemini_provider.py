"""
Google Gemini Provider
Subtitle Translator - glossary extraction and chunk translation
"""

from typing import Any, Dict, List, Optional

import google.generativeai as genai

from config.constants import (
    GEMINI_MODELS,
    GLOSSARY_EXTRACTION_MODEL,
    GLOSSARY_SAMPLE_CHARS,
)
from config.logging_config import get_logger
from core.cancellation import CancellationToken
from core.errors import ConfigurationError, RemoteCallError
from core.glossary import parse_glossary_response

from . import prompts
from .base import AIConfig, AIProviderType, BaseAIProvider

logger = get_logger(__name__)


class GeminiProvider(BaseAIProvider):
    """
    Google Gemini AI Provider

    Supports:
    - Glossary extraction (fixed model, JSON response)
    - Chunk translation with the job's model
    - Cooperative cancellation through CancellationToken
    """

    MODELS = {
        "gemini-2.5-flash": "Gemini 2.5 Flash",
        "gemini-2.5-pro": "Gemini 2.5 Pro",
        "gemini-3-pro-preview": "Gemini 3 Pro (Preview)",
    }

    DEFAULT_MODEL = GEMINI_MODELS[0]

    def __init__(self, config: AIConfig):
        super().__init__(config)
        self._initialized = False

    @property
    def provider_type(self) -> AIProviderType:
        return AIProviderType.GEMINI

    @property
    def supported_models(self) -> List[str]:
        return list(self.MODELS.keys())

    def ensure_configured(self) -> None:
        if not self.config.api_key:
            raise ConfigurationError(
                "Gemini API key is not set. Configure GOOGLE_API_KEY in .env"
            )
        if not self._initialized:
            genai.configure(api_key=self.config.api_key)
            self._initialized = True

    def _model(self, model_name: str, system_instruction: str,
               generation_config: Dict[str, Any]) -> 'genai.GenerativeModel':
        return genai.GenerativeModel(
            model_name=model_name,
            system_instruction=system_instruction,
            generation_config=generation_config,
        )

    async def _generate(
        self,
        model: 'genai.GenerativeModel',
        contents: str,
        token: Optional[CancellationToken],
    ) -> str:
        """Run one generate call, wrapping SDK failures in RemoteCallError."""
        if token is not None:
            token.raise_if_cancelled()
        try:
            response = await model.generate_content_async(contents)
            return response.text
        except Exception as e:
            raise RemoteCallError(f"Gemini API error: {e}", provider="gemini") from e

    async def extract_glossary(
        self,
        text: str,
        source_lang: str,
        target_lang: str,
        token: Optional[CancellationToken] = None,
    ) -> Dict[str, str]:
        """Extract names, forms of address and recurring terms as a glossary."""
        self.ensure_configured()

        model = self._model(
            GLOSSARY_EXTRACTION_MODEL,
            prompts.extraction_instruction(source_lang, target_lang),
            {"response_mime_type": "application/json"},
        )
        contents = prompts.extraction_content(
            text, source_lang, target_lang, GLOSSARY_SAMPLE_CHARS
        )

        raw = await self._generate(model, contents, token)
        glossary = parse_glossary_response(raw)
        logger.debug(f"Gemini extracted {len(glossary)} glossary terms")
        return glossary

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
        """Translate one chunk of subtitle entries using Gemini"""
        self.ensure_configured()

        generation_config = {"temperature": self.config.temperature}
        if self.config.max_tokens:
            generation_config["max_output_tokens"] = self.config.max_tokens

        client = self._model(
            model or self.config.model,
            prompts.translation_instruction(source_lang, target_lang, glossary),
            generation_config,
        )
        contents = prompts.translation_content(text, instruction, chunk_number, chunk_total)

        translated = await self._generate(client, contents, token)
        return (translated or "").strip()
