"""
Google Gemini provider (REST generateContent API).

Each instance is bound to one API version + model pair, so the fallback
order across Gemini models is expressed as several providers in the registry.
"""

import logging
from typing import Optional

from ancient_glyph_translator.config import ModelConfig
from ancient_glyph_translator.errors import BackendError, ErrorKind
from ancient_glyph_translator.ocr.image import ImagePayload
from ancient_glyph_translator.providers.base import BaseProvider
from ancient_glyph_translator.responses import parse_gemini_text
from ancient_glyph_translator.transport import HTTPTransport

logger = logging.getLogger(__name__)

GEMINI_BASE_URL = "https://generativelanguage.googleapis.com"


class GeminiProvider(BaseProvider):
    """Text and vision generation using a Gemini model."""

    supports_images = True

    def __init__(self, api_key: str, model: ModelConfig, transport: HTTPTransport):
        self.api_key = api_key
        self.model = model
        self.transport = transport

    @property
    def name(self) -> str:
        return f"gemini:{self.model.label}"

    @property
    def url(self) -> str:
        return (
            f"{GEMINI_BASE_URL}/{self.model.version}/models/"
            f"{self.model.model}:generateContent"
        )

    def build_payload(
        self,
        prompt: str,
        image: Optional[ImagePayload],
        max_tokens: int,
        temperature: float,
    ) -> dict:
        parts: list[dict] = [{"text": prompt}]
        if image is not None:
            parts.append({
                "inline_data": {
                    "mime_type": image.mime_type,
                    "data": image.to_base64(),
                }
            })
        return {
            "contents": [{"parts": parts}],
            "generationConfig": {
                "temperature": temperature,
                "maxOutputTokens": max_tokens,
            },
        }

    def generate(
        self,
        prompt: str,
        image: Optional[ImagePayload] = None,
        *,
        max_tokens: int = 500,
        temperature: float = 0.1,
        timeout: float = 30.0,
    ) -> str:
        """Call generateContent and return the first candidate's text."""
        payload = self.build_payload(prompt, image, max_tokens, temperature)
        try:
            response = self.transport.post_json(
                self.url,
                payload,
                headers={"x-goog-api-key": self.api_key},
                timeout=timeout,
            )
        except BackendError as e:
            e.provider = self.name
            raise

        if not response.ok:
            raise BackendError.from_status(
                response.status_code,
                f"Gemini API error: {response.error_message()}",
                provider=self.name,
            )

        try:
            data = response.json()
        except ValueError as e:
            raise BackendError(
                "Gemini returned a non-JSON body",
                kind=ErrorKind.INVALID_RESPONSE,
                provider=self.name,
            ) from e

        text = parse_gemini_text(data)
        logger.debug("%s: received %d chars", self.name, len(text))
        return text
