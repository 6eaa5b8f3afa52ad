"""
Hugging Face Inference API provider.

Only text-generation models are used: the verification probe feeds the first
characters of an OCR result to a classical-Chinese language model and checks
that it can continue them.
"""

import logging
from typing import Optional

from ancient_glyph_translator.errors import BackendError, ErrorKind
from ancient_glyph_translator.ocr.image import ImagePayload
from ancient_glyph_translator.providers.base import BaseProvider
from ancient_glyph_translator.responses import parse_hf_generated_text
from ancient_glyph_translator.transport import HTTPTransport

logger = logging.getLogger(__name__)

HF_INFERENCE_URL = "https://api-inference.huggingface.co/models"


class HuggingFaceProvider(BaseProvider):
    """Text generation through the hosted inference API."""

    def __init__(self, api_key: Optional[str], model: str, transport: HTTPTransport):
        self.api_key = api_key
        self.model = model
        self.transport = transport

    @property
    def name(self) -> str:
        return f"huggingface:{self.model}"

    def generate(
        self,
        prompt: str,
        image: Optional[ImagePayload] = None,
        *,
        max_tokens: int = 10,
        temperature: float = 0.1,
        timeout: float = 30.0,
    ) -> str:
        if image is not None:
            raise BackendError(
                "Hugging Face provider does not accept images",
                kind=ErrorKind.APPLICATION,
                provider=self.name,
            )

        headers = {}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"

        payload = {
            "inputs": prompt,
            "parameters": {
                "max_new_tokens": max_tokens,
                "return_full_text": False,
            },
        }
        try:
            response = self.transport.post_json(
                f"{HF_INFERENCE_URL}/{self.model}",
                payload,
                headers=headers,
                timeout=timeout,
            )
        except BackendError as e:
            e.provider = self.name
            raise

        if not response.ok:
            raise BackendError.from_status(
                response.status_code,
                f"Hugging Face error: {response.error_message()}",
                provider=self.name,
            )

        try:
            data = response.json()
        except ValueError as e:
            raise BackendError(
                "Hugging Face returned a non-JSON body",
                kind=ErrorKind.INVALID_RESPONSE,
                provider=self.name,
            ) from e

        if isinstance(data, dict) and data.get("error"):
            raise BackendError(
                f"Hugging Face error: {data['error']}",
                kind=ErrorKind.APPLICATION,
                provider=self.name,
            )
        return parse_hf_generated_text(data)
