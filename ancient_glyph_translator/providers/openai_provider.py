"""
OpenAI GPT provider (chat completions, vision via data URLs).
"""

import logging
from typing import Optional

from ancient_glyph_translator.errors import BackendError
from ancient_glyph_translator.ocr.image import ImagePayload
from ancient_glyph_translator.providers.base import BaseProvider
from ancient_glyph_translator.transport import HTTPTransport
from ancient_glyph_translator.utils import classify_sdk_error

logger = logging.getLogger(__name__)


class OpenAIProvider(BaseProvider):
    """Generation using OpenAI's chat completions API."""

    supports_images = True

    def __init__(
        self,
        api_key: str,
        model: str = "gpt-4o",
        transport: Optional[HTTPTransport] = None,
        client=None,
    ):
        if client is None:
            try:
                from openai import OpenAI
            except ImportError:
                raise ImportError(
                    "openai package required. Install with: pip install openai"
                )
            kwargs = {"api_key": api_key, "max_retries": 0}
            if transport is not None and transport.config.proxy_url:
                kwargs["http_client"] = transport.new_client()
            client = OpenAI(**kwargs)
        self.client = client
        self.model = model

    @property
    def name(self) -> str:
        return f"openai:{self.model}"

    def generate(
        self,
        prompt: str,
        image: Optional[ImagePayload] = None,
        *,
        max_tokens: int = 500,
        temperature: float = 0.1,
        timeout: float = 30.0,
    ) -> str:
        if image is not None:
            content = [
                {"type": "text", "text": prompt},
                {
                    "type": "image_url",
                    "image_url": {
                        "url": f"data:{image.mime_type};base64,{image.to_base64()}"
                    },
                },
            ]
        else:
            content = prompt

        try:
            response = self.client.chat.completions.create(
                model=self.model,
                messages=[{"role": "user", "content": content}],
                temperature=temperature,
                max_tokens=max_tokens,
                timeout=timeout,
            )
        except Exception as e:
            raise BackendError(
                f"OpenAI API error: {e}",
                kind=classify_sdk_error(e),
                status_code=getattr(e, "status_code", None),
                provider=self.name,
            ) from e

        if not response.choices:
            return ""
        text = (response.choices[0].message.content or "").strip()
        logger.debug(
            "%s: received %d chars (finish_reason=%s)",
            self.name, len(text), response.choices[0].finish_reason,
        )
        return text
