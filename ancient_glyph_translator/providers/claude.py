"""
Anthropic Claude provider.

Used as an auxiliary vision backend for OCR and reconstruction and as a
text backend for meanings and translation.
"""

import logging
from typing import Optional

from ancient_glyph_translator.errors import BackendError
from ancient_glyph_translator.ocr.image import ImagePayload
from ancient_glyph_translator.providers.base import BaseProvider
from ancient_glyph_translator.transport import HTTPTransport
from ancient_glyph_translator.utils import classify_sdk_error

logger = logging.getLogger(__name__)


class ClaudeProvider(BaseProvider):
    """Generation using Anthropic's Messages API."""

    supports_images = True

    def __init__(
        self,
        api_key: str,
        model: str = "claude-sonnet-4-6",
        transport: Optional[HTTPTransport] = None,
        client=None,
    ):
        if client is None:
            try:
                import anthropic
            except ImportError:
                raise ImportError(
                    "anthropic package required. Install with: pip install anthropic"
                )
            kwargs = {"api_key": api_key, "max_retries": 0}
            if transport is not None and transport.config.proxy_url:
                kwargs["http_client"] = transport.new_client()
            client = anthropic.Anthropic(**kwargs)
        self.client = client
        self.model = model

    @property
    def name(self) -> str:
        return f"claude:{self.model}"

    def generate(
        self,
        prompt: str,
        image: Optional[ImagePayload] = None,
        *,
        max_tokens: int = 500,
        temperature: float = 0.1,
        timeout: float = 30.0,
    ) -> str:
        content: list[dict] = []
        if image is not None:
            content.append({
                "type": "image",
                "source": {
                    "type": "base64",
                    "media_type": image.mime_type,
                    "data": image.to_base64(),
                },
            })
        content.append({"type": "text", "text": prompt})

        try:
            message = self.client.messages.create(
                model=self.model,
                max_tokens=max_tokens,
                temperature=temperature,
                messages=[{"role": "user", "content": content}],
                timeout=timeout,
            )
        except Exception as e:
            raise BackendError(
                f"Claude API error: {e}",
                kind=classify_sdk_error(e),
                status_code=getattr(e, "status_code", None),
                provider=self.name,
            ) from e

        text = "".join(
            block.text for block in message.content
            if getattr(block, "type", None) == "text"
        ).strip()
        logger.debug(
            "%s: received %d chars (stop_reason=%s)",
            self.name, len(text), message.stop_reason,
        )
        return text
