"""
Pytest configuration and shared fixtures for the glyph pipeline tests.

No test talks to a real backend: providers are replaced by FakeProvider,
REST calls go through httpx.MockTransport, and every credential / proxy
environment variable is cleared before each test.
"""

import io
import threading
from typing import Optional

import pytest
from PIL import Image

from ancient_glyph_translator.config import PipelineConfig, TransportConfig
from ancient_glyph_translator.ocr.image import ImagePayload
from ancient_glyph_translator.providers.base import BaseProvider

ENV_VARS = [
    "GOOGLE_GEMINI_API_KEY",
    "ANTHROPIC_API_KEY",
    "OPENAI_API_KEY",
    "HUGGINGFACE_API_KEY",
    "ENABLE_OCR_FALLBACK",
    "SOCKS5_PROXY",
    "SOCKS_PROXY",
    "PROXYCHAINS_CONF_FILE",
    "LD_PRELOAD",
]


class FakeProvider(BaseProvider):
    """
    Scripted provider.

    ``responses`` is consumed in order and the last entry repeats. An entry
    is a string (returned), an exception (raised) or a callable taking the
    prompt and returning either.
    """

    supports_images = True

    def __init__(self, name: str = "fake", responses=None, accepts_prompt: bool = True):
        self._name = name
        self.responses = list(responses) if responses is not None else [""]
        self.accepts_prompt = accepts_prompt
        self.calls: list[dict] = []
        self._lock = threading.Lock()

    @property
    def name(self) -> str:
        return self._name

    def generate(
        self,
        prompt: str,
        image: Optional[ImagePayload] = None,
        *,
        max_tokens: int = 500,
        temperature: float = 0.1,
        timeout: float = 30.0,
    ) -> str:
        with self._lock:
            self.calls.append({
                "prompt": prompt,
                "image": image,
                "max_tokens": max_tokens,
                "temperature": temperature,
                "timeout": timeout,
            })
            item = self.responses.pop(0) if len(self.responses) > 1 else self.responses[0]
        if callable(item) and not isinstance(item, type):
            item = item(prompt)
        if isinstance(item, Exception):
            raise item
        return item


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Keep the developer's real keys and proxy settings out of the tests."""
    for var in ENV_VARS:
        monkeypatch.delenv(var, raising=False)


@pytest.fixture
def png_bytes() -> bytes:
    buffer = io.BytesIO()
    Image.new("RGB", (240, 80), "white").save(buffer, format="PNG")
    return buffer.getvalue()


@pytest.fixture
def image_payload(png_bytes) -> ImagePayload:
    return ImagePayload.from_bytes(png_bytes, path="stele.png")


@pytest.fixture
def image_path(tmp_path, png_bytes) -> str:
    path = tmp_path / "stele.png"
    path.write_bytes(png_bytes)
    return str(path)


@pytest.fixture
def config() -> PipelineConfig:
    """Configuration without any credentials."""
    return PipelineConfig(transport=TransportConfig())
