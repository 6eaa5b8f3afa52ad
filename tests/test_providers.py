"""Tests for backend providers and the provider registry."""

import json
import sys
from unittest.mock import MagicMock

import httpx
import pytest
from ancient_glyph_translator.config import ModelConfig, PipelineConfig, TransportConfig
from ancient_glyph_translator.errors import BackendError, ErrorKind
from ancient_glyph_translator.providers.claude import ClaudeProvider
from ancient_glyph_translator.providers.gemini import GeminiProvider
from ancient_glyph_translator.providers.huggingface import HuggingFaceProvider
from ancient_glyph_translator.providers.openai_provider import OpenAIProvider
from ancient_glyph_translator.providers.registry import ProviderRegistry
from ancient_glyph_translator.providers.tesseract import TesseractProvider
from ancient_glyph_translator.transport import HTTPTransport

GEMINI_OK = {"candidates": [{"content": {"parts": [{"text": "道法自然"}]}}]}


def make_transport(handler) -> HTTPTransport:
    client = httpx.Client(transport=httpx.MockTransport(handler))
    return HTTPTransport(TransportConfig(), client=client)


class TestGeminiProvider:
    def setup_method(self):
        self.requests = []

    def _provider(self, status=200, body=None, content=None):
        def handler(request):
            self.requests.append(request)
            if content is not None:
                return httpx.Response(status, content=content)
            return httpx.Response(status, json=body if body is not None else GEMINI_OK)

        return GeminiProvider(
            "test-key", ModelConfig("v1beta", "gemini-2.5-flash"), make_transport(handler)
        )

    def test_name(self):
        assert self._provider().name == "gemini:gemini-2.5-flash@v1beta"

    def test_vision_request(self, image_payload):
        text = self._provider().generate("Extract", image_payload, max_tokens=500, timeout=60)

        assert text == "道法自然"
        request = self.requests[0]
        assert request.url.path == "/v1beta/models/gemini-2.5-flash:generateContent"
        assert request.headers["x-goog-api-key"] == "test-key"
        assert "key=" not in str(request.url)
        body = json.loads(request.content)
        parts = body["contents"][0]["parts"]
        assert parts[0] == {"text": "Extract"}
        assert parts[1]["inline_data"]["mime_type"] == "image/png"
        assert body["generationConfig"] == {"temperature": 0.1, "maxOutputTokens": 500}

    @pytest.mark.parametrize("status,kind", [
        (404, ErrorKind.NOT_FOUND),
        (429, ErrorKind.RATE_LIMITED),
        (500, ErrorKind.HTTP_ERROR),
    ])
    def test_error_status(self, status, kind):
        provider = self._provider(status=status, body={"error": {"message": "nope"}})
        with pytest.raises(BackendError) as exc_info:
            provider.generate("hi")
        assert exc_info.value.kind == kind
        assert "nope" in str(exc_info.value)
        assert exc_info.value.provider == provider.name

    def test_non_json_body(self):
        with pytest.raises(BackendError) as exc_info:
            self._provider(content=b"<html>").generate("hi")
        assert exc_info.value.kind == ErrorKind.INVALID_RESPONSE

    def test_unexpected_shape_is_empty_text(self):
        assert self._provider(body={"promptFeedback": {}}).generate("hi") == ""


class TestClaudeProvider:
    def setup_method(self):
        self.client = MagicMock()
        self.provider = ClaudeProvider("key", "claude-sonnet-4-6", client=self.client)

    def test_generate_text(self):
        block = MagicMock(type="text", text=" 道法自然 ")
        self.client.messages.create.return_value = MagicMock(content=[block], stop_reason="end_turn")

        assert self.provider.generate("Translate", max_tokens=300, timeout=30) == "道法自然"
        kwargs = self.client.messages.create.call_args.kwargs
        assert kwargs["model"] == "claude-sonnet-4-6"
        assert kwargs["max_tokens"] == 300
        assert kwargs["timeout"] == 30
        assert kwargs["messages"][0]["content"] == [{"type": "text", "text": "Translate"}]

    def test_image_block_first(self, image_payload):
        block = MagicMock(type="text", text="道")
        self.client.messages.create.return_value = MagicMock(content=[block], stop_reason="end_turn")

        self.provider.generate("Extract", image_payload)
        content = self.client.messages.create.call_args.kwargs["messages"][0]["content"]
        assert content[0]["type"] == "image"
        assert content[0]["source"]["media_type"] == "image/png"
        assert content[1]["type"] == "text"

    def test_sdk_error_wrapped(self):
        self.client.messages.create.side_effect = RuntimeError("boom")
        with pytest.raises(BackendError) as exc_info:
            self.provider.generate("hi")
        assert exc_info.value.kind == ErrorKind.APPLICATION
        assert exc_info.value.provider == "claude:claude-sonnet-4-6"

    def test_missing_sdk_has_install_hint(self, monkeypatch):
        monkeypatch.setitem(sys.modules, "anthropic", None)
        with pytest.raises(ImportError, match="pip install anthropic"):
            ClaudeProvider("key")


class TestOpenAIProvider:
    def setup_method(self):
        self.client = MagicMock()
        self.provider = OpenAIProvider("key", "gpt-4o", client=self.client)

    def test_generate_text(self):
        choice = MagicMock(finish_reason="stop")
        choice.message.content = "The Tao follows nature."
        self.client.chat.completions.create.return_value = MagicMock(choices=[choice])

        assert self.provider.generate("Translate") == "The Tao follows nature."
        kwargs = self.client.chat.completions.create.call_args.kwargs
        assert kwargs["messages"][0]["content"] == "Translate"

    def test_image_as_data_url(self, image_payload):
        choice = MagicMock(finish_reason="stop")
        choice.message.content = "道"
        self.client.chat.completions.create.return_value = MagicMock(choices=[choice])

        self.provider.generate("Extract", image_payload)
        content = self.client.chat.completions.create.call_args.kwargs["messages"][0]["content"]
        assert content[1]["image_url"]["url"].startswith("data:image/png;base64,")

    def test_no_choices(self):
        self.client.chat.completions.create.return_value = MagicMock(choices=[])
        assert self.provider.generate("hi") == ""


class TestHuggingFaceProvider:
    def test_generate(self):
        seen = {}

        def handler(request):
            seen["auth"] = request.headers.get("authorization")
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, json=[{"generated_text": "，故曰"}])

        provider = HuggingFaceProvider("hf-key", "uer/gpt2-chinese-ancient", make_transport(handler))
        assert provider.generate("道法自然", max_tokens=10) == "，故曰"
        assert seen["auth"] == "Bearer hf-key"
        assert seen["body"]["parameters"] == {"max_new_tokens": 10, "return_full_text": False}

    def test_error_payload(self):
        transport = make_transport(lambda request: httpx.Response(200, json={"error": "loading"}))
        provider = HuggingFaceProvider("k", "m", transport)
        with pytest.raises(BackendError) as exc_info:
            provider.generate("道")
        assert exc_info.value.kind == ErrorKind.APPLICATION

    def test_gone_model(self):
        transport = make_transport(lambda request: httpx.Response(410, json={}))
        with pytest.raises(BackendError) as exc_info:
            HuggingFaceProvider("k", "m", transport).generate("道")
        assert exc_info.value.kind == ErrorKind.GONE

    def test_rejects_images(self, image_payload):
        provider = HuggingFaceProvider("k", "m", make_transport(lambda r: httpx.Response(200)))
        with pytest.raises(BackendError):
            provider.generate("道", image_payload)


class TestTesseractProvider:
    def setup_method(self):
        self.provider = TesseractProvider(lang="chi_tra")
        self.provider.pytesseract = MagicMock()
        self.provider.pytesseract.TesseractError = type("TesseractError", (RuntimeError,), {})

    def test_extract(self, image_payload):
        self.provider.pytesseract.image_to_string.return_value = " 道法自然\n"
        assert self.provider.generate("ignored", image_payload) == "道法自然"
        kwargs = self.provider.pytesseract.image_to_string.call_args.kwargs
        assert kwargs["lang"] == "chi_tra"

    def test_timeout(self, image_payload):
        self.provider.pytesseract.image_to_string.side_effect = RuntimeError("Tesseract process timeout")
        with pytest.raises(BackendError) as exc_info:
            self.provider.generate("", image_payload)
        assert exc_info.value.kind == ErrorKind.TIMEOUT

    def test_tesseract_error(self, image_payload):
        error = self.provider.pytesseract.TesseractError("missing chi_tra.traineddata")
        self.provider.pytesseract.image_to_string.side_effect = error
        with pytest.raises(BackendError) as exc_info:
            self.provider.generate("", image_payload)
        assert exc_info.value.kind == ErrorKind.APPLICATION

    def test_needs_image(self):
        with pytest.raises(BackendError):
            self.provider.generate("")

    def test_flags(self):
        assert self.provider.supports_images is True
        assert self.provider.accepts_prompt is False


class TestProviderRegistry:
    def setup_method(self):
        self.transport = HTTPTransport(TransportConfig())

    def test_empty_without_keys(self, config):
        registry = ProviderRegistry.from_config(config, self.transport)
        assert registry.vision == []
        assert registry.text == []
        assert registry.verifier is None

    def test_gemini_configurations_are_primary(self):
        config = PipelineConfig(gemini_api_key="k", transport=TransportConfig())
        registry = ProviderRegistry.from_config(config, self.transport)

        names = [p.name for p in registry.vision]
        assert names == [
            "gemini:gemini-2.5-flash@v1beta",
            "gemini:gemini-2.5-flash@v1",
            "gemini:gemini-2.5-flash-lite@v1beta",
            "gemini:gemini-2.5-flash-lite@v1",
        ]
        assert registry.primary == set(names)
        assert [p.name for p in registry.text] == names
        # Shared instances across roles
        assert registry.vision[0] is registry.text[0]

    def test_order_and_roles(self):
        config = PipelineConfig(
            anthropic_api_key="a",
            openai_api_key="o",
            enable_tesseract=True,
            transport=TransportConfig(),
        )
        registry = ProviderRegistry.from_config(config, self.transport)

        assert [p.name for p in registry.vision] == [
            "claude:claude-sonnet-4-6",
            "openai:gpt-4o",
            "tesseract:chi_tra",
        ]
        assert registry.primary == set()
        assert [p.name for p in registry.text] == ["claude:claude-sonnet-4-6", "openai:gpt-4o"]
        assert [p.name for p in registry.reconstruction] == [
            "claude:claude-sonnet-4-6",
            "openai:gpt-4o",
        ]

    def test_verifier_needs_key(self):
        config = PipelineConfig(huggingface_api_key="hf", transport=TransportConfig())
        registry = ProviderRegistry.from_config(config, self.transport)
        assert registry.verifier.name == "huggingface:uer/gpt2-chinese-ancient"

    def test_verifier_disabled(self):
        config = PipelineConfig(
            huggingface_api_key="hf", enable_verification=False, transport=TransportConfig()
        )
        assert ProviderRegistry.from_config(config, self.transport).verifier is None
