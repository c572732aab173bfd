"""Tests for the vendor adapters."""

import os
import pytest
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock, PropertyMock, patch

from saai.adapters.vendor_adapter_base import parse_tool_arguments
from saai.adapters.vendor_adapter_gemini import GeminiAdapter, convert_messages
from saai.adapters.vendor_adapter_groq import GroqAdapter
from saai.adapters.vendor_adapter_mistral import MistralAdapter
from saai.adapters.vendor_adapter_mock import MOCK_MODEL, MockAdapter, THANKS_REPLY
from saai.adapters.vendor_adapter_openrouter import OpenRouterAdapter


def _completion(content=None, tool_calls=None):
    message = SimpleNamespace(content=content, tool_calls=tool_calls)
    return SimpleNamespace(choices=[SimpleNamespace(message=message)])


def _tool_call(name, arguments):
    return SimpleNamespace(function=SimpleNamespace(name=name, arguments=arguments))


class TestMockAdapter:
    """Keyword intent matching of the terminal provider."""

    @pytest.mark.asyncio
    async def test_outfit_keywords(self):
        result = await MockAdapter().call_with_tools([{"role": "user", "content": "What should I wear to Eid?"}])
        assert result.success is True
        assert result.decision == "tool"
        assert result.tool_call.name == "recommend_outfit"
        assert result.model == MOCK_MODEL

    @pytest.mark.asyncio
    async def test_recommend_keywords(self):
        result = await MockAdapter().call_with_tools([{"role": "user", "content": "show me white shirts"}])
        assert result.tool_call.name == "recommend_products"
        assert result.tool_call.arguments == {"query": "show me white shirts"}

    @pytest.mark.asyncio
    async def test_search_keywords(self):
        result = await MockAdapter().call_with_tools([{"role": "user", "content": "browse sneakers"}])
        assert result.tool_call.name == "search_products"

    @pytest.mark.asyncio
    async def test_add_to_cart_extracts_product_id(self):
        result = await MockAdapter().call_with_tools([{"role": "user", "content": "add to cart p105 please"}])
        assert result.tool_call.name == "add_to_cart"
        assert result.tool_call.arguments["productId"] == "p105"

    @pytest.mark.asyncio
    async def test_add_to_cart_without_id(self):
        result = await MockAdapter().call_with_tools([{"role": "user", "content": "add this"}])
        assert result.tool_call.arguments["productId"] == "unknown"

    @pytest.mark.asyncio
    async def test_plain_call_never_returns_tool(self):
        result = await MockAdapter().call_plain([{"role": "user", "content": "recommend an outfit"}])
        assert result.decision == "message"
        assert result.tool_call is None
        assert result.text

    @pytest.mark.asyncio
    async def test_thanks_reply(self):
        result = await MockAdapter().call_with_tools([{"role": "user", "content": "thank you so much"}])
        assert result.decision == "message"
        assert result.text == THANKS_REPLY


class TestNotConfigured:
    """Adapters without a key fail fast without network I/O."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize("adapter_cls,key", [
        (GroqAdapter, "GROQ_API_KEY"),
        (MistralAdapter, "MISTRAL_API_KEY"),
        (GeminiAdapter, "GEMINI_API_KEY"),
        (OpenRouterAdapter, "OPENROUTER_API_KEY"),
    ])
    async def test_missing_key(self, adapter_cls, key):
        adapter = adapter_cls()
        assert adapter.is_configured() is False

        result = await adapter.call_with_tools([{"role": "user", "content": "hi"}])
        assert result.success is False
        assert result.error == f"{key} not configured"
        assert result.provider == adapter.name


class TestOpenAICompatibleAdapters:
    """Groq and Mistral response normalization."""

    @pytest.mark.asyncio
    async def test_groq_tool_call(self):
        client = MagicMock()
        client.chat.completions.create = AsyncMock(return_value=_completion(
            tool_calls=[_tool_call("search_products", '{"query": "shoes"}')]
        ))

        with patch.dict(os.environ, {"GROQ_API_KEY": "test-key"}):
            with patch.object(GroqAdapter, "client", new_callable=PropertyMock, return_value=client):
                result = await GroqAdapter().call_with_tools([{"role": "user", "content": "shoes"}])

        assert result.success is True
        assert result.decision == "tool"
        assert result.tool_call.name == "search_products"
        assert result.tool_call.arguments == {"query": "shoes"}

        kwargs = client.chat.completions.create.call_args.kwargs
        assert kwargs["tool_choice"] == "auto"
        assert kwargs["max_tokens"] == 4096
        assert kwargs["temperature"] == 0.7
        assert len(kwargs["tools"]) == 12

    @pytest.mark.asyncio
    async def test_groq_plain_call_sends_no_tools(self):
        client = MagicMock()
        client.chat.completions.create = AsyncMock(return_value=_completion(content="  Hello there  "))

        with patch.dict(os.environ, {"GROQ_API_KEY": "test-key"}):
            with patch.object(GroqAdapter, "client", new_callable=PropertyMock, return_value=client):
                result = await GroqAdapter().call_plain([{"role": "user", "content": "hi"}])

        assert result.decision == "message"
        assert result.text == "Hello there"
        assert "tools" not in client.chat.completions.create.call_args.kwargs

    @pytest.mark.asyncio
    async def test_mistral_dict_arguments(self):
        client = MagicMock()
        client.chat.completions.create = AsyncMock(return_value=_completion(
            tool_calls=[_tool_call("add_to_cart", {"productId": "p101"})]
        ))

        with patch.dict(os.environ, {"MISTRAL_API_KEY": "test-key"}):
            with patch.object(MistralAdapter, "client", new_callable=PropertyMock, return_value=client):
                result = await MistralAdapter().call_with_tools([{"role": "user", "content": "add p101"}])

        assert result.tool_call.arguments == {"productId": "p101"}

    @pytest.mark.asyncio
    async def test_vendor_exception_becomes_failure(self):
        client = MagicMock()
        client.chat.completions.create = AsyncMock(side_effect=Exception("Error code: 429 rate limit"))

        with patch.dict(os.environ, {"GROQ_API_KEY": "test-key"}):
            with patch.object(GroqAdapter, "client", new_callable=PropertyMock, return_value=client):
                result = await GroqAdapter().call_with_tools([{"role": "user", "content": "hi"}])

        assert result.success is False
        assert "rate limit" in result.error

    def test_parse_tool_arguments(self):
        assert parse_tool_arguments('{"a": 1}') == {"a": 1}
        assert parse_tool_arguments({"a": 1}) == {"a": 1}
        assert parse_tool_arguments("not json") == {}
        assert parse_tool_arguments("[1, 2]") == {}
        assert parse_tool_arguments(None) == {}


class TestGeminiAdapter:
    """Gemini message conversion and REST response handling."""

    def test_system_prompt_prepended_to_last_user_turn(self):
        system, contents = convert_messages([
            {"role": "system", "content": "SYS"},
            {"role": "user", "content": "first"},
            {"role": "assistant", "content": "reply"},
            {"role": "user", "content": "second"},
        ])

        assert system == "SYS"
        assert [c["role"] for c in contents] == ["user", "model", "user"]
        assert contents[0]["parts"][0]["text"] == "first"
        assert contents[2]["parts"][0]["text"] == "SYS\n\nsecond"

    def test_empty_conversation(self):
        _, contents = convert_messages([])
        assert contents == [{"role": "user", "parts": [{"text": "Hello"}]}]

    @pytest.mark.asyncio
    async def test_function_call_part(self):
        response = MagicMock()
        response.raise_for_status.return_value = None
        response.json.return_value = {
            "candidates": [{"content": {"parts": [
                {"text": "Let me look."},
                {"functionCall": {"name": "recommend_outfit", "args": {"query": "eid"}}},
            ]}}]
        }
        http_client = MagicMock()
        http_client.post = AsyncMock(return_value=response)

        with patch.dict(os.environ, {"GEMINI_API_KEY": "test-key"}):
            with patch("saai.adapters.vendor_adapter_gemini.httpx.AsyncClient") as client_cls:
                client_cls.return_value.__aenter__.return_value = http_client
                result = await GeminiAdapter().call_with_tools([{"role": "user", "content": "eid outfit"}])

        assert result.decision == "tool"
        assert result.tool_call.name == "recommend_outfit"
        assert result.tool_call.arguments == {"query": "eid"}

        payload = http_client.post.call_args.kwargs["json"]
        assert payload["toolConfig"] == {"functionCallingConfig": {"mode": "AUTO"}}
        assert http_client.post.call_args.kwargs["headers"]["x-goog-api-key"] == "test-key"

    @pytest.mark.asyncio
    async def test_text_parts_joined(self):
        response = MagicMock()
        response.raise_for_status.return_value = None
        response.json.return_value = {
            "candidates": [{"content": {"parts": [{"text": "Hello "}, {"text": "there "}]}}]
        }
        http_client = MagicMock()
        http_client.post = AsyncMock(return_value=response)

        with patch.dict(os.environ, {"GEMINI_API_KEY": "test-key"}):
            with patch("saai.adapters.vendor_adapter_gemini.httpx.AsyncClient") as client_cls:
                client_cls.return_value.__aenter__.return_value = http_client
                result = await GeminiAdapter().call_plain([{"role": "user", "content": "hi"}])

        assert result.decision == "message"
        assert result.text == "Hello there"
        assert "tools" not in http_client.post.call_args.kwargs["json"]


class TestOpenRouterAdapter:
    """OpenRouter HTTP handling."""

    @pytest.mark.asyncio
    async def test_non_2xx_is_failure(self):
        response = MagicMock()
        response.status_code = 503
        response.text = "upstream unavailable"
        http_client = MagicMock()
        http_client.post = AsyncMock(return_value=response)

        with patch.dict(os.environ, {"OPENROUTER_API_KEY": "test-key"}):
            with patch("saai.adapters.vendor_adapter_openrouter.httpx.AsyncClient") as client_cls:
                client_cls.return_value.__aenter__.return_value = http_client
                result = await OpenRouterAdapter().call_with_tools([{"role": "user", "content": "hi"}])

        assert result.success is False
        assert "503" in result.error
        assert "upstream unavailable" in result.error

        headers = http_client.post.call_args.kwargs["headers"]
        assert headers["X-Title"] == "SAAI Platform"
        assert headers["Authorization"] == "Bearer test-key"
