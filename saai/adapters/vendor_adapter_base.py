"""Provider adapter interface shared by every LLM vendor."""

import json
import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

from openai import AsyncOpenAI

from saai.infra.error_handler import wrap_llm_error
from saai.models.provider import ProviderResult, ToolCall
from saai.services.tool_registry import build_openai_tools


class ProviderAdapter(ABC):
    """
    One LLM vendor behind a uniform call surface.

    Adapters never raise for vendor failures. A missing key or a failed call
    comes back as ProviderResult(success=False, error=...).
    """

    name: str = ""
    api_key_env: str = ""

    @property
    @abstractmethod
    def model(self) -> str:
        """Model identifier sent to the vendor."""

    @property
    def api_key(self) -> Optional[str]:
        from saai.infra.config import config
        return getattr(config, self.api_key_env, None)

    def is_configured(self) -> bool:
        return bool(self.api_key)

    def not_configured(self) -> ProviderResult:
        return ProviderResult.failure(self.name, f"{self.api_key_env} not configured", model=self.model)

    @abstractmethod
    async def call_with_tools(self, messages: List[Dict[str, Any]], enable_tools: bool = True) -> ProviderResult:
        """Send messages with the tool catalog attached."""

    async def call_plain(self, messages: List[Dict[str, Any]]) -> ProviderResult:
        """Send messages with tools disabled."""
        return await self.call_with_tools(messages, enable_tools=False)


def parse_tool_arguments(raw: Any) -> Dict[str, Any]:
    """Arguments may arrive as a JSON string or an already-decoded object."""
    if isinstance(raw, dict):
        return raw
    if not raw:
        return {}
    try:
        parsed = json.loads(raw)
    except (json.JSONDecodeError, TypeError):
        return {}
    return parsed if isinstance(parsed, dict) else {}


def result_from_openai_message(provider: str, model: str, message: Any) -> ProviderResult:
    """Normalize an OpenAI-style chat completion message."""
    tool_calls = getattr(message, "tool_calls", None)
    if tool_calls:
        first = tool_calls[0]
        return ProviderResult(
            success=True,
            decision="tool",
            provider=provider,
            model=model,
            text=getattr(message, "content", None) or "",
            tool_call=ToolCall(
                name=first.function.name,
                arguments=parse_tool_arguments(first.function.arguments),
            ),
        )

    return ProviderResult(
        success=True,
        decision="message",
        provider=provider,
        model=model,
        text=(getattr(message, "content", None) or "").strip(),
    )


class OpenAICompatibleAdapter(ProviderAdapter):
    """Vendors that speak the OpenAI chat completions protocol."""

    base_url: str = ""
    max_tokens: int = 4096
    temperature: float = 0.7

    def __init__(self):
        self._client: Optional[AsyncOpenAI] = None
        self._client_key: Optional[str] = None
        self.logger = logging.getLogger(f"saai.adapters.{self.name}")

    @property
    def client(self) -> AsyncOpenAI:
        """Lazy client, rebuilt if the key changes."""
        if self._client is None or self._client_key != self.api_key:
            if not self.api_key:
                raise ValueError(f"{self.api_key_env} not configured")
            self._client = AsyncOpenAI(api_key=self.api_key, base_url=self.base_url)
            self._client_key = self.api_key
        return self._client

    async def call_with_tools(self, messages: List[Dict[str, Any]], enable_tools: bool = True) -> ProviderResult:
        if not self.is_configured():
            return self.not_configured()

        request_params: Dict[str, Any] = {
            "model": self.model,
            "messages": messages,
            "max_tokens": self.max_tokens,
            "temperature": self.temperature,
        }
        if enable_tools:
            request_params["tools"] = build_openai_tools()
            request_params["tool_choice"] = "auto"

        try:
            response = await self.client.chat.completions.create(**request_params)
        except Exception as e:
            error = wrap_llm_error(e, self.name)
            self.logger.warning(f"{self.name} call failed: {error}", extra={"category": error.category.value})
            return ProviderResult.failure(self.name, str(error), model=self.model)

        if not response.choices:
            return ProviderResult.failure(self.name, f"No response from {self.name}", model=self.model)

        return result_from_openai_message(self.name, self.model, response.choices[0].message)
