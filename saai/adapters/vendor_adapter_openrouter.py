"""OpenRouter vendor adapter."""

import logging
from typing import Any, Dict, List

import httpx

from saai.adapters.vendor_adapter_base import ProviderAdapter, parse_tool_arguments
from saai.infra.config import config
from saai.infra.error_handler import wrap_llm_error
from saai.models.provider import ProviderResult, ToolCall
from saai.services.tool_registry import build_openai_tools

logger = logging.getLogger("saai.adapters.openrouter")

OPENROUTER_URL = "https://openrouter.ai/api/v1/chat/completions"


class OpenRouterAdapter(ProviderAdapter):
    name = "openrouter"
    api_key_env = "OPENROUTER_API_KEY"

    def __init__(self, timeout: float = 60.0):
        self.timeout = timeout

    @property
    def model(self) -> str:
        return config.OPENROUTER_MODEL

    async def call_with_tools(self, messages: List[Dict[str, Any]], enable_tools: bool = True) -> ProviderResult:
        if not self.is_configured():
            return self.not_configured()

        payload: Dict[str, Any] = {
            "model": self.model,
            "messages": messages,
            "max_tokens": 4096,
            "temperature": 0.7,
        }
        if enable_tools:
            payload["tools"] = build_openai_tools()
            payload["tool_choice"] = "auto"

        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
            "HTTP-Referer": config.APP_URL,
            "X-Title": "SAAI Platform",
        }

        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.post(OPENROUTER_URL, json=payload, headers=headers)
        except Exception as e:
            error = wrap_llm_error(e, self.name)
            logger.warning(f"OpenRouter call failed: {error}", extra={"category": error.category.value})
            return ProviderResult.failure(self.name, str(error), model=self.model)

        if response.status_code >= 400:
            error_text = f"OpenRouter API error: {response.status_code} - {response.text}"
            logger.warning(error_text)
            return ProviderResult.failure(self.name, error_text, model=self.model)

        data = response.json()
        choices = data.get("choices") or []
        if not choices:
            return ProviderResult.failure(self.name, "No response from OpenRouter", model=self.model)

        message = choices[0].get("message") or {}
        tool_calls = message.get("tool_calls") or []
        if tool_calls:
            function = tool_calls[0].get("function") or {}
            return ProviderResult(
                success=True,
                decision="tool",
                provider=self.name,
                model=self.model,
                text=message.get("content") or "",
                tool_call=ToolCall(
                    name=function.get("name", ""),
                    arguments=parse_tool_arguments(function.get("arguments")),
                ),
            )

        return ProviderResult(
            success=True,
            decision="message",
            provider=self.name,
            model=self.model,
            text=(message.get("content") or "").strip(),
        )
