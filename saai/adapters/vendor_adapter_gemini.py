"""Gemini vendor adapter using the generateContent REST API."""

import logging
from typing import Any, Dict, List, Tuple

import httpx

from saai.adapters.vendor_adapter_base import ProviderAdapter
from saai.infra.config import config
from saai.infra.error_handler import wrap_llm_error
from saai.models.provider import ProviderResult, ToolCall
from saai.services.tool_registry import build_gemini_tools

logger = logging.getLogger("saai.adapters.gemini")

GEMINI_API_BASE = "https://generativelanguage.googleapis.com/v1beta/models"


def convert_messages(messages: List[Dict[str, Any]]) -> Tuple[str, List[Dict[str, Any]]]:
    """
    Convert chat messages to Gemini contents.

    The last system message becomes the system instruction and is prepended
    to the last user turn. Assistant turns are sent with role 'model'.

    Returns:
        (system_instruction, contents)
    """
    system_instruction = ""
    contents: List[Dict[str, Any]] = []

    for msg in messages:
        role = msg.get("role")
        content = msg.get("content") or ""
        if role == "system":
            system_instruction = content
        elif role == "assistant":
            contents.append({"role": "model", "parts": [{"text": content}]})
        else:
            contents.append({"role": "user", "parts": [{"text": content}]})

    if system_instruction:
        for item in reversed(contents):
            if item["role"] == "user":
                item["parts"][0]["text"] = f"{system_instruction}\n\n{item['parts'][0]['text']}"
                break

    if not contents:
        contents = [{"role": "user", "parts": [{"text": "Hello"}]}]

    return system_instruction, contents


class GeminiAdapter(ProviderAdapter):
    name = "gemini"
    api_key_env = "GEMINI_API_KEY"

    def __init__(self, timeout: float = 60.0):
        self.timeout = timeout

    @property
    def model(self) -> str:
        return config.GEMINI_MODEL

    async def call_with_tools(self, messages: List[Dict[str, Any]], enable_tools: bool = True) -> ProviderResult:
        if not self.is_configured():
            return self.not_configured()

        _, contents = convert_messages(messages)
        payload: Dict[str, Any] = {"contents": contents}
        if enable_tools:
            payload["tools"] = [build_gemini_tools()]
            payload["toolConfig"] = {"functionCallingConfig": {"mode": "AUTO"}}

        url = f"{GEMINI_API_BASE}/{self.model}:generateContent"
        headers = {
            "Content-Type": "application/json",
            "x-goog-api-key": self.api_key,
        }

        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.post(url, json=payload, headers=headers)
                response.raise_for_status()
                result = response.json()
        except Exception as e:
            error = wrap_llm_error(e, self.name)
            logger.warning(f"Gemini call failed: {error}", extra={"category": error.category.value})
            return ProviderResult.failure(self.name, str(error), model=self.model)

        candidates = result.get("candidates") or []
        if not candidates:
            return ProviderResult.failure(self.name, "No response from Gemini", model=self.model)

        parts = (candidates[0].get("content") or {}).get("parts") or []

        for part in parts:
            function_call = part.get("functionCall") if isinstance(part, dict) else None
            if function_call:
                return ProviderResult(
                    success=True,
                    decision="tool",
                    provider=self.name,
                    model=self.model,
                    tool_call=ToolCall(
                        name=function_call.get("name", ""),
                        arguments=function_call.get("args") or {},
                    ),
                )

        text = "".join(part.get("text", "") for part in parts if isinstance(part, dict)).strip()
        return ProviderResult(
            success=True,
            decision="message",
            provider=self.name,
            model=self.model,
            text=text,
        )
