"""Ordered multi-provider LLM router with sequential failover."""

import asyncio
import logging
import time
from typing import Dict, List, Optional

from saai.adapters.vendor_adapter_base import ProviderAdapter
from saai.infra.config import config
from saai.infra.metrics import llm_call_duration, llm_calls_total, provider_fallbacks_total
from saai.infra.timeout import LLM_CALL_TIMEOUT
from saai.models.provider import ProviderResult
from saai.services import text_tool_recovery

logger = logging.getLogger(__name__)

# Fastest measured providers first; mock is always the terminal fallback
DEFAULT_PRIORITY = ["groq", "gemini", "mistral", "mock"]
TERMINAL_PROVIDER = "mock"

FALLBACK_APOLOGY = (
    "I apologize, but I'm having trouble connecting right now. Please try again in a moment."
)


def parse_priority(raw: Optional[str], known: List[str]) -> List[str]:
    """
    Parse a comma-separated provider list.

    Unknown names are dropped. The mock provider is appended when missing.
    An empty or fully-invalid list yields DEFAULT_PRIORITY.
    """
    if not raw:
        return list(DEFAULT_PRIORITY)

    parsed = []
    for name in raw.split(","):
        name = name.strip().lower()
        if name in known and name not in parsed:
            parsed.append(name)

    if not parsed:
        logger.warning(f"LLM_PRIORITY '{raw}' has no known providers, using default order")
        return list(DEFAULT_PRIORITY)

    if TERMINAL_PROVIDER not in parsed:
        parsed.append(TERMINAL_PROVIDER)
    return parsed


class ProviderRouter:
    """
    Tries providers in priority order until one succeeds.

    A failed attempt (success=False, an exception, or a timeout) moves on to
    the next provider. The same provider is never retried within a call.
    """

    def __init__(
        self,
        adapters: Dict[str, ProviderAdapter],
        priority: Optional[List[str]] = None,
        timeout: float = LLM_CALL_TIMEOUT,
    ):
        self.adapters = adapters
        self._priority = priority
        self.timeout = timeout

    def get_provider_priority(self) -> List[str]:
        """Explicit constructor priority wins; otherwise LLM_PRIORITY is re-read."""
        known = list(self.adapters.keys())
        if self._priority is not None:
            return parse_priority(",".join(self._priority), known)
        return parse_priority(config.LLM_PRIORITY, known)

    async def _attempt(self, name: str, messages: List[Dict], with_tools: bool) -> ProviderResult:
        """Run a single adapter call, turning raised errors and timeouts into failures."""
        adapter = self.adapters.get(name)
        if adapter is None:
            return ProviderResult.failure(name, f"Provider '{name}' is not registered")

        call = adapter.call_with_tools(messages) if with_tools else adapter.call_plain(messages)
        start = time.time()
        try:
            result = await asyncio.wait_for(call, timeout=self.timeout)
        except asyncio.TimeoutError:
            result = ProviderResult.failure(name, f"{name} timed out after {self.timeout}s", model=adapter.model)
        except Exception as e:
            logger.warning(f"Provider {name} raised: {e}", exc_info=True)
            result = ProviderResult.failure(name, str(e), model=adapter.model)

        duration = time.time() - start
        llm_calls_total.labels(
            provider=name,
            model=result.model,
            status="success" if result.success else "failure",
        ).inc()
        llm_call_duration.labels(provider=name, model=result.model).observe(duration)

        if not result.success:
            logger.info(
                f"Provider {name} failed, trying next",
                extra={"provider": name, "error": result.error, "duration_ms": int(duration * 1000)},
            )
        return result

    async def run_with_tools(self, messages: List[Dict]) -> ProviderResult:
        """
        Decision call: the first successful provider decides message vs tool.

        Never raises for provider failures. When every provider fails the
        result is a static apology tagged provider='fallback'.
        """
        last_error: Optional[str] = None

        for name in self.get_provider_priority():
            result = await self._attempt(name, messages, with_tools=True)
            if not result.success:
                last_error = result.error
                continue

            if result.decision == "message" and result.text:
                recovered = text_tool_recovery.recover(result.text)
                if recovered:
                    result = result.model_copy(update={"decision": "tool", "tool_call": recovered})

            logger.info(
                f"Provider {name} decided '{result.decision}'",
                extra={
                    "provider": name,
                    "decision": result.decision,
                    "tool_name": result.tool_call.name if result.tool_call else None,
                },
            )
            return result

        provider_fallbacks_total.labels(stage="tools").inc()
        logger.error(f"All providers failed for tool decision: {last_error}")
        return ProviderResult(
            success=True,
            decision="message",
            provider="fallback",
            model="none",
            text=FALLBACK_APOLOGY,
            error=last_error,
        )

    async def run_plain(self, messages: List[Dict], preferred_provider: Optional[str] = None) -> ProviderResult:
        """
        Tool-less call, optionally trying preferred_provider first.

        Unlike run_with_tools, exhaustion is surfaced as success=False so the
        caller can pick its own fallback text.
        """
        order = self.get_provider_priority()
        if preferred_provider and preferred_provider in self.adapters:
            order = [preferred_provider] + [name for name in order if name != preferred_provider]

        last_error: Optional[str] = None
        for name in order:
            result = await self._attempt(name, messages, with_tools=False)
            if result.success:
                return result
            last_error = result.error

        provider_fallbacks_total.labels(stage="plain").inc()
        return ProviderResult(
            success=False,
            decision="message",
            provider="fallback",
            model="none",
            text="",
            error=last_error,
        )

    def get_provider_status(self) -> Dict[str, bool]:
        return {name: adapter.is_configured() for name, adapter in self.adapters.items()}

    def health_check(self) -> Dict:
        status = self.get_provider_status()
        available = [name for name, ok in status.items() if ok]
        return {
            "healthy": len(available) > 0,
            "available_providers": available,
            "priority": self.get_provider_priority(),
            "status": status,
        }


def build_default_router() -> ProviderRouter:
    """Router with every bundled vendor adapter registered."""
    from saai.adapters.vendor_adapter_gemini import GeminiAdapter
    from saai.adapters.vendor_adapter_groq import GroqAdapter
    from saai.adapters.vendor_adapter_mistral import MistralAdapter
    from saai.adapters.vendor_adapter_mock import MockAdapter
    from saai.adapters.vendor_adapter_openrouter import OpenRouterAdapter

    adapters: Dict[str, ProviderAdapter] = {
        "groq": GroqAdapter(),
        "gemini": GeminiAdapter(),
        "mistral": MistralAdapter(),
        "openrouter": OpenRouterAdapter(),
        "mock": MockAdapter(),
    }
    return ProviderRouter(adapters)
