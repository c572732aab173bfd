"""Deterministic keyword-matching provider, always available as the last fallback."""

import re
from typing import Any, Dict, List

from saai.adapters.vendor_adapter_base import ProviderAdapter
from saai.models.provider import ProviderResult, ToolCall

MOCK_MODEL = "mock-v1"

OUTFIT_KEYWORDS = ["outfit", "what to wear", "what should i wear", "dress me", "complete look", "full look"]
RECOMMEND_KEYWORDS = ["recommend", "suggest", "show me", "find me", "looking for"]
SEARCH_KEYWORDS = ["search", "browse"]
ADD_TO_CART_KEYWORDS = ["add to cart", "add this"]

PRODUCT_ID_RE = re.compile(r"p\d+", re.IGNORECASE)
GREETING_RE = re.compile(r"\b(hello|hi|hey)\b")

GREETING_REPLY = (
    "Hello! I'm your AI shopping assistant. How can I help you today? I can recommend products, "
    "create outfits, or help you find what you're looking for."
)
THANKS_REPLY = "You're welcome! Is there anything else I can help you with?"
HELP_REPLY = (
    "I'm here to help! I can:\n"
    "- Recommend products based on your preferences\n"
    "- Create complete outfit suggestions\n"
    "- Help you find specific items\n"
    "- Manage your shopping cart\n\n"
    "What would you like to do?"
)
DEFAULT_REPLY = (
    "I understand you're interested in shopping. Would you like me to recommend some products or help "
    "you find something specific? I can also create complete outfit suggestions for any occasion!"
)


def _contains_any(text: str, keywords: List[str]) -> bool:
    return any(keyword in text for keyword in keywords)


class MockAdapter(ProviderAdapter):
    name = "mock"
    api_key_env = ""

    @property
    def model(self) -> str:
        return MOCK_MODEL

    def is_configured(self) -> bool:
        return True

    def _tool(self, name: str, arguments: Dict[str, Any]) -> ProviderResult:
        return ProviderResult(
            success=True,
            decision="tool",
            provider=self.name,
            model=self.model,
            tool_call=ToolCall(name=name, arguments=arguments),
        )

    async def call_with_tools(self, messages: List[Dict[str, Any]], enable_tools: bool = True) -> ProviderResult:
        last_message = (messages[-1].get("content") or "") if messages else ""
        lower = last_message.lower()

        if enable_tools:
            if _contains_any(lower, OUTFIT_KEYWORDS):
                return self._tool("recommend_outfit", {"query": last_message})
            if _contains_any(lower, RECOMMEND_KEYWORDS):
                return self._tool("recommend_products", {"query": last_message})
            if _contains_any(lower, SEARCH_KEYWORDS):
                return self._tool("search_products", {"query": last_message})
            if _contains_any(lower, ADD_TO_CART_KEYWORDS):
                match = PRODUCT_ID_RE.search(last_message)
                return self._tool("add_to_cart", {
                    "productId": match.group(0) if match else "unknown",
                    "quantity": 1,
                })

        if GREETING_RE.search(lower):
            text = GREETING_REPLY
        elif "thank" in lower:
            text = THANKS_REPLY
        elif "help" in lower:
            text = HELP_REPLY
        else:
            text = DEFAULT_REPLY

        return ProviderResult(success=True, decision="message", provider=self.name, model=self.model, text=text)
