"""
Two-stage LLM orchestration for a chat turn.

Stage 1 asks the router for a decision (plain reply or tool call). When a tool
is chosen the dispatcher runs it, and stage 2 grounds the explanation in the
tool's actual output. Session context is committed only after the whole turn
succeeds.
"""

import logging
import re
from enum import Enum
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, Field

from saai.models.provider import ProviderResult, ToolCall
from saai.models.tenant import ActionRegistry, TenantConfig
from saai.services import prompt_builder, text_tool_recovery
from saai.services.action_dispatcher import ActionDispatcher
from saai.services.context_store import ConversationContextStore
from saai.services.profile_updater import build_profile_summary, get_preference_hint
from saai.services.provider_router import TERMINAL_PROVIDER, ProviderRouter
from saai.services.recent_products import (
    build_recent_products_context,
    extract_referenced_product,
    get_indexed_products,
)

logger = logging.getLogger(__name__)

GREETING_FALLBACK_TEXT = "Hey! What are you looking for today?"
DISPATCH_FAILURE_TEXT = "I tried to help with that but encountered an issue. Could you try again?"

MAX_MATCHED_PRODUCTS = 5

GREETING_ONLY_PATTERNS = [
    re.compile(r"^(hi|hey|hello|hola|yo|sup)[\s!.,]*$"),
    re.compile(r"^good\s*(morning|afternoon|evening|day)[\s!.,]*$"),
    re.compile(r"^(thanks|thank you|thx|ty)[\s!.,]*$"),
    re.compile(r"^(ok|okay|sure|alright|cool|nice|great|awesome|perfect)[\s!.,]*$"),
    re.compile(r"^whats?\s*up[\s!.,?]*$"),
    re.compile(r"^how\s*are\s*you[\s!.,?]*$"),
    re.compile(r"^(no|nope|not really|maybe later|not now)[\s!.,]*$"),
    re.compile(r"^(yes|yeah|yep|yup)[\s!.,]*$"),
]

STYLE_CHANGE_PATTERNS = [
    re.compile(p) for p in (
        r"more\s+casual",
        r"more\s+formal",
        r"more\s+street",
        r"more\s+elegant",
        r"more\s+sporty",
        r"more\s+relaxed",
        r"more\s+dressy",
        r"more\s+comfortable",
        r"less\s+formal",
        r"less\s+casual",
        r"lighter\s+colou?r",
        r"darker\s+colou?r",
        r"different\s+colou?r",
        r"change\s+(the\s+)?colou?r",
        r"brighter",
        r"make\s+it\s+more",
        r"switch\s+to",
        r"can\s+(you\s+)?make\s+it",
        r"something\s+more",
    )
]

# Checked in order; the first match wins
OCCASION_PATTERNS = [
    (re.compile(r"\b(eid|eidm|ramadan)\b"), "eid"),
    (re.compile(r"\b(wedding|shaadi|nikah|baraat)\b"), "wedding"),
    (re.compile(r"\b(office|work|formal|business|meeting)\b"), "office"),
    (re.compile(r"\b(casual|everyday|daily)\b"), "casual"),
    (re.compile(r"\b(party|celebration|club|night out)\b"), "party"),
    (re.compile(r"\b(travel|vacation|trip)\b"), "travel"),
    (re.compile(r"\b(date|dinner|romantic)\b"), "date"),
    (re.compile(r"\b(sport|gym|athletic|workout)\b"), "sports"),
]
DEFAULT_OCCASION = "casual"

GROUNDED_ACTIONS = ("recommend_outfit", "recommend_products", "search_products", "compare_products")
PRODUCT_REFERENCE_ACTIONS = ("add_to_cart", "remove_from_cart")


class OrchestratorState(str, Enum):
    AWAITING_DECISION = "awaiting_decision"
    RESPONDING = "responding"
    DISPATCHING = "dispatching"
    EXPLAINING = "explaining"
    DONE = "done"


# States a turn passes through, by how it ends
GREETING_PATH = [OrchestratorState.RESPONDING, OrchestratorState.DONE]
MESSAGE_PATH = [OrchestratorState.AWAITING_DECISION, OrchestratorState.RESPONDING, OrchestratorState.DONE]
DISPATCH_FAILED_PATH = [OrchestratorState.AWAITING_DECISION, OrchestratorState.DISPATCHING, OrchestratorState.DONE]
TOOL_PATH = [
    OrchestratorState.AWAITING_DECISION,
    OrchestratorState.DISPATCHING,
    OrchestratorState.EXPLAINING,
    OrchestratorState.DONE,
]


class OrchestrationResult(BaseModel):
    """Outcome of one chat turn."""
    reply_type: Literal["message", "tool"] = Field(..., description="'message' for plain replies, 'tool' when an action ran")
    provider: str = Field(..., description="Provider that made the decision")
    model: str = Field(default="none")
    text: Optional[str] = Field(None, description="Reply text for message turns")
    action: Optional[str] = None
    params: Dict[str, Any] = Field(default_factory=dict)
    tool_result: Optional[Dict[str, Any]] = None
    grounded_text: Optional[str] = None
    error: Optional[str] = None
    states: List[OrchestratorState] = Field(..., description="States the turn passed through, ending in DONE")


def is_greeting_only(message: str) -> bool:
    normalized = (message or "").lower().strip()
    return any(pattern.search(normalized) for pattern in GREETING_ONLY_PATTERNS)


def is_style_change_request(message: str) -> bool:
    normalized = (message or "").lower().strip()
    return any(pattern.search(normalized) for pattern in STYLE_CHANGE_PATTERNS)


def _entry_text(entry: Any) -> str:
    if isinstance(entry, str):
        return entry
    if isinstance(entry, dict):
        return entry.get("content") or entry.get("message") or ""
    return getattr(entry, "text", "") or ""


def extract_occasion_from_history(history: List[Any]) -> str:
    """Most recent occasion mentioned in the conversation, newest entry first."""
    for entry in reversed(history or []):
        text = _entry_text(entry).lower()
        for pattern, occasion in OCCASION_PATTERNS:
            if pattern.search(text):
                return occasion
    return DEFAULT_OCCASION


def extract_products(tool_result: Optional[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """Products a tool result showed to the user, in display order."""
    if not isinstance(tool_result, dict):
        return []

    for key in ("items", "results", "products", "recommendations"):
        value = tool_result.get(key)
        if isinstance(value, list):
            products = [p for p in value if isinstance(p, dict) and p.get("id")]
            if products:
                return products
        elif isinstance(value, dict):
            # Outfit: {"shirt": {...}, "pant": {...}, "shoe": {...}}
            products = [p for p in value.values() if isinstance(p, dict) and p.get("id")]
            if products:
                return products
    return []


def _dispatch_failure_text(decision_text: Optional[str]) -> str:
    # Text that still carries tool-call markup is never shown to the user
    if not decision_text or text_tool_recovery.recover(decision_text):
        return DISPATCH_FAILURE_TEXT
    return decision_text


class TwoStageOrchestrator:
    """Runs one chat turn end to end."""

    def __init__(
        self,
        router: ProviderRouter,
        dispatcher: ActionDispatcher,
        context_store: ConversationContextStore,
    ):
        self.router = router
        self.dispatcher = dispatcher
        self.context_store = context_store

    async def run(
        self,
        tenant_config: TenantConfig,
        action_registry: ActionRegistry,
        user_message: str,
        conversation_history: Optional[List[Any]] = None,
        session_id: Optional[str] = None,
    ) -> OrchestrationResult:
        """
        Run a turn while holding the session lock.

        Turns of the same session are serialized; other sessions proceed
        concurrently.
        """
        history = list(conversation_history or [])
        async with self.context_store.session_lock(tenant_config.id, session_id):
            return await self._run_turn(tenant_config, action_registry, user_message, history, session_id)

    async def _run_turn(
        self,
        tenant_config: TenantConfig,
        action_registry: ActionRegistry,
        user_message: str,
        history: List[Any],
        session_id: Optional[str],
    ) -> OrchestrationResult:
        tenant_id = tenant_config.id
        log_extra = {"tenant_id": tenant_id, "session_id": session_id}

        if is_greeting_only(user_message):
            logger.info("Greeting-only message, skipping tool decision", extra=log_extra)
            messages = prompt_builder.build_messages(
                prompt_builder.build_system_prompt(tenant_config), user_message, history
            )
            reply = await self.router.run_plain(messages)
            return OrchestrationResult(
                reply_type="message",
                provider=reply.provider,
                model=reply.model,
                text=reply.text or GREETING_FALLBACK_TEXT,
                states=GREETING_PATH,
            )

        # Stage 1: decision
        messages = prompt_builder.build_messages(
            self._decision_system_prompt(tenant_config, session_id), user_message, history
        )
        decision = await self.router.run_with_tools(messages)
        logger.info(f"LLM decision: {decision.decision}", extra={**log_extra, "provider": decision.provider})

        tool_call = decision.tool_call if decision.decision == "tool" else None
        if tool_call is None:
            if not is_style_change_request(user_message):
                return OrchestrationResult(
                    reply_type="message",
                    provider=decision.provider,
                    model=decision.model,
                    text=decision.text,
                    states=MESSAGE_PATH,
                )

            logger.info("Style change answered with text, forcing recommend_outfit", extra=log_extra)
            tool_call = ToolCall(
                name="recommend_outfit",
                arguments={
                    "query": user_message,
                    "occasion": extract_occasion_from_history(history + [user_message]),
                    "preferences": [user_message],
                },
            )

        # Dispatch
        action = tool_call.name
        params = dict(tool_call.arguments or {})
        if session_id:
            params["sessionId"] = session_id
        if action in PRODUCT_REFERENCE_ACTIONS and not params.get("productId"):
            self._resolve_product_reference(tenant_id, session_id, user_message, params)

        try:
            tool_result = await self.dispatcher.execute(action, params, tenant_config, action_registry)
        except Exception as e:
            logger.warning(f"Tool '{action}' failed: {e}", extra={**log_extra, "action": action})
            return OrchestrationResult(
                reply_type="message",
                provider=decision.provider,
                model=decision.model,
                text=_dispatch_failure_text(decision.text),
                action=action,
                params=params,
                tool_result={"success": False, "message": str(e)},
                error=str(e),
                states=DISPATCH_FAILED_PATH,
            )

        # Stage 2: grounded explanation
        grounded_text = await self._explain(tenant_config, user_message, action, params, tool_result, decision)

        # Commit
        products = extract_products(tool_result)
        if products:
            matched_ids = [p["id"] for p in products[:MAX_MATCHED_PRODUCTS]]
            self.context_store.record_turn(tenant_id, session_id, products, matched_ids, user_message)

        return OrchestrationResult(
            reply_type="tool",
            provider=decision.provider,
            model=decision.model,
            action=action,
            params=params,
            tool_result=tool_result,
            grounded_text=grounded_text,
            states=TOOL_PATH,
        )

    def _resolve_product_reference(
        self,
        tenant_id: str,
        session_id: Optional[str],
        user_message: str,
        params: Dict[str, Any],
    ) -> None:
        """Fill a missing productId from "the second one" style references to the last products shown."""
        context = self.context_store.get_session_context(tenant_id, session_id)
        if context is None:
            return

        recent = get_indexed_products(context.last_products, context.last_matched_product_ids)
        product = extract_referenced_product(user_message, recent)
        if product:
            params["productId"] = product["id"]
            logger.info(
                f"Resolved product reference to {product['id']}",
                extra={"tenant_id": tenant_id, "session_id": session_id},
            )

    def _decision_system_prompt(self, tenant_config: TenantConfig, session_id: Optional[str]) -> str:
        tenant_id = tenant_config.id
        profile = self.context_store.get_profile(tenant_id, session_id)
        context = self.context_store.get_session_context(tenant_id, session_id)

        recent = ""
        if context is not None:
            recent = build_recent_products_context(context.last_products, context.last_matched_product_ids)

        return prompt_builder.build_system_prompt(
            tenant_config,
            profile_summary=build_profile_summary(profile) if profile else "",
            preference_hint=get_preference_hint(profile) if profile else "",
            recent_products_context=recent,
        )

    async def _explain(
        self,
        tenant_config: TenantConfig,
        user_message: str,
        action: str,
        params: Dict[str, Any],
        tool_result: Dict[str, Any],
        decision: ProviderResult,
    ) -> str:
        if action in GROUNDED_ACTIONS:
            return await self._grounded_explanation(tenant_config, user_message, action, tool_result, decision)

        if action == "add_to_cart":
            return prompt_builder.generate_cart_confirmation(params, tool_result)
        if action == "add_outfit_to_cart":
            return prompt_builder.generate_outfit_cart_confirmation(tool_result)
        if action == "remove_from_cart":
            return prompt_builder.generate_remove_confirmation(tool_result)
        if action == "view_cart":
            return prompt_builder.generate_cart_summary(tool_result)
        if action == "checkout":
            return prompt_builder.generate_checkout_confirmation(tool_result)
        if action in ("view_orders", "get_order_status", "cancel_order"):
            return prompt_builder.generate_order_reply(action, tool_result)
        return prompt_builder.GENERIC_COMPLETION_TEXT

    async def _grounded_explanation(
        self,
        tenant_config: TenantConfig,
        user_message: str,
        action: str,
        tool_result: Dict[str, Any],
        decision: ProviderResult,
    ) -> str:
        if tool_result.get("success") is False or not extract_products(tool_result):
            # Nothing to ground on; the tool's own message explains why
            return tool_result.get("message") or prompt_builder.generate_fallback_explanation(action, tool_result)

        if action == "recommend_outfit":
            system_prompt = prompt_builder.build_grounded_system_prompt(
                tenant_config, prompt_builder.GROUNDED_OUTFIT_RULES
            )
            user_prompt = prompt_builder.build_outfit_prompt(user_message, tool_result)
        elif action == "compare_products":
            system_prompt = prompt_builder.build_grounded_system_prompt(
                tenant_config, prompt_builder.GROUNDED_PRODUCTS_RULES
            )
            user_prompt = prompt_builder.build_comparison_prompt(user_message, tool_result)
        else:
            system_prompt = prompt_builder.build_grounded_system_prompt(
                tenant_config, prompt_builder.GROUNDED_PRODUCTS_RULES
            )
            user_prompt = prompt_builder.build_products_prompt(user_message, tool_result)

        messages = [
            {"role": "system", "content": system_prompt},
            {"role": "user", "content": user_prompt},
        ]
        result = await self.router.run_plain(messages, preferred_provider=decision.provider)
        # Canned mock replies know nothing about the tool result
        if result.success and result.text and result.provider != TERMINAL_PROVIDER:
            return result.text

        logger.info(f"Grounded explanation unavailable for {action}, using template")
        return prompt_builder.generate_fallback_explanation(action, tool_result)
