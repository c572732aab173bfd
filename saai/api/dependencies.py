"""Process-wide service singletons, injected into routes with Depends()."""

from functools import lru_cache

from saai.services.action_dispatcher import ActionDispatcher, build_default_dispatcher
from saai.services.context_store import ConversationContextStore
from saai.services.orchestrator import TwoStageOrchestrator
from saai.services.provider_router import ProviderRouter, build_default_router


@lru_cache(maxsize=1)
def get_provider_router() -> ProviderRouter:
    return build_default_router()


@lru_cache(maxsize=1)
def get_dispatcher() -> ActionDispatcher:
    return build_default_dispatcher()


@lru_cache(maxsize=1)
def get_context_store() -> ConversationContextStore:
    return ConversationContextStore()


def get_orchestrator() -> TwoStageOrchestrator:
    return TwoStageOrchestrator(get_provider_router(), get_dispatcher(), get_context_store())


def reset_dependencies() -> None:
    """Drop the cached singletons (tests, config reloads)."""
    get_provider_router.cache_clear()
    get_dispatcher.cache_clear()
    get_context_store.cache_clear()
