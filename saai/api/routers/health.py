"""Health check API router."""

from fastapi import APIRouter, Depends

from saai.api.dependencies import get_context_store, get_provider_router
from saai.infra.metrics import get_metrics_response
from saai.services.context_store import ConversationContextStore
from saai.services.provider_router import ProviderRouter

router = APIRouter()


@router.get("/health", tags=["Health"])
async def health_check(context_store: ConversationContextStore = Depends(get_context_store)):
    """Combined health check endpoint."""
    return {
        "status": "ok",
        "service": "saai-hub",
        "version": "1.0.0",
        "sessions": context_store.get_session_stats(),
    }


@router.get("/health/live", tags=["Health"])
async def liveness_probe():
    """Liveness probe - indicates if the process is running."""
    return {"status": "alive"}


@router.get("/health/llm", tags=["Health"])
async def llm_health(router_: ProviderRouter = Depends(get_provider_router)):
    """Which LLM providers have credentials, and the order they are tried in."""
    return router_.health_check()


@router.get("/metrics", tags=["Health"])
async def metrics():
    """Prometheus metrics endpoint."""
    return get_metrics_response()
