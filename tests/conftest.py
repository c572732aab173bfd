"""Pytest configuration and fixtures."""

import pytest
import os
from dotenv import load_dotenv

# Load test environment variables
load_dotenv()

# Set test environment
os.environ.setdefault("APP_ENV", "test")
os.environ.setdefault("DEBUG", "true")

from saai.api.dependencies import reset_dependencies  # noqa: E402
from saai.infra.rate_limiter import reset_all as reset_rate_limits  # noqa: E402
from saai.logging.event_logger import clear_events  # noqa: E402
from saai.models.tenant import TenantConfig  # noqa: E402
from saai.services.cart_service import reset_carts  # noqa: E402
from saai.services.context_store import ConversationContextStore  # noqa: E402
from saai.services.order_service import reset_orders  # noqa: E402
from saai.services.tenant_context_service import load_action_registry  # noqa: E402

PROVIDER_KEYS = ["GROQ_API_KEY", "GEMINI_API_KEY", "MISTRAL_API_KEY", "OPENROUTER_API_KEY", "LLM_PRIORITY"]


@pytest.fixture(autouse=True)
def no_provider_keys(monkeypatch):
    """Tests never reach a real vendor; only the mock provider is configured."""
    for key in PROVIDER_KEYS:
        monkeypatch.delenv(key, raising=False)


@pytest.fixture(autouse=True)
def reset_stores():
    """Fresh carts, orders, event buffer, rate limits and service singletons per test."""
    reset_carts()
    reset_orders()
    clear_events()
    reset_rate_limits()
    reset_dependencies()
    yield
    reset_carts()
    reset_orders()
    clear_events()
    reset_rate_limits()
    reset_dependencies()


@pytest.fixture
def context_store():
    return ConversationContextStore()


@pytest.fixture
def example_tenant():
    return TenantConfig(
        tenant_id="example",
        display_name="Example Fashion Co.",
        persona={
            "name": "Ava",
            "role": "a personal stylist",
            "brandVoice": {"tone": "warm", "rules": ["Rule one.", "Rule two."]},
        },
        settings={"currency": "INR"},
        effective_id="example",
    )


@pytest.fixture
def default_tenant():
    return TenantConfig(tenant_id="default", display_name="SAAI Store", effective_id="default")


@pytest.fixture
def example_registry():
    return load_action_registry("example")


@pytest.fixture
def default_registry():
    return load_action_registry("default")
