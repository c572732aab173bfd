"""API tests for /chat and the supporting endpoints."""

import pytest
from fastapi.testclient import TestClient
from unittest.mock import AsyncMock, MagicMock

from saai.api.dependencies import get_orchestrator
from saai.infra.config import config
from saai.logging.event_logger import get_events
from saai.main import app
from saai.models.provider import ProviderResult, ToolCall
from saai.services.action_dispatcher import build_default_dispatcher
from saai.services.context_store import ConversationContextStore
from saai.services.orchestrator import DISPATCH_FAILURE_TEXT, TwoStageOrchestrator


@pytest.fixture
def client():
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


def _scripted_orchestrator(decision):
    router = MagicMock()
    router.run_with_tools = AsyncMock(return_value=decision)
    router.run_plain = AsyncMock(return_value=ProviderResult(success=True, provider="groq", text="Grounded."))
    return TwoStageOrchestrator(router, build_default_dispatcher(), ConversationContextStore())


class TestChatValidation:
    """Malformed requests answer 200 with a validation envelope."""

    def test_missing_tenant(self, client):
        response = client.post("/chat", json={"message": "hi"})

        assert response.status_code == 200
        assert response.json() == {
            "success": False,
            "error": "Bad Request",
            "message": "Missing required field: tenant",
            "type": "validation_error",
        }

    def test_missing_message(self, client):
        response = client.post("/chat", json={"tenant": "example", "message": ""})
        assert response.json()["message"] == "Missing required field: message"

    def test_malformed_body(self, client):
        response = client.post("/chat", json={"tenant": "example", "message": "hi", "history": "nope"})

        assert response.status_code == 200
        assert response.json()["success"] is False
        assert response.json()["type"] == "validation_error"


class TestChatTurns:
    """Full turns through the mock provider."""

    def test_tool_reply_shape(self, client):
        response = client.post("/chat", json={"tenant": "example", "message": "add to cart p101", "sessionId": "s1"})

        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert body["replyType"] == "tool"
        assert body["llm"]["decision"] == "tool"
        assert body["llm"]["action"] == "add_to_cart"
        assert body["llm"]["provider"] == "mock"
        assert body["llm"]["groundedText"].startswith("I've added Classic White Shirt to your cart!")
        assert body["actionResult"]["type"] == "cart"
        assert body["actionResult"]["_meta"]["adapterSource"] == "generic"
        assert body["tenantConfig"]["id"] == "example"
        assert body["tenantConfig"]["settings"]["currency"] == "INR"

        cart = client.get("/cart/example", params={"session": "s1"}).json()
        assert cart["cart"]["items"][0]["productId"] == "p101"

    def test_message_reply_shape(self, client):
        response = client.post("/chat", json={"tenant": "example", "message": "what is your return policy?"})

        body = response.json()
        assert body["success"] is True
        assert body["replyType"] == "message"
        assert body["llm"]["decision"] == "message"
        assert body["llm"]["provider"] == "mock"
        assert body["llm"]["text"]
        assert "actionResult" not in body

    def test_unknown_tenant_runs_as_default(self, client):
        body = client.post("/chat", json={"tenant": "no-such-shop", "message": "hello"}).json()
        assert body["success"] is True
        assert body["tenantConfig"]["id"] == "default"

    def test_legacy_history_field(self, client):
        response = client.post("/chat", json={
            "tenant": "example",
            "message": "thanks",
            "conversationHistory": [{"role": "user", "message": "show me shirts"}],
        })
        assert response.json()["replyType"] == "message"

    def test_dispatch_failure(self, client):
        decision = ProviderResult(
            success=True, decision="tool", provider="groq", model="m",
            tool_call=ToolCall(name="teleport", arguments={}),
        )
        app.dependency_overrides[get_orchestrator] = lambda: _scripted_orchestrator(decision)

        body = client.post("/chat", json={"tenant": "example", "message": "beam me up"}).json()

        assert body["success"] is True
        assert body["replyType"] == "message"
        assert body["llm"]["text"] == DISPATCH_FAILURE_TEXT
        assert body["llm"]["action"] == "teleport"
        assert "not found" in body["llm"]["error"]
        assert body["actionResult"]["success"] is False

    def test_orchestrator_exception(self, client):
        orchestrator = MagicMock()
        orchestrator.run = AsyncMock(side_effect=RuntimeError("boom"))
        app.dependency_overrides[get_orchestrator] = lambda: orchestrator

        response = client.post("/chat", json={"tenant": "example", "message": "show me shirts", "sessionId": "s1"})

        assert response.status_code == 200
        assert response.json() == {"success": False, "error": "boom", "type": "error"}
        events = get_events(tenant_id="example")
        assert events[0]["eventType"] == "chat_error"
        assert events[0]["status"] == "failure"

    def test_rate_limit(self, client, monkeypatch):
        monkeypatch.setattr(config, "CHAT_RATE_LIMIT_PER_MINUTE", 2)
        payload = {"tenant": "example", "message": "hello", "sessionId": "s1"}

        assert client.post("/chat", json=payload).json()["success"] is True
        assert client.post("/chat", json=payload).json()["success"] is True
        response = client.post("/chat", json=payload)

        assert response.status_code == 200
        assert response.json()["type"] == "rate_limit"
        assert response.headers["X-RateLimit-Limit"] == "2"
        assert response.headers["X-RateLimit-Remaining"] == "0"

        other_session = client.post("/chat", json={**payload, "sessionId": "s2"})
        assert other_session.json()["success"] is True


class TestDebugLogs:
    """Event buffer endpoints."""

    def test_turns_are_logged(self, client):
        client.post("/chat", json={"tenant": "example", "message": "add to cart p101", "sessionId": "s1"})
        client.post("/chat", json={"tenant": "default", "message": "hello", "sessionId": "s2"})

        body = client.get("/debug/logs", params={"tenant": "example"}).json()
        assert body["success"] is True
        assert body["count"] == 1
        assert body["totalInBuffer"] == 2

        event = body["logs"][0]
        assert event["eventType"] == "chat_response"
        assert event["sessionId"] == "s1"
        assert event["provider"] == "mock"
        assert event["payload"]["toolAction"] == "add_to_cart"
        assert event["payload"]["toolSummary"]["cartTotalItems"] == 1
        assert event["payload"]["states"] == ["awaiting_decision", "dispatching", "explaining", "done"]

    def test_newest_first_and_limit(self, client):
        for message in ("hello", "thanks", "hey"):
            client.post("/chat", json={"tenant": "example", "message": message})

        logs = client.get("/debug/logs", params={"limit": 2}).json()["logs"]
        assert [e["payload"]["userMessage"] for e in logs] == ["hey", "thanks"]

    def test_clear(self, client):
        client.post("/chat", json={"tenant": "example", "message": "hello"})
        assert client.post("/debug/logs/clear").json()["success"] is True
        assert client.get("/debug/logs").json()["totalInBuffer"] == 0


class TestTenantAndCartEndpoints:
    """Debug tenant and cart routes."""

    def test_tenant_info(self, client):
        body = client.get("/tenant/example").json()
        assert body["success"] is True
        assert body["persona"]["name"] == "Ava"
        assert body["registrySource"] == "tenant-specific"

    def test_unknown_tenant(self, client):
        response = client.get("/tenant/nope")
        assert response.status_code == 404
        assert response.json() == {"success": False, "error": "Tenant not found", "type": "not_found"}

    def test_invalid_tenant_id(self, client):
        response = client.get("/tenant/bad.id")
        assert response.status_code == 400
        assert response.json()["type"] == "validation_error"

    def test_add_requires_product(self, client):
        response = client.post("/cart/example/add", json={"sessionId": "s1"})
        assert response.status_code == 400
        assert response.json()["error"] == "productId is required"

    def test_add_and_view(self, client):
        body = client.post("/cart/example/add", json={"productId": "p103", "quantity": 2, "sessionId": "s1"}).json()
        assert body["success"] is True
        assert body["summary"] == {"totalItems": 2, "totalAmount": 3798}

        assert client.get("/cart/example", params={"session": "s2"}).json()["cart"]["items"] == []

    def test_bad_quantity(self, client):
        response = client.post("/cart/example/add", json={"productId": "p103", "quantity": 0})
        assert response.status_code == 200
        assert response.json()["type"] == "validation_error"


class TestHealthAndRouting:
    """Health endpoints and unknown routes."""

    def test_health(self, client):
        body = client.get("/health").json()
        assert body["status"] == "ok"
        assert body["service"] == "saai-hub"
        assert body["sessions"]["totalContexts"] == 0

    def test_llm_health(self, client):
        body = client.get("/health/llm").json()
        assert body["available_providers"] == ["mock"]
        assert body["healthy"] is True

    def test_metrics(self, client):
        client.post("/chat", json={"tenant": "example", "message": "hello"})
        response = client.get("/metrics")
        assert response.status_code == 200
        assert "chat_requests_total" in response.text

    def test_unknown_route(self, client):
        response = client.get("/does-not-exist")
        assert response.status_code == 200
        assert response.json() == {
            "success": False,
            "type": "not_found",
            "message": "Route GET /does-not-exist not found",
        }
