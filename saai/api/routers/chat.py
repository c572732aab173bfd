"""Chat API router.

POST /chat always answers HTTP 200. Failures are reported in the body with
success=false and a `type` discriminator so the chat UI never stalls on an
HTTP error.
"""

import logging
import time

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from saai.api.dependencies import get_orchestrator
from saai.api.models import ChatRequest
from saai.infra.metrics import chat_requests_total
from saai.infra.rate_limiter import check_rate_limit, get_rate_limit_headers, rate_limit_key
from saai.infra.validation import sanitize_message_content
from saai.logging.event_logger import log_event
from saai.services.orchestrator import TwoStageOrchestrator
from saai.services.tenant_context_service import get_effective_tenant, load_action_registry_or_empty

logger = logging.getLogger(__name__)

router = APIRouter()

RATE_LIMIT_MESSAGE = "Too many requests. Please wait a moment and try again."


def _validation_error(field: str) -> JSONResponse:
    return JSONResponse(
        status_code=200,
        content={
            "success": False,
            "error": "Bad Request",
            "message": f"Missing required field: {field}",
            "type": "validation_error",
        },
    )


def _tool_summary(tool_result: dict) -> dict:
    """Compact description of a tool result for the debug log."""
    result_type = tool_result.get("type")
    summary = {}
    if result_type == "outfit":
        summary["outfitItems"] = list((tool_result.get("items") or {}).keys())
    elif result_type in ("recommendations", "search", "comparison"):
        items = tool_result.get("items") or tool_result.get("results") or tool_result.get("products") or []
        summary["productCount"] = len(items) if isinstance(items, list) else 0
    elif result_type == "cart":
        summary["cartAction"] = tool_result.get("action")
        summary["cartTotalItems"] = (tool_result.get("summary") or {}).get("totalItems")
        summary["cartTotalAmount"] = (tool_result.get("summary") or {}).get("totalAmount")
    elif result_type == "checkout":
        summary["checkoutSuccess"] = tool_result.get("success")
        summary["orderId"] = (tool_result.get("order") or {}).get("orderId")
    return summary


@router.post("/chat", tags=["Chat"])
async def chat(
    request: ChatRequest,
    orchestrator: TwoStageOrchestrator = Depends(get_orchestrator),
):
    """
    Run one conversational turn.

    The reply is either a plain message or the result of a commerce action
    together with a grounded explanation.
    """
    if not request.tenant:
        return _validation_error("tenant")
    if not request.message:
        return _validation_error("message")

    start_time = time.time()
    session_id = request.sessionId or None

    key = rate_limit_key(request.tenant, session_id)
    if not check_rate_limit(key):
        logger.warning("Chat rate limit exceeded", extra={"tenant_id": request.tenant, "session_id": session_id})
        return JSONResponse(
            status_code=200,
            content={
                "success": False,
                "error": "Too Many Requests",
                "message": RATE_LIMIT_MESSAGE,
                "type": "rate_limit",
            },
            headers=get_rate_limit_headers(key),
        )

    try:
        message = sanitize_message_content(request.message)
        tenant_config = get_effective_tenant(request.tenant)
        tenant_id = tenant_config.id
        action_registry = load_action_registry_or_empty(tenant_id)

        result = await orchestrator.run(
            tenant_config,
            action_registry,
            message,
            conversation_history=request.chat_history(),
            session_id=session_id,
        )
    except Exception as e:
        logger.error(
            f"Chat turn failed: {e}",
            extra={"tenant_id": request.tenant, "session_id": session_id},
            exc_info=True,
        )
        log_event(
            request.tenant,
            "chat_error",
            status="failure",
            payload={"userMessage": request.message, "errorMessage": str(e)},
            session_id=session_id,
        )
        return JSONResponse(
            status_code=200,
            content={"success": False, "error": str(e) or "An unexpected error occurred", "type": "error"},
        )

    latency_ms = int((time.time() - start_time) * 1000)
    chat_requests_total.labels(tenant_id=tenant_id, reply_type=result.reply_type).inc()
    tenant_info = {"id": tenant_id, "settings": tenant_config.settings}

    if result.reply_type == "message":
        llm = {
            "decision": "message",
            "provider": result.provider,
            "model": result.model,
            "text": result.text,
        }
        body = {"success": True, "replyType": "message", "llm": llm, "tenantConfig": tenant_info}
        if result.error:
            llm["error"] = result.error
            llm["action"] = result.action
            body["actionResult"] = result.tool_result

        log_event(
            tenant_id,
            "chat_response",
            provider=result.provider,
            status="failure" if result.error else "success",
            latency_ms=latency_ms,
            payload={
                "userMessage": message,
                "replyType": "message",
                "llmModel": result.model,
                "llmText": result.text,
                "states": [s.value for s in result.states],
            },
            session_id=session_id,
        )
        return body

    tool_result = result.tool_result or {}
    log_event(
        tenant_id,
        "chat_response",
        provider=result.provider,
        latency_ms=latency_ms,
        payload={
            "userMessage": message,
            "replyType": "tool",
            "llmModel": result.model,
            "toolAction": result.action,
            "groundedText": result.grounded_text,
            "toolResultType": tool_result.get("type"),
            "toolSummary": _tool_summary(tool_result),
            "states": [s.value for s in result.states],
        },
        session_id=session_id,
    )
    return {
        "success": True,
        "replyType": "tool",
        "llm": {
            "decision": "tool",
            "action": result.action,
            "provider": result.provider,
            "model": result.model,
            "groundedText": result.grounded_text,
        },
        "actionResult": tool_result,
        "tenantConfig": tenant_info,
    }
