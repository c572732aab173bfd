"""Event logging service.

Recent chat turns are kept in a bounded in-memory buffer and served at
/debug/logs. Oldest entries are dropped once the buffer is full.
"""

import logging
from collections import deque
from typing import Any, Deque, Dict, List, Optional

from saai.models.context import utc_now_iso

logger = logging.getLogger(__name__)

MAX_EVENTS = 500

_events: Deque[Dict[str, Any]] = deque(maxlen=MAX_EVENTS)


def log_event(
    tenant_id: str,
    event_type: str,
    provider: Optional[str] = None,
    status: str = "success",
    latency_ms: Optional[int] = None,
    payload: Optional[Dict[str, Any]] = None,
    session_id: Optional[str] = None,
) -> Dict[str, Any]:
    """
    Record an event.

    Args:
        tenant_id: Tenant ID
        event_type: Event type (e.g., 'chat_request', 'chat_response', 'chat_error')
        provider: LLM provider that served the turn, if any
        status: 'success' | 'failure'
        latency_ms: Latency in milliseconds
        payload: Additional payload
        session_id: Optional session ID
    """
    event = {
        "timestamp": utc_now_iso(),
        "tenantId": tenant_id,
        "sessionId": session_id,
        "eventType": event_type,
        "provider": provider,
        "status": status,
        "latencyMs": latency_ms,
        "payload": payload or {},
    }
    _events.append(event)
    logger.debug(f"Event {event_type}", extra={"tenant_id": tenant_id, "session_id": session_id})
    return event


def get_events(
    tenant_id: Optional[str] = None,
    session_id: Optional[str] = None,
    limit: int = 50,
) -> List[Dict[str, Any]]:
    """Newest first, optionally filtered by tenant and session."""
    result = []
    for event in reversed(_events):
        if tenant_id and event["tenantId"] != tenant_id:
            continue
        if session_id and event["sessionId"] != session_id:
            continue
        result.append(event)
        if len(result) >= limit:
            break
    return result


def clear_events() -> None:
    _events.clear()


def event_count() -> int:
    return len(_events)
