"""Debug logs API router."""

from typing import Optional
from fastapi import APIRouter, Query

from saai.api.models import DebugLogsResponse
from saai.logging.event_logger import clear_events, event_count, get_events

router = APIRouter()


@router.get("/debug/logs", tags=["Logs"], response_model=DebugLogsResponse)
async def get_debug_logs(
    tenant: Optional[str] = Query(None, description="Filter by tenant ID"),
    session: Optional[str] = Query(None, description="Filter by session ID"),
    limit: int = Query(50, ge=1, le=500, description="Maximum number of results"),
):
    """Recent chat turns, newest first."""
    logs = get_events(tenant_id=tenant, session_id=session, limit=limit)
    return {
        "success": True,
        "count": len(logs),
        "totalInBuffer": event_count(),
        "logs": logs,
    }


@router.post("/debug/logs/clear", tags=["Logs"])
async def clear_debug_logs():
    """Clear the event buffer."""
    clear_events()
    return {"success": True, "message": "All logs cleared"}
