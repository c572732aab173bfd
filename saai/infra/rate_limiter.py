"""Rate limiting for chat sessions."""

from typing import Dict, List, Optional
from datetime import datetime, timedelta
from collections import defaultdict

from saai.infra.config import config

WINDOW = timedelta(minutes=1)

# key -> request timestamps inside the sliding window
_rate_limit_store: Dict[str, List[datetime]] = defaultdict(list)


def rate_limit_key(tenant_id: str, session_id: Optional[str] = None) -> str:
    """Build the bucket key for a tenant/session pair."""
    return f"{tenant_id}:{session_id or 'anon'}"


def _prune(key: str, now: datetime) -> List[datetime]:
    window_start = now - WINDOW
    requests = _rate_limit_store[key]
    requests[:] = [ts for ts in requests if ts > window_start]
    return requests


def check_rate_limit(key: str, limit: Optional[int] = None) -> bool:
    """
    Check if a request is within the per-minute limit and record it.

    Args:
        key: Bucket key, usually from rate_limit_key()
        limit: Requests per minute (defaults to CHAT_RATE_LIMIT_PER_MINUTE)

    Returns:
        True if within limits, False if rate limited
    """
    limit = limit or config.CHAT_RATE_LIMIT_PER_MINUTE
    now = datetime.utcnow()
    requests = _prune(key, now)

    if len(requests) >= limit:
        return False

    requests.append(now)
    return True


def get_remaining_requests(key: str, limit: Optional[int] = None) -> int:
    """Requests left in the current window for a key."""
    limit = limit or config.CHAT_RATE_LIMIT_PER_MINUTE
    if key not in _rate_limit_store:
        return limit
    return max(0, limit - len(_prune(key, datetime.utcnow())))


def get_rate_limit_headers(key: str, limit: Optional[int] = None) -> Dict[str, str]:
    """Get X-RateLimit-* headers for a response."""
    limit = limit or config.CHAT_RATE_LIMIT_PER_MINUTE
    return {
        "X-RateLimit-Limit": str(limit),
        "X-RateLimit-Remaining": str(get_remaining_requests(key, limit)),
    }


def reset_key(key: str) -> None:
    """Forget all recorded requests for a key."""
    _rate_limit_store.pop(key, None)


def reset_all() -> None:
    _rate_limit_store.clear()
