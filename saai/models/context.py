"""Per-session conversation state."""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List

MAX_RECENT_PRODUCT_IDS = 10


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


@dataclass
class SessionContext:
    """Products shown on the last turn that matched something."""
    last_products: List[Dict[str, Any]] = field(default_factory=list)
    last_matched_product_ids: List[str] = field(default_factory=list)
    last_user_message: str = ""
    updated_at: str = field(default_factory=utc_now_iso)


@dataclass
class UserProfile:
    """Learned preference counters. Counters only ever grow."""
    liked_categories: Dict[str, float] = field(default_factory=dict)
    liked_colors: Dict[str, float] = field(default_factory=dict)
    liked_tags: Dict[str, float] = field(default_factory=dict)
    interaction_count: int = 0
    recent_product_ids: List[str] = field(default_factory=list)
    updated_at: str = field(default_factory=utc_now_iso)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "likedCategories": dict(self.liked_categories),
            "likedColors": dict(self.liked_colors),
            "likedTags": dict(self.liked_tags),
            "interactionCount": self.interaction_count,
            "recentProductIds": list(self.recent_product_ids),
            "updatedAt": self.updated_at,
        }
