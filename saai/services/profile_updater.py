"""Learn per-session preferences from the products a turn matched."""

import json
import logging
from typing import Any, Dict, List

from saai.models.context import MAX_RECENT_PRODUCT_IDS, UserProfile, utc_now_iso

logger = logging.getLogger(__name__)

CATEGORY_WEIGHT = 2
COLOR_WEIGHT = 1
TAG_WEIGHT = 1


def increment_counter(counters: Dict[str, float], key: Any, amount: float = 1) -> None:
    if not key or not isinstance(key, str):
        return
    k = key.lower().strip()
    if not k:
        return
    counters[k] = counters.get(k, 0) + amount


def update_profile_from_products(
    profile: UserProfile,
    products: List[Dict[str, Any]],
    matched_ids: List[str],
) -> UserProfile:
    """
    Add the matched products' category, colors and tags to the profile.

    The interaction count grows by one per call, however many products
    matched. A call with no matched ids leaves the profile untouched.
    """
    if not matched_ids:
        return profile

    id_set = set(matched_ids)
    seen = set()
    for product in products or []:
        product_id = product.get("id")
        if product_id not in id_set or product_id in seen:
            continue
        seen.add(product_id)

        increment_counter(profile.liked_categories, product.get("category"), CATEGORY_WEIGHT)
        for color in product.get("colors") or []:
            increment_counter(profile.liked_colors, color, COLOR_WEIGHT)
        for tag in product.get("tags") or []:
            increment_counter(profile.liked_tags, tag, TAG_WEIGHT)

    profile.interaction_count += 1
    profile.recent_product_ids = (profile.recent_product_ids + list(matched_ids))[-MAX_RECENT_PRODUCT_IDS:]
    profile.updated_at = utc_now_iso()

    logger.debug(
        f"Profile updated: {profile.interaction_count} interactions, "
        f"{len(profile.liked_colors)} color preferences"
    )
    return profile


def _top(counters: Dict[str, float], n: int) -> List[str]:
    # sorted() is stable, so ties keep first-seen order
    return [k for k, _ in sorted(counters.items(), key=lambda kv: kv[1], reverse=True)[:n]]


def build_profile_summary(profile: UserProfile) -> str:
    """JSON summary of the strongest preferences, or "" when nothing is learned yet."""
    if profile is None:
        return ""

    categories = _top(profile.liked_categories, 3)
    colors = _top(profile.liked_colors, 3)
    tags = _top(profile.liked_tags, 5)
    if not categories and not colors and not tags:
        return ""

    return json.dumps({
        "preferredCategories": categories,
        "preferredColors": colors,
        "preferredTags": tags,
        "interactionCount": profile.interaction_count,
    })


def get_preference_hint(profile: UserProfile) -> str:
    """One-sentence hint, only after at least two product interactions."""
    if profile is None or profile.interaction_count < 2:
        return ""

    parts = []
    colors = _top(profile.liked_colors, 2)
    if colors:
        parts.append(f"colors like {' and '.join(colors)}")
    categories = _top(profile.liked_categories, 2)
    if categories:
        parts.append(" and ".join(categories))

    if not parts:
        return ""
    return f"The user seems to like {', '.join(parts)}."
