"""
Sparse-vector product recommender.

Products and queries are embedded as {feature: weight} dicts built from
category, tags, colors and name tokens, then ranked by cosine similarity.
"""

import logging
import math
import re
from typing import Any, Dict, List, Optional

from saai.services.product_catalog import Product, load_products_for_tenant

logger = logging.getLogger(__name__)

Vector = Dict[str, float]

PREFERENCE_WEIGHT = 1.5

_NON_ALNUM_RE = re.compile(r"[^a-z0-9\s]")

# category substrings that identify each outfit slot
OUTFIT_SLOTS = {
    "shirt": ("shirt",),
    "pant": ("pant", "trouser"),
    "shoe": ("shoe", "footwear"),
}

OUTFIT_FIELDS = ("id", "name", "category", "price", "currency", "imageUrl", "tags", "colors")


def tokenize(text: Optional[str]) -> List[str]:
    if not text or not isinstance(text, str):
        return []
    cleaned = _NON_ALNUM_RE.sub(" ", text.lower())
    return [token for token in cleaned.split() if len(token) > 2]


def embed_product(product: Product) -> Vector:
    if not isinstance(product, dict):
        return {}

    vector: Vector = {}
    category = (product.get("category") or "").lower().strip()
    if category:
        vector[category] = 1

    for values in (product.get("tags"), product.get("colors")):
        if not isinstance(values, list):
            continue
        for value in values:
            if isinstance(value, str) and value.strip():
                vector[value.lower().strip()] = 1

    for token in tokenize(product.get("name")):
        vector[token] = 1

    return vector


def embed_query(query: Optional[str], preferences: Optional[List[str]] = None) -> Vector:
    """Query tokens weigh 1; each preference keyword weighs PREFERENCE_WEIGHT."""
    vector: Vector = {token: 1 for token in tokenize(query)}
    for pref in preferences or []:
        if isinstance(pref, str) and pref.strip():
            vector[pref.lower().strip()] = PREFERENCE_WEIGHT
    return vector


def compute_similarity(vec_a: Vector, vec_b: Vector) -> float:
    """Cosine similarity clamped to [0, 1]."""
    if not vec_a or not vec_b:
        return 0.0

    dot = sum(weight * vec_b[key] for key, weight in vec_a.items() if key in vec_b)
    if dot == 0:
        return 0.0

    magnitude_a = math.sqrt(sum(w * w for w in vec_a.values()))
    magnitude_b = math.sqrt(sum(w * w for w in vec_b.values()))
    if magnitude_a == 0 or magnitude_b == 0:
        return 0.0

    return max(0.0, min(1.0, dot / (magnitude_a * magnitude_b)))


def recommend_products(
    tenant_id: str,
    query: str = "",
    preferences: Optional[List[str]] = None,
    limit: int = 10,
    min_score: float = 0.25,
) -> List[Product]:
    """
    Rank the tenant's catalog against a query.

    An empty query with no preferences returns the first `limit` products
    with a similarityScore of 0.
    """
    products = load_products_for_tenant(tenant_id)
    if not products:
        logger.warning(f"No products found for tenant: {tenant_id}")
        return []

    query_vec = embed_query(query, preferences)
    if not query_vec:
        return [{**p, "similarityScore": 0} for p in products[:limit]]

    scored = []
    for product in products:
        score = compute_similarity(query_vec, embed_product(product))
        if score >= min_score:
            scored.append({**product, "similarityScore": score})

    scored.sort(key=lambda p: p["similarityScore"], reverse=True)
    results = scored[:limit]

    logger.info(
        f"Returning {len(results)} recommendations",
        extra={"tenant_id": tenant_id, "query": query, "candidates": len(products)},
    )
    return results


def get_similar_products(
    tenant_id: str,
    product_id: str,
    limit: int = 5,
    min_score: float = 0.2,
) -> List[Product]:
    products = load_products_for_tenant(tenant_id)
    target = next((p for p in products if p.get("id") == product_id), None)
    if target is None:
        logger.warning(f"Product {product_id} not found")
        return []

    target_vec = embed_product(target)
    scored = []
    for product in products:
        if product.get("id") == product_id:
            continue
        score = compute_similarity(target_vec, embed_product(product))
        if score >= min_score:
            scored.append({**product, "similarityScore": score})

    scored.sort(key=lambda p: p["similarityScore"], reverse=True)
    return scored[:limit]


def recommend_outfit(
    tenant_id: str,
    query: str = "",
    preferences: Optional[List[str]] = None,
) -> Dict[str, Dict[str, Any]]:
    """
    Best shirt, pant and shoe for the query.

    Slots with no matching category are left out of the returned dict.
    """
    products = load_products_for_tenant(tenant_id)
    if not products:
        logger.warning(f"No products found for tenant: {tenant_id}")
        return {}

    query_vec = embed_query(query, preferences)
    outfit: Dict[str, Dict[str, Any]] = {}

    for slot, needles in OUTFIT_SLOTS.items():
        candidates = [
            p for p in products
            if any(needle in (p.get("category") or "").lower() for needle in needles)
        ]
        if not candidates:
            continue

        # max() keeps the first of equal scores, so catalog order breaks ties
        best = max(candidates, key=lambda p: compute_similarity(query_vec, embed_product(p)))
        item = {key: best.get(key) for key in OUTFIT_FIELDS}
        item["_score"] = compute_similarity(query_vec, embed_product(best))
        outfit[slot] = item

    logger.info(f"Recommended outfit with {len(outfit)} items: {', '.join(outfit)}")
    return outfit
