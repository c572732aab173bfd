"""
Generic commerce adapters.

Every handler takes (params, tenant_config) and returns a JSON-safe dict.
They are registered under the 'commerce', 'recommender' and 'orders'
namespaces that registry handler strings refer to.
"""

import logging
import re
from typing import Any, Dict, List, Optional

from saai.models.tenant import TenantConfig
from saai.services import cart_service, order_service, recommender
from saai.services.action_dispatcher import AdapterSet
from saai.services.product_catalog import Product, load_products_for_tenant

logger = logging.getLogger("saai.adapters.commerce")

_AMOUNT = r"(\d+(?:,\d{3})*(?:\.\d{2})?)"
_CURRENCY = r"[$₹€£]"

MAX_PRICE_PATTERNS = [
    re.compile(rf"(?:under|below|less than|cheaper than|max|maximum|up to|within|budget)\s*{_CURRENCY}?\s*{_AMOUNT}", re.I),
    re.compile(rf"{_CURRENCY}\s*{_AMOUNT}\s*(?:or less|max|maximum|budget)", re.I),
    re.compile(rf"{_AMOUNT}\s*(?:or less|and under|and below)", re.I),
]

MIN_PRICE_PATTERNS = [
    re.compile(rf"(?:over|above|more than|at least|minimum|starting|from)\s*{_CURRENCY}?\s*{_AMOUNT}", re.I),
    re.compile(rf"{_CURRENCY}\s*{_AMOUNT}\s*(?:or more|minimum|and above|and up|\+)", re.I),
]

PRICE_RANGE_PATTERNS = [
    re.compile(rf"{_CURRENCY}?\s*{_AMOUNT}\s*(?:-|–|to)\s*{_CURRENCY}?\s*{_AMOUNT}", re.I),
    re.compile(rf"between\s*{_CURRENCY}?\s*{_AMOUNT}\s*and\s*{_CURRENCY}?\s*{_AMOUNT}", re.I),
]

CATEGORY_KEYWORDS = {
    "electronics": ["electronics", "electronic", "gadget", "tech", "device", "headphone", "speaker", "camera"],
    "accessories": ["accessories", "accessory", "watch", "jewelry", "bag", "belt", "wallet"],
    "beauty": ["beauty", "cosmetic", "skincare", "makeup", "fragrance", "perfume"],
    "grocery": ["grocery", "groceries", "food", "snack", "beverage", "drink"],
    "clothing": ["clothing", "clothes", "apparel", "jacket", "dress", "t-shirt", "tshirt"],
    "shirts": ["shirt"],
    "pants": ["pant", "trouser", "chino", "jean"],
    "shoes": ["footwear", "shoe", "sneaker", "boot", "sandal", "loafer"],
    "fitness": ["fitness", "gym", "exercise", "workout", "athletic", "yoga"],
    "furniture": ["furniture", "chair", "table", "desk", "sofa"],
    "home": ["home", "kitchen", "decor", "appliance", "household"],
}

COLOR_KEYWORDS = [
    "red", "blue", "green", "yellow", "black", "white", "gray", "grey", "brown", "pink", "purple",
    "orange", "navy", "beige", "tan", "silver", "gold", "rose", "cream", "maroon", "teal", "cyan",
]

PRICE_WORDS = {
    "under", "below", "above", "over", "less", "more", "than", "budget", "cheap", "expensive",
    "affordable", "maximum", "minimum", "dollars", "dollar", "usd", "rupees", "inr",
}

_NUMBER_WORD_RE = re.compile(r"^[$₹]?\d+$")


def _to_amount(raw: str) -> float:
    return float(raw.replace(",", ""))


def _fmt_amount(amount: float) -> str:
    return f"{amount:g}"


def _as_list(value: Any) -> List[str]:
    if value is None or value == "":
        return []
    if isinstance(value, str):
        return [value]
    if isinstance(value, (list, tuple)):
        return [str(v) for v in value if v not in (None, "")]
    return [str(value)]


def _session(params: Dict[str, Any]) -> Optional[str]:
    return params.get("sessionId")


def _word_variants(word: str) -> List[str]:
    """The word plus naive singular and plural forms."""
    variants = [word]
    if word.endswith("s") and len(word) > 3:
        variants.append(word[:-1])
    if word.endswith("es") and len(word) > 4:
        variants.append(word[:-2])
    if not word.endswith("s"):
        variants.append(word + "s")
    return variants


def extract_price_filters(query: str):
    """Return (min_price, max_price) parsed from phrases like 'under 2000' or '500-1500'."""
    min_price = max_price = None

    for pattern in MAX_PRICE_PATTERNS:
        match = pattern.search(query)
        if match:
            max_price = _to_amount(match.group(1))
            break

    for pattern in MIN_PRICE_PATTERNS:
        match = pattern.search(query)
        if match:
            min_price = _to_amount(match.group(1))
            break

    for pattern in PRICE_RANGE_PATTERNS:
        match = pattern.search(query)
        if match:
            min_price, max_price = _to_amount(match.group(1)), _to_amount(match.group(2))
            break

    return min_price, max_price


def detect_category(query_lower: str) -> Optional[str]:
    for category, keywords in CATEGORY_KEYWORDS.items():
        if any(keyword in query_lower for keyword in keywords):
            return category
    return None


def detect_colors(query_lower: str) -> List[str]:
    return [color for color in COLOR_KEYWORDS if re.search(rf"\b{color}\b", query_lower)]


def _category_matches(product: Product, category: str) -> bool:
    product_category = (product.get("category") or "").lower()
    return product_category == category or any(
        keyword in product_category for keyword in CATEGORY_KEYWORDS.get(category, [])
    )


def search_catalog(products: List[Product], query: str, limit: int = 10):
    """
    Filter and rank products for a free-text query.

    Price, category and color phrases in the query become hard filters; the
    remaining words score products by how many of them appear in the name,
    description, category and tags. Returns (results, filter_info, clean_query).
    """
    query_lower = query.lower()
    min_price, max_price = extract_price_filters(query)
    category = detect_category(query_lower)
    colors = detect_colors(query_lower)
    has_filters = min_price is not None or max_price is not None or bool(category) or bool(colors)

    words = [w for w in query_lower.split() if len(w) > 2]
    words = [w for w in words if w not in PRICE_WORDS and not _NUMBER_WORD_RE.match(w)]

    scored = []
    for product in products:
        price = product.get("price") or 0
        if max_price is not None and price > max_price:
            continue
        if min_price is not None and price < min_price:
            continue
        if category and not _category_matches(product, category):
            continue
        if colors:
            product_colors = [c.lower() for c in product.get("colors") or []]
            if not any(pc in color or color in pc for color in colors for pc in product_colors):
                continue

        haystack = " ".join([
            product.get("name") or "",
            product.get("description") or "",
            product.get("category") or "",
            *(product.get("tags") or []),
        ]).lower()

        score = 0.0
        for word in words:
            if any(variant in haystack for variant in _word_variants(word)):
                score += 1
        if query_lower and query_lower in haystack:
            score += 2
        if max_price:
            ratio = price / max_price
            if 0.7 <= ratio <= 1.0:
                score += 0.5

        if has_filters or score > 0:
            scored.append((score, product))

    # sorted() is stable, so equal scores keep catalog order
    results = [product for _, product in sorted(scored, key=lambda pair: pair[0], reverse=True)][:limit]

    filter_info = []
    if max_price is not None:
        filter_info.append(f"under ₹{_fmt_amount(max_price)}")
    if min_price is not None:
        filter_info.append(f"over ₹{_fmt_amount(min_price)}")
    if category:
        filter_info.append(f"in {category}")
    if colors:
        filter_info.append(f"in {'/'.join(colors)}")

    return results, filter_info, " ".join(words) or query


async def search(params: Dict[str, Any], tenant_config: TenantConfig) -> Dict[str, Any]:
    query = params.get("query") or ""
    limit = int(params.get("limit") or 10)
    tenant_id = tenant_config.id

    results, filter_info, clean_query = search_catalog(load_products_for_tenant(tenant_id), query, limit)
    suffix = f" ({', '.join(filter_info)})" if filter_info else ""

    logger.info(f"Search '{query}' matched {len(results)} products", extra={"tenant_id": tenant_id})

    if results:
        message = f'Found {len(results)} products matching "{clean_query}"{suffix}'
    else:
        message = f'No products found for "{query}"{suffix}. Try broadening your search.'

    return {
        "type": "search",
        "success": True,
        "handler": "commerce.search",
        "tenant": tenant_id,
        "params": {"query": query, "limit": limit},
        "results": results,
        "totalFound": len(results),
        "message": message,
    }


def _find_by_names(products: List[Product], names: List[str]) -> List[Product]:
    found = []
    for name in names:
        needle = name.lower().strip()
        match = next((p for p in products if needle and needle in (p.get("name") or "").lower()), None)
        if match and match not in found:
            found.append(match)
    return found


async def compare(params: Dict[str, Any], tenant_config: TenantConfig) -> Dict[str, Any]:
    """Side-by-side comparison of products picked by id, by name, or by query."""
    tenant_id = tenant_config.id
    products = load_products_for_tenant(tenant_id)
    by_id = {p.get("id"): p for p in products}

    selected = [by_id[pid] for pid in _as_list(params.get("productIds")) if pid in by_id]
    if len(selected) < 2:
        for product in _find_by_names(products, _as_list(params.get("productNames"))):
            if product not in selected:
                selected.append(product)
    if len(selected) < 2 and params.get("query"):
        results, _, _ = search_catalog(products, params["query"], limit=5)
        for product in results:
            if product not in selected:
                selected.append(product)

    selected = selected[:5]
    if len(selected) < 2:
        return {
            "type": "comparison",
            "success": False,
            "products": selected,
            "message": "I need at least two products to compare.",
        }

    priced = [p for p in selected if isinstance(p.get("price"), (int, float))]
    comparison = {
        "attributes": [
            {
                "id": p.get("id"),
                "name": p.get("name"),
                "price": p.get("price"),
                "category": p.get("category"),
                "colors": p.get("colors") or [],
                "tags": p.get("tags") or [],
            }
            for p in selected
        ],
        "cheapest": min(priced, key=lambda p: p["price"])["id"] if priced else None,
        "mostExpensive": max(priced, key=lambda p: p["price"])["id"] if priced else None,
    }

    return {
        "type": "comparison",
        "success": True,
        "products": selected,
        "comparison": comparison,
        "message": f"Comparing {' vs '.join(p.get('name') or p.get('id') for p in selected)}.",
    }


async def add_to_cart(params: Dict[str, Any], tenant_config: TenantConfig) -> Dict[str, Any]:
    product_id = params.get("productId")
    if not product_id:
        raise ValueError("Missing required parameter: productId")
    return cart_service.add_to_cart(tenant_config.id, _session(params), product_id, params.get("quantity", 1))


async def add_outfit_to_cart(params: Dict[str, Any], tenant_config: TenantConfig) -> Dict[str, Any]:
    product_ids = [params.get("shirtId"), params.get("pantId"), params.get("shoeId")]
    return cart_service.add_outfit_to_cart(tenant_config.id, _session(params), product_ids)


async def remove_from_cart(params: Dict[str, Any], tenant_config: TenantConfig) -> Dict[str, Any]:
    product_id = params.get("productId")
    if not product_id:
        raise ValueError("Missing required parameter: productId")
    return cart_service.remove_from_cart(tenant_config.id, _session(params), product_id)


async def view_cart(params: Dict[str, Any], tenant_config: TenantConfig) -> Dict[str, Any]:
    return cart_service.view_cart(tenant_config.id, _session(params))


async def checkout(params: Dict[str, Any], tenant_config: TenantConfig) -> Dict[str, Any]:
    return cart_service.checkout_cart(tenant_config.id, _session(params), params.get("paymentMethod") or "COD")


async def recommend_products(params: Dict[str, Any], tenant_config: TenantConfig) -> Dict[str, Any]:
    query = params.get("query") or ""
    items = recommender.recommend_products(tenant_config.id, query, _as_list(params.get("preferences")))
    return {
        "type": "recommendations",
        "success": True,
        "query": query,
        "items": items,
        "message": f"Found {len(items)} recommendation(s)." if items else "No matching products found.",
    }


async def recommend_outfit(params: Dict[str, Any], tenant_config: TenantConfig) -> Dict[str, Any]:
    query = params.get("query") or ""
    occasion = params.get("occasion")
    preferences = _as_list(params.get("preferences"))
    if occasion:
        preferences.append(occasion)

    outfit = recommender.recommend_outfit(tenant_config.id, query, preferences)
    return {
        "type": "outfit",
        "success": bool(outfit),
        "query": query,
        "occasion": occasion,
        "items": outfit,
        "message": (
            f"Put together an outfit with {len(outfit)} item(s)."
            if outfit else "Couldn't find items to build an outfit."
        ),
    }


async def view_orders(params: Dict[str, Any], tenant_config: TenantConfig) -> Dict[str, Any]:
    return order_service.get_orders(tenant_config.id, _session(params))


async def get_order_status(params: Dict[str, Any], tenant_config: TenantConfig) -> Dict[str, Any]:
    order_id = params.get("orderId")
    if not order_id:
        raise ValueError("Missing required parameter: orderId")
    return order_service.get_order_status(tenant_config.id, order_id)


async def cancel_order(params: Dict[str, Any], tenant_config: TenantConfig) -> Dict[str, Any]:
    order_id = params.get("orderId")
    if not order_id:
        raise ValueError("Missing required parameter: orderId")
    return order_service.cancel_order(tenant_config.id, order_id, params.get("reason"))


def build_generic_adapters() -> AdapterSet:
    adapters = AdapterSet("generic")

    adapters.register("commerce", "search", search)
    adapters.register("commerce", "compare", compare)
    adapters.register("commerce", "addToCart", add_to_cart)
    adapters.register("commerce", "addOutfitToCart", add_outfit_to_cart)
    adapters.register("commerce", "removeFromCart", remove_from_cart)
    adapters.register("commerce", "viewCart", view_cart)
    adapters.register("commerce", "checkout", checkout)

    adapters.register("recommender", "recommendProducts", recommend_products)
    adapters.register("recommender", "recommendOutfit", recommend_outfit)

    adapters.register("orders", "viewOrders", view_orders)
    adapters.register("orders", "getOrderStatus", get_order_status)
    adapters.register("orders", "cancelOrder", cancel_order)

    return adapters
