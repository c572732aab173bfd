"""Indexed list of recently shown products for resolving "the second one" and friends."""

import re
from typing import Any, Dict, List, Optional

MAX_INDEXED_PRODUCTS = 10

RECENT_PRODUCTS_HEADER = "=== RECENT PRODUCTS SHOWN TO USER (indexed list) ==="

REFERENCE_RULES = [
    "=== REFERENCE RESOLUTION RULES ===",
    '- "the first one", "first" → Index 1 in the list above',
    '- "the second one", "second" → Index 2 in the list above',
    '- "the third one", "third" → Index 3 in the list above',
    '- "a cheaper option", "cheapest" → Find products with LOWER price than shown, same/similar category',
    '- "more expensive", "premium" → Find products with HIGHER price, same/similar category',
    '- "similar to that one", "like the second one" → Find products with similar category/tags',
    '- "replace the shirt with X" → Output NEW product IDs matching X, not the old ones',
    '- "within my budget of X" → Filter to products under price X',
    "=== END REFERENCE RULES ===",
]

ORDINAL_PATTERNS = [
    (re.compile(r"\b(first|1st)\b"), 0),
    (re.compile(r"\b(second|2nd)\b"), 1),
    (re.compile(r"\b(third|3rd)\b"), 2),
    (re.compile(r"\b(fourth|4th)\b"), 3),
    (re.compile(r"\b(fifth|5th)\b"), 4),
    (re.compile(r"\b(sixth|6th)\b"), 5),
    (re.compile(r"\b(seventh|7th)\b"), 6),
    (re.compile(r"\b(eighth|8th)\b"), 7),
    (re.compile(r"\b(ninth|9th)\b"), 8),
    (re.compile(r"\b(tenth|10th)\b"), 9),
]

DEMONSTRATIVE_RE = re.compile(r"\b(that\s+one|this\s+one|it)\b")


def get_indexed_products(products: List[Dict[str, Any]], matched_ids: List[str]) -> List[Dict[str, Any]]:
    """Products behind matched_ids in matched_ids order, as numbered for the user."""
    if not products or not matched_ids:
        return []

    by_id = {}
    for product in products:
        by_id.setdefault(product.get("id"), product)
    return [by_id[pid] for pid in matched_ids if pid in by_id][:MAX_INDEXED_PRODUCTS]


def build_recent_products_context(products: List[Dict[str, Any]], matched_ids: List[str]) -> str:
    """
    Render the products behind matched_ids as a numbered list for the prompt.

    Entries follow matched_ids order; ids with no product are skipped.
    Returns "" when nothing matches.
    """
    matched = get_indexed_products(products, matched_ids)
    if not matched:
        return ""

    lines = [
        RECENT_PRODUCTS_HEADER,
        'Use this list to resolve ordinal references like "the first", "the second", etc.',
        "",
    ]

    for index, p in enumerate(matched, start=1):
        lines.append(f"{index}. ID: {p.get('id')}")
        lines.append(f"   Name: {p.get('name')}")
        lines.append(f"   Category: {p.get('category') or 'unknown'}")
        lines.append(f"   Price: {p.get('price') or 0} {p.get('currency') or 'INR'}")
        colors = p.get("colors")
        if isinstance(colors, list) and colors:
            lines.append(f"   Colors: {', '.join(colors)}")
        tags = p.get("tags")
        if isinstance(tags, list) and tags:
            lines.append(f"   Tags: {', '.join(tags)}")
        lines.append("")

    return "\n".join(lines + REFERENCE_RULES)


def extract_referenced_product(message: str, recent: List[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    if not message or not recent:
        return None

    lower = message.lower()
    for pattern, index in ORDINAL_PATTERNS:
        if pattern.search(lower) and index < len(recent):
            return recent[index]

    if DEMONSTRATIVE_RE.search(lower):
        return recent[0]
    return None

