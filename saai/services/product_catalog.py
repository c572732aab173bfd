"""Per-tenant product catalogs stored as JSON files."""

import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional

from saai.infra.config import config
from saai.infra.validation import sanitize_tenant_id

logger = logging.getLogger(__name__)

FALLBACK_CATALOG = "example"

Product = Dict[str, Any]


def _catalog_path(tenant_id: str) -> Path:
    return config.DATA_DIR / "products" / f"products.{tenant_id}.json"


def _read_catalog(path: Path) -> Optional[List[Product]]:
    """Products from a catalog file, or None when the file is missing or malformed."""
    if not path.is_file():
        return None
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        logger.error(f"Error reading product file {path.name}: {e}")
        return None

    products = data.get("products") if isinstance(data, dict) else None
    if not isinstance(products, list):
        logger.warning(f"Invalid product file structure: {path.name}")
        return None
    return products


def load_products_for_tenant(tenant_id: str) -> List[Product]:
    """
    Load the tenant's catalog, falling back to the example catalog.

    Returns [] when neither can be read.
    """
    safe_id = sanitize_tenant_id(tenant_id) or FALLBACK_CATALOG

    products = _read_catalog(_catalog_path(safe_id))
    if products is not None:
        logger.debug(f"Loaded {len(products)} products for tenant: {safe_id}")
        return products

    if safe_id != FALLBACK_CATALOG:
        logger.info(f"No product file for tenant: {safe_id}, falling back to {FALLBACK_CATALOG}")
        products = _read_catalog(_catalog_path(FALLBACK_CATALOG))
        if products is not None:
            return products

    return []


def get_product_by_id(tenant_id: str, product_id: str) -> Optional[Product]:
    for product in load_products_for_tenant(tenant_id):
        if product.get("id") == product_id:
            return product
    return None


def get_products_by_category(tenant_id: str, category: str) -> List[Product]:
    return [p for p in load_products_for_tenant(tenant_id) if p.get("category") == category]


def get_products_by_tags(tenant_id: str, tags: List[str]) -> List[Product]:
    wanted = set(tags)
    return [
        p for p in load_products_for_tenant(tenant_id)
        if any(tag in wanted for tag in (p.get("tags") or []))
    ]
