"""
Overrides for the "example" tenant.

Only checkout and search are customized; every other action falls back to
the generic adapters.
"""

import logging
import time
from typing import Any, Dict

from saai.adapters import commerce_adapter
from saai.models.tenant import TenantConfig
from saai.services import cart_service, order_service
from saai.services.action_dispatcher import AdapterSet

logger = logging.getLogger("saai.tenants.example")

DISCOUNT_RATE = 0.10


async def checkout(params: Dict[str, Any], tenant_config: TenantConfig) -> Dict[str, Any]:
    """Checkout with a 10% discount on the cart total."""
    tenant_id = tenant_config.id
    session_id = params.get("sessionId")
    payment_method = params.get("paymentMethod") or "COD"
    cart = cart_service.get_cart(tenant_id, session_id)

    if not cart["items"]:
        return {
            "type": "checkout",
            "success": False,
            "action": "checkout",
            "override": True,
            "message": "Your cart is empty. Add some items before checking out!",
            "order": None,
        }

    order = cart_service.build_order(
        tenant_id,
        session_id,
        cart,
        payment_method,
        order_id=f"EXAMPLE-ORD-{int(time.time() * 1000)}",
    )
    subtotal = order["summary"]["totalAmount"]
    discount = round(subtotal * DISCOUNT_RATE, 2)
    total = round(subtotal - discount, 2)
    order["summary"] = {**order["summary"], "subtotal": subtotal, "discount": discount, "totalAmount": total}
    order["special"] = "Example tenant receives 10% discount!"

    order_service.create_order(order)
    cart_service.clear_cart(tenant_id, session_id)

    logger.info(f"Discounted checkout {order['orderId']}", extra={"tenant_id": tenant_id, "discount": discount})
    return {
        "type": "checkout",
        "success": True,
        "action": "checkout",
        "override": True,
        "message": f"✨ Order {order['orderId']} confirmed with 10% off! Total: ₹{total}.",
        "order": order,
    }


async def search(params: Dict[str, Any], tenant_config: TenantConfig) -> Dict[str, Any]:
    """Regular search results with two premium picks in front."""
    query = params.get("query") or ""
    result = await commerce_adapter.search(params, tenant_config)

    premium = [
        {"id": "premium-001", "name": f"Premium: {query}", "price": 99.99, "inStock": True, "tier": "premium"},
        {"id": "premium-002", "name": f"Exclusive: {query}", "price": 149.99, "inStock": True, "tier": "exclusive"},
    ]
    results = premium + result["results"]

    return {
        **result,
        "override": True,
        "results": results,
        "totalFound": len(results),
        "message": f'✨ Found {len(results)} products for "{query}", including 2 premium picks',
    }


def build_example_adapters() -> AdapterSet:
    adapters = AdapterSet("example")
    adapters.register("commerce", "checkout", checkout)
    adapters.register("commerce", "search", search)
    return adapters
