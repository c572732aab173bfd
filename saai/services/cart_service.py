"""In-memory shopping carts keyed by tenant and session."""

import copy
import logging
import time
from collections import defaultdict
from typing import Any, Dict, List, Optional

from saai.models.context import utc_now_iso
from saai.services import order_service
from saai.services.product_catalog import Product, load_products_for_tenant

logger = logging.getLogger(__name__)

DEFAULT_SESSION = "demo-session"
DEFAULT_CURRENCY = "INR"

# carts[tenant_id][session_id] = {"items": [...], "updatedAt": ...}
_carts: Dict[str, Dict[str, Dict[str, Any]]] = defaultdict(dict)


def _key(tenant_id: Optional[str], session_id: Optional[str]):
    return tenant_id or "default", session_id or DEFAULT_SESSION


def get_cart(tenant_id: Optional[str], session_id: Optional[str]) -> Dict[str, Any]:
    """Cart record for the key, created empty on first access."""
    tenant, session = _key(tenant_id, session_id)
    cart = _carts[tenant].get(session)
    if cart is None:
        cart = {"items": [], "updatedAt": utc_now_iso()}
        _carts[tenant][session] = cart
    return cart


def clear_cart(tenant_id: Optional[str], session_id: Optional[str]) -> None:
    tenant, session = _key(tenant_id, session_id)
    _carts[tenant].pop(session, None)


def reset_carts() -> None:
    _carts.clear()


def get_all_carts() -> Dict[str, Dict[str, Any]]:
    return copy.deepcopy(dict(_carts))


def build_cart_summary(cart: Dict[str, Any]) -> Dict[str, Any]:
    total_items = 0
    total_amount = 0.0
    for item in cart.get("items", []):
        total_items += item["quantity"]
        price = (item.get("productSnapshot") or {}).get("price")
        if isinstance(price, (int, float)):
            total_amount += price * item["quantity"]
    return {"totalItems": total_items, "totalAmount": round(total_amount, 2)}


def _snapshot(product: Product) -> Dict[str, Any]:
    return {
        "id": product["id"],
        "name": product.get("name"),
        "price": product.get("price"),
        "currency": product.get("currency") or DEFAULT_CURRENCY,
        "category": product.get("category"),
        "imageUrl": product.get("imageUrl") or product.get("image"),
    }


def _put_item(cart: Dict[str, Any], product: Product, quantity: int) -> None:
    for item in cart["items"]:
        if item["productId"] == product["id"]:
            item["quantity"] += quantity
            return
    cart["items"].append({
        "productId": product["id"],
        "quantity": quantity,
        "productSnapshot": _snapshot(product),
    })


def _coerce_quantity(quantity: Any) -> int:
    try:
        quantity = int(quantity)
    except (TypeError, ValueError):
        return 1
    return max(quantity, 1)


def _cart_result(action: str, success: bool, message: str, cart: Dict[str, Any], **extra) -> Dict[str, Any]:
    result = {
        "type": "cart",
        "success": success,
        "action": action,
        "message": message,
        "cart": copy.deepcopy(cart),
        "summary": build_cart_summary(cart),
    }
    result.update(extra)
    return result


def add_to_cart(tenant_id: str, session_id: Optional[str], product_id: str, quantity: Any = 1) -> Dict[str, Any]:
    cart = get_cart(tenant_id, session_id)
    quantity = _coerce_quantity(quantity)

    product = next((p for p in load_products_for_tenant(tenant_id) if p.get("id") == product_id), None)
    if product is None:
        logger.info(f"Product {product_id} not found", extra={"tenant_id": tenant_id})
        return _cart_result("add_to_cart", False, f"Product {product_id} not found in catalog.", cart)

    _put_item(cart, product, quantity)
    cart["updatedAt"] = utc_now_iso()

    summary = build_cart_summary(cart)
    logger.info(
        f"Cart updated: {summary['totalItems']} items",
        extra={"tenant_id": tenant_id, "session_id": session_id, "product_id": product_id},
    )
    return _cart_result(
        "add_to_cart",
        True,
        f"Added {product.get('name')} to your cart. You now have {summary['totalItems']} item(s) "
        f"totaling ₹{summary['totalAmount']}.",
        cart,
        addedProduct={"id": product["id"], "name": product.get("name"), "price": product.get("price")},
    )


def add_outfit_to_cart(tenant_id: str, session_id: Optional[str], product_ids: List[str]) -> Dict[str, Any]:
    """Add each outfit piece once. Unknown ids are reported in `missing`."""
    cart = get_cart(tenant_id, session_id)
    catalog = {p.get("id"): p for p in load_products_for_tenant(tenant_id)}

    added, missing = [], []
    for product_id in product_ids:
        if not product_id:
            continue
        product = catalog.get(product_id)
        if product is None:
            missing.append(product_id)
            continue
        _put_item(cart, product, 1)
        added.append({"id": product["id"], "name": product.get("name"), "price": product.get("price")})

    if added:
        cart["updatedAt"] = utc_now_iso()
        names = ", ".join(item["name"] for item in added)
        message = f"Added {names} to your cart."
    else:
        message = "None of the outfit items were found in the catalog."

    return _cart_result("add_outfit_to_cart", bool(added), message, cart, addedItems=added, missing=missing)


def remove_from_cart(tenant_id: str, session_id: Optional[str], product_id: str) -> Dict[str, Any]:
    cart = get_cart(tenant_id, session_id)
    remaining = [item for item in cart["items"] if item["productId"] != product_id]

    if len(remaining) == len(cart["items"]):
        return _cart_result("remove_from_cart", False, f"Product {product_id} is not in your cart.", cart)

    removed = next(item for item in cart["items"] if item["productId"] == product_id)
    cart["items"] = remaining
    cart["updatedAt"] = utc_now_iso()
    name = removed["productSnapshot"].get("name") or product_id
    return _cart_result("remove_from_cart", True, f"Removed {name} from your cart.", cart)


def view_cart(tenant_id: str, session_id: Optional[str]) -> Dict[str, Any]:
    cart = get_cart(tenant_id, session_id)
    summary = build_cart_summary(cart)

    if not cart["items"]:
        message = "Your cart is empty. Start shopping to add items!"
    else:
        item_list = ", ".join(
            f"{i['productSnapshot']['name']} (x{i['quantity']}) - ₹{i['productSnapshot']['price'] * i['quantity']:.2f}"
            for i in cart["items"]
        )
        message = f"Your cart has {summary['totalItems']} item(s): {item_list}. Total: ₹{summary['totalAmount']}."

    return _cart_result("view_cart", True, message, cart)


def build_order(tenant_id: str, session_id: Optional[str], cart: Dict[str, Any], payment_method: str,
                order_id: Optional[str] = None) -> Dict[str, Any]:
    """Order record for the cart's current contents."""
    return {
        "orderId": order_id or f"ORD-{int(time.time() * 1000)}",
        "tenantId": tenant_id,
        "sessionId": session_id or DEFAULT_SESSION,
        "items": [
            {
                "productId": item["productId"],
                "name": item["productSnapshot"]["name"],
                "price": item["productSnapshot"]["price"],
                "quantity": item["quantity"],
                "subtotal": item["productSnapshot"]["price"] * item["quantity"],
            }
            for item in cart["items"]
        ],
        "summary": build_cart_summary(cart),
        "paymentMethod": payment_method,
        "status": "CONFIRMED",
        "createdAt": utc_now_iso(),
    }


def checkout_cart(tenant_id: str, session_id: Optional[str], payment_method: Optional[str] = "COD") -> Dict[str, Any]:
    """Turn the cart into a confirmed order and empty the cart."""
    payment_method = payment_method or "COD"
    cart = get_cart(tenant_id, session_id)

    if not cart["items"]:
        return {
            "type": "checkout",
            "success": False,
            "action": "checkout",
            "message": "Your cart is empty. Add some items before checking out!",
            "order": None,
        }

    order = build_order(tenant_id, session_id, cart, payment_method)
    order_service.create_order(order)
    clear_cart(tenant_id, session_id)

    logger.info(f"Order created: {order['orderId']}", extra={"tenant_id": tenant_id, "session_id": session_id})
    return {
        "type": "checkout",
        "success": True,
        "action": "checkout",
        "message": (
            f"🎉 Order {order['orderId']} confirmed! Total: ₹{order['summary']['totalAmount']}. "
            f"Payment method: {payment_method}. Thank you for your purchase!"
        ),
        "order": order,
    }
