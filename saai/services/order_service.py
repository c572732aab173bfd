"""In-memory order history: view, track and cancel."""

import copy
import logging
from collections import defaultdict
from datetime import datetime
from typing import Any, Dict, List, Optional

from saai.models.context import utc_now_iso

logger = logging.getLogger(__name__)

DEFAULT_SESSION = "demo-session"

NON_CANCELLABLE_STATUSES = ("DELIVERED", "CANCELLED", "RETURNED")

# orders[tenant_id][session_id] = [order, ...]
_orders: Dict[str, Dict[str, List[Dict[str, Any]]]] = defaultdict(dict)


def _seed_orders() -> Dict[str, List[Dict[str, Any]]]:
    return {
        DEFAULT_SESSION: [
            {
                "orderId": "ORD-1715432100",
                "tenantId": "example",
                "sessionId": DEFAULT_SESSION,
                "items": [
                    {"productId": "p101", "name": "Classic White Shirt", "price": 2499, "quantity": 1, "subtotal": 2499},
                ],
                "summary": {"totalItems": 1, "totalAmount": 2499},
                "paymentMethod": "COD",
                "status": "DELIVERED",
                "createdAt": "2024-05-11T10:15:00+00:00",
            },
            {
                "orderId": "ORD-1715518500",
                "tenantId": "example",
                "sessionId": DEFAULT_SESSION,
                "items": [
                    {"productId": "p103", "name": "Slim Fit Chinos", "price": 1899, "quantity": 2, "subtotal": 3798},
                ],
                "summary": {"totalItems": 2, "totalAmount": 3798},
                "paymentMethod": "UPI",
                "status": "PROCESSING",
                "createdAt": utc_now_iso(),
            },
        ]
    }


def reset_orders() -> None:
    """Drop every order and restore the demo orders for the example tenant."""
    _orders.clear()
    _orders["example"] = _seed_orders()


reset_orders()


def _created_at(order: Dict[str, Any]) -> datetime:
    return datetime.fromisoformat(order["createdAt"].replace("Z", "+00:00"))


def _find_order(tenant_id: str, order_id: str) -> Optional[Dict[str, Any]]:
    for session_orders in _orders.get(tenant_id, {}).values():
        for order in session_orders:
            if order["orderId"] == order_id:
                return order
    return None


def create_order(order: Dict[str, Any]) -> Dict[str, Any]:
    tenant_id = order["tenantId"]
    session_id = order.get("sessionId") or DEFAULT_SESSION
    _orders[tenant_id].setdefault(session_id, []).append(order)
    logger.info(f"Stored new order {order['orderId']}", extra={"tenant_id": tenant_id, "session_id": session_id})
    return order


def get_orders(tenant_id: str, session_id: Optional[str]) -> Dict[str, Any]:
    session_orders = _orders[tenant_id].setdefault(session_id or DEFAULT_SESSION, [])
    session_orders.sort(key=_created_at, reverse=True)

    return {
        "type": "order_list",
        "success": True,
        "action": "view_orders",
        "message": f"Found {len(session_orders)} order(s)." if session_orders else "You have no orders yet.",
        "orders": copy.deepcopy(session_orders),
    }


def get_order_status(tenant_id: str, order_id: str) -> Dict[str, Any]:
    """Look an order up across every session of the tenant."""
    order = _find_order(tenant_id, order_id)
    if order is None:
        return {
            "type": "order_status",
            "success": False,
            "action": "get_order_status",
            "message": f"Order {order_id} not found.",
            "order": None,
        }

    return {
        "type": "order_status",
        "success": True,
        "action": "get_order_status",
        "message": f"Order {order_id} is currently {order['status']}.",
        "order": copy.deepcopy(order),
    }


def cancel_order(tenant_id: str, order_id: str, reason: Optional[str] = None) -> Dict[str, Any]:
    order = _find_order(tenant_id, order_id)
    if order is None:
        return {
            "type": "order_update",
            "success": False,
            "action": "cancel_order",
            "message": f"Order {order_id} not found.",
            "order": None,
        }

    if order["status"] in NON_CANCELLABLE_STATUSES:
        return {
            "type": "order_update",
            "success": False,
            "action": "cancel_order",
            "message": f"Cannot cancel order {order_id} because it is already {order['status']}.",
            "order": copy.deepcopy(order),
        }

    order["status"] = "CANCELLED"
    order["cancelledAt"] = utc_now_iso()
    order["cancellationReason"] = reason or "User requested cancellation"
    logger.info(f"Cancelled order {order_id}", extra={"tenant_id": tenant_id, "reason": order["cancellationReason"]})

    return {
        "type": "order_update",
        "success": True,
        "action": "cancel_order",
        "message": f"Order {order_id} has been cancelled successfully.",
        "order": copy.deepcopy(order),
    }
