"""Tenant info and debug cart API router."""

import logging
from typing import Optional
from fastapi import APIRouter, HTTPException, Query

from saai.api.models import CartAddRequest
from saai.infra.validation import validate_tenant_id
from saai.services import cart_service
from saai.services.tenant_context_service import get_tenant_summary

logger = logging.getLogger(__name__)

router = APIRouter()


def _validated(tenant_id: str) -> str:
    try:
        validate_tenant_id(tenant_id)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return tenant_id


@router.get("/tenant/{tenant_id}", tags=["Tenants"])
async def get_tenant_info(tenant_id: str):
    """Tenant persona, settings and the actions its registry enables."""
    summary = get_tenant_summary(_validated(tenant_id))
    if summary is None:
        raise HTTPException(status_code=404, detail="Tenant not found")
    return {"success": True, **summary}


@router.get("/cart/{tenant_id}", tags=["Cart"])
async def get_cart(
    tenant_id: str,
    session: Optional[str] = Query(None, description="Session ID (defaults to the demo session)"),
):
    """View a cart (debug endpoint)."""
    return cart_service.view_cart(_validated(tenant_id), session)


@router.post("/cart/{tenant_id}/add", tags=["Cart"])
async def add_to_cart(tenant_id: str, request: CartAddRequest):
    """Add a product to a cart (debug endpoint)."""
    tenant_id = _validated(tenant_id)
    if not request.productId:
        raise HTTPException(status_code=400, detail="productId is required")

    logger.info(f"Debug add to cart: {request.productId}", extra={"tenant_id": tenant_id})
    return cart_service.add_to_cart(tenant_id, request.sessionId, request.productId, request.quantity)
