"""API request/response models."""

from typing import List, Optional, Dict, Any
from pydantic import BaseModel, Field

from saai.models.message import ChatMessage


# ============================================================================
# Chat Models
# ============================================================================

class ChatRequest(BaseModel):
    """
    Body of POST /chat.

    tenant and message are optional here so that a missing field still gets
    the 200 validation envelope instead of FastAPI's 422.
    """
    tenant: Optional[str] = Field(None, description="Tenant identifier", example="example")
    message: Optional[str] = Field(None, description="User message", example="show me white shirts")
    history: List[ChatMessage] = Field(default_factory=list, description="Previous turns, oldest first")
    conversationHistory: List[ChatMessage] = Field(
        default_factory=list, description="Legacy alias for history"
    )
    sessionId: Optional[str] = Field(None, description="Session ID for cart and context isolation")

    def chat_history(self) -> List[ChatMessage]:
        return self.history or self.conversationHistory


class ChatErrorResponse(BaseModel):
    """Envelope for every failed chat request (still HTTP 200)."""
    success: bool = Field(default=False)
    error: str
    message: Optional[str] = None
    type: str = Field(..., example="validation_error")


# ============================================================================
# Cart Models
# ============================================================================

class CartAddRequest(BaseModel):
    """Body of POST /cart/{tenant_id}/add."""
    productId: Optional[str] = Field(None, description="Product ID to add", example="p101")
    quantity: int = Field(default=1, ge=1, description="Quantity to add")
    sessionId: Optional[str] = Field(None, description="Session ID (defaults to the demo session)")


# ============================================================================
# Logs Models
# ============================================================================

class DebugLogsResponse(BaseModel):
    """Response model for /debug/logs."""
    success: bool = True
    count: int
    totalInBuffer: int
    logs: List[Dict[str, Any]]
