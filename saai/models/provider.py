"""Normalized provider result shared by every LLM adapter."""

from pydantic import BaseModel, Field
from typing import Dict, Any, Literal, Optional


class ToolCall(BaseModel):
    """A tool invocation requested by the model."""
    name: str = Field(..., description="Tool name from the catalog")
    arguments: Dict[str, Any] = Field(default_factory=dict, description="Parsed tool arguments")


class ProviderResult(BaseModel):
    """The only shape adapters and the router hand back to callers."""
    success: bool = Field(..., description="False when the vendor call failed or was not configured")
    decision: Literal["message", "tool"] = Field(default="message")
    provider: str = Field(..., description="Adapter name, or 'fallback' when every provider failed")
    model: str = Field(default="none")
    text: str = Field(default="")
    tool_call: Optional[ToolCall] = None
    error: Optional[str] = None

    @classmethod
    def failure(cls, provider: str, error: str, model: str = "none") -> "ProviderResult":
        return cls(success=False, provider=provider, model=model, error=error)
