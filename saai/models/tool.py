"""Canonical tool definition model."""

from pydantic import BaseModel, ConfigDict, Field
from typing import Dict, Any


class ToolDefinition(BaseModel):
    """Vendor-neutral tool definition; converted per provider at call time."""
    model_config = ConfigDict(frozen=True)

    name: str = Field(..., description="Canonical tool name, e.g. 'search_products'")
    description: str = Field(..., description="When the model should call this tool")
    parameters_schema: Dict[str, Any] = Field(..., description="JSON Schema for parameters")
