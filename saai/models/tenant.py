"""Tenant configuration and action registry models."""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional
from pydantic import BaseModel, ConfigDict, Field


@dataclass
class TenantConfig:
    """Runtime configuration for a tenant, loaded from its JSON file."""
    tenant_id: str
    display_name: str = ""
    persona: Dict[str, Any] = field(default_factory=dict)  # name, role, brandVoice
    settings: Dict[str, Any] = field(default_factory=dict)
    effective_id: Optional[str] = None  # set when a fallback tenant was used
    raw: Dict[str, Any] = field(default_factory=dict)

    @property
    def id(self) -> str:
        """Id the turn actually runs under."""
        return self.effective_id or self.tenant_id

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "TenantConfig":
        return cls(
            tenant_id=data["tenantId"],
            display_name=data.get("displayName", data["tenantId"]),
            persona=data.get("persona") or {},
            settings=data.get("settings") or {},
            raw=data,
        )


class ActionRegistryEntry(BaseModel):
    """One action a tenant exposes, bound to a 'namespace.function' handler."""
    model_config = ConfigDict(populate_by_name=True)

    enabled: bool = True
    handler: Optional[str] = None
    description: Optional[str] = None
    required_params: List[str] = Field(default_factory=list, alias="requiredParams")


class ActionRegistry(BaseModel):
    """Actions enabled for a tenant."""
    model_config = ConfigDict(populate_by_name=True)

    tenant_id: str = Field(..., alias="tenantId")
    actions: Dict[str, ActionRegistryEntry] = Field(default_factory=dict)
    meta: Dict[str, Any] = Field(default_factory=dict, alias="_meta")

    @classmethod
    def empty(cls, tenant_id: str) -> "ActionRegistry":
        return cls(tenant_id=tenant_id, actions={})
