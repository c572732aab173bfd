from .context import SessionContext, UserProfile
from .message import ChatMessage
from .provider import ProviderResult, ToolCall
from .tenant import ActionRegistry, ActionRegistryEntry, TenantConfig
from .tool import ToolDefinition

__all__ = [
    "ActionRegistry",
    "ActionRegistryEntry",
    "ChatMessage",
    "ProviderResult",
    "SessionContext",
    "TenantConfig",
    "ToolCall",
    "ToolDefinition",
    "UserProfile",
]
