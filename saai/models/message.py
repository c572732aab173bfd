"""Chat history message model."""

from pydantic import BaseModel, Field
from typing import Optional


class ChatMessage(BaseModel):
    """One prior turn as sent by the chat client."""
    role: str = Field(default="user", description="'user' | 'assistant' | 'system'")
    content: Optional[str] = Field(None, description="Message text")
    message: Optional[str] = Field(None, description="Legacy alias for content")

    @property
    def text(self) -> str:
        return self.content or self.message or ""
