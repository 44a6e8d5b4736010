"""Pydantic models for API request validation."""
from __future__ import annotations

from pydantic import BaseModel, Field, field_validator


class ChatRequest(BaseModel):
    """Incoming chatbot message.

    Attributes:
        message: The user's message text, non-empty once trimmed.
    """
    message: str = Field(..., min_length=1, description="User message")

    @field_validator("message")
    @classmethod
    def validate_message(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Message cannot be empty")
        return v
