"""Vendor-agnostic chat request model.

A ChatRequest is immutable once dispatched: the enforcers read it but
never modify it, so the same instance can be retried across escalation
tiers and recorded on the trace afterwards.
"""

from __future__ import annotations

import json
from enum import Enum

from pydantic import BaseModel, Field, model_validator


class Vendor(str, Enum):
    """Upstream LLM vendors the gateway can dispatch to."""

    OPENAI = "openai"
    ANTHROPIC = "anthropic"
    GEMINI = "gemini"
    DEEPSEEK = "deepseek"


class ChatMessage(BaseModel):
    """A single conversation message."""

    model_config = {"frozen": True, "extra": "forbid"}

    role: str  # system, user, assistant
    content: str


class ChatRequest(BaseModel):
    """A chat-completion request in the gateway's own shape.

    Either ``messages`` or ``prompt`` must be given. When both are present
    the message list wins and the prompt is ignored.
    """

    model_config = {"frozen": True, "extra": "forbid"}

    vendor: Vendor = Vendor.OPENAI
    model: str | None = None
    system_prompt: str | None = None
    messages: tuple[ChatMessage, ...] = ()
    prompt: str | None = None
    temperature: float | None = Field(default=None, ge=0.0, le=2.0)
    max_tokens: int | None = Field(default=None, ge=1)
    stream: bool = False

    @model_validator(mode="after")
    def _require_input(self) -> "ChatRequest":
        if not self.messages and not self.prompt:
            raise ValueError("either 'messages' or 'prompt' is required")
        return self

    def conversation(self) -> list[ChatMessage]:
        """Return the conversation as a message list (prompt wrapped as user)."""
        if self.messages:
            return list(self.messages)
        return [ChatMessage(role="user", content=self.prompt or "")]

    def last_user_content(self) -> str:
        """Return the content of the final user turn, or the prompt."""
        for msg in reversed(self.messages):
            if msg.role == "user":
                return msg.content
        return self.prompt or ""

    def prompt_text(self) -> str:
        """Flatten the request input to one string for trace storage."""
        if self.prompt and not self.messages:
            return self.prompt
        return json.dumps(
            [msg.model_dump() for msg in self.messages], ensure_ascii=False
        )
