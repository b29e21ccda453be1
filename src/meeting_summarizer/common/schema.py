"""Pydantic models and dataclasses for request/response types."""
from __future__ import annotations
from dataclasses import dataclass
from typing import Literal

from pydantic import BaseModel

@dataclass(frozen=True)
class ChatMessage:
    """One message of the chat-completions request."""
    role: Literal["system", "user"]
    content: str

    def as_dict(self) -> dict[str, str]:
        return {"role": self.role, "content": self.content}

@dataclass
class Completion:
    """Text and token usage extracted from a chat-completions response."""
    content: str
    prompt_tokens: int
    completion_tokens: int

class SummarizeIn(BaseModel):
    transcript: str | None = None
    prompt: str | None = None

class TokenUsage(BaseModel):
    prompt: int = 0
    completion: int = 0

class SummarizeOut(BaseModel):
    summary: str
    model: str
    tokens: TokenUsage

class EmailIn(BaseModel):
    email: str | None = None
    summary: str | None = None

class EmailOut(BaseModel):
    ok: bool = True
    id: str

class ErrorOut(BaseModel):
    error: str
