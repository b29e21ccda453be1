"""Prompt construction for the summarization call."""
from __future__ import annotations

from meeting_summarizer.common.schema import ChatMessage

SYSTEM_PROMPT = "You are a precise meeting notes summarizer."

def render_prompt(transcript: str, extra: str | None = None) -> str:
    """
    Render the user message.

    The caller's instruction is appended exactly as given; an empty or
    missing instruction leaves the section blank rather than falling back
    to a default.

    Args:
        transcript: Meeting transcript, inserted verbatim.
        extra: Additional instruction from the user.

    Returns:
        User message content.
    """
    return f"Transcript:\n{transcript}\n\nAdditional instruction from user:\n{extra or ''}"

def build_messages(transcript: str, extra: str | None = None) -> list[ChatMessage]:
    """Return the system and user messages sent upstream, in that order."""
    return [
        ChatMessage(role="system", content=SYSTEM_PROMPT),
        ChatMessage(role="user", content=render_prompt(transcript, extra)),
    ]
