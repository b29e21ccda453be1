"""Client for a transactional email API (Resend by default)."""
from __future__ import annotations
import logging
from typing import Any

import httpx

from meeting_summarizer.common.config import Settings
from meeting_summarizer.common.errors import ConfigurationError, UpstreamError

LOGGER = logging.getLogger("meeting_summarizer.clients.mailer")

SUBJECT = "Meeting Summary"
FALLBACK_ID = "sent"


def render_html(summary: str) -> str:
    # Summary is inserted as raw HTML, unescaped
    return f"<div>{summary}</div>"


def extract_message_id(data: Any) -> str:
    """Return the provider message id, or the literal "sent" when there is none."""
    if isinstance(data, dict):
        inner = data.get("data")
        if isinstance(inner, dict) and inner.get("id"):
            return str(inner["id"])
        if data.get("id"):
            return str(data["id"])
    return FALLBACK_ID


class EmailClient:
    """Sends a summary to one recipient with a fixed subject."""

    provider = "Resend"

    def __init__(
        self,
        api_key: str | None,
        sender: str | None,
        base_url: str,
        timeout: float = 30.0,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self.api_key = api_key
        self.sender = sender
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._transport = transport

    @classmethod
    def from_settings(cls, settings: Settings) -> "EmailClient":
        return cls(
            api_key=settings.resend_api_key,
            sender=settings.from_email,
            base_url=settings.email_base_url,
            timeout=settings.http_timeout_seconds,
        )

    @property
    def enabled(self) -> bool:
        return bool(self.api_key)

    def send(self, recipient: str, summary: str) -> str:
        """Send the summary and return the provider message id."""
        if not self.enabled:
            raise ConfigurationError("Email service not configured")

        url = f"{self.base_url}/emails"
        headers = {"Authorization": f"Bearer {self.api_key}"}
        payload = {
            "from": self.sender,
            "to": [recipient],
            "subject": SUBJECT,
            "html": render_html(summary),
        }

        LOGGER.info("Sending email via %s", self.provider)
        try:
            with httpx.Client(timeout=self.timeout, transport=self._transport) as client:
                r = client.post(url, headers=headers, json=payload)
        except httpx.HTTPError as e:
            raise UpstreamError(self.provider, None, str(e)) from e

        if not r.is_success:
            raise UpstreamError(self.provider, r.status_code, r.text)

        try:
            data = r.json()
        except ValueError:
            data = None

        # Provider-reported failure on a 2xx response
        if isinstance(data, dict) and data.get("error"):
            raise UpstreamError(self.provider, r.status_code, r.text)

        message_id = extract_message_id(data)
        LOGGER.info("%s accepted message id=%s", self.provider, message_id)
        return message_id
