"""Exception types shared by the clients and the HTTP layer."""
from __future__ import annotations


class SummarizerError(Exception):
    """Base class for errors raised by this package."""


class ValidationError(SummarizerError):
    """A required request field is missing or blank."""


class ConfigurationError(SummarizerError):
    """A setting is invalid, or a credential needed at call time is absent."""


class UpstreamError(SummarizerError):
    """A provider call failed.

    Carries the HTTP status (``None`` for transport failures) and the raw
    response body. Both are for server logs only and must never be echoed
    back to API callers.
    """

    def __init__(self, provider: str, status: int | None, body: str) -> None:
        self.provider = provider
        self.status = status
        self.body = body
        if status is None:
            super().__init__(f"{provider} request failed: {body}")
        else:
            super().__init__(f"{provider} error {status}: {body}")
