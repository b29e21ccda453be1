"""Service configuration.

Settings are read once at startup from environment variables. An optional
YAML file named by ``SUMMARIZER_CONFIG`` supplies defaults underneath the
environment, which keeps secrets out of the file when desired.
"""
from __future__ import annotations
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Mapping

import yaml

from meeting_summarizer.common.errors import ConfigurationError

LOGGER = logging.getLogger("meeting_summarizer.config")

DEFAULT_MODEL = "llama-3.1-8b-instant"
DEFAULT_LLM_BASE_URL = "https://api.groq.com/openai/v1"
DEFAULT_EMAIL_BASE_URL = "https://api.resend.com"


def load_cfg(path: str) -> dict[str, Any]:
    """Read a YAML mapping of setting names to values; keys are upper-cased."""
    with open(path, "r", encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ConfigurationError(f"Config file {path} must contain a mapping")
    return {str(k).upper(): v for k, v in data.items()}


def _as_bool(value: str, default: bool) -> bool:
    truthy = {"1", "true", "t", "yes", "y"}
    falsy = {"0", "false", "f", "no", "n"}
    if value.lower() in truthy:
        return True
    if value.lower() in falsy:
        return False
    return default


def _as_int(name: str, value: str) -> int:
    try:
        return int(value)
    except ValueError:
        raise ConfigurationError(f"{name} must be an integer, got {value!r}") from None


def _as_float(name: str, value: str) -> float:
    try:
        return float(value)
    except ValueError:
        raise ConfigurationError(f"{name} must be a number, got {value!r}") from None


@dataclass(frozen=True)
class Settings:
    groq_api_key: str | None = None
    groq_model: str = DEFAULT_MODEL
    llm_base_url: str = DEFAULT_LLM_BASE_URL
    resend_api_key: str | None = None
    email_base_url: str = DEFAULT_EMAIL_BASE_URL
    from_email: str | None = None
    host: str = "0.0.0.0"
    port: int = 3000
    http_timeout_seconds: float = 30.0
    rate_limit_max: int = 20
    rate_limit_window_seconds: int = 60
    trust_proxy_headers: bool = False
    max_body_bytes: int = 5 * 1024 * 1024
    static_dir: str = "public"
    log_level: str = "INFO"

    @property
    def email_enabled(self) -> bool:
        """Email sending is available only when the provider key is set."""
        return bool(self.resend_api_key)

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> "Settings":
        """Load settings from the environment, layered over an optional YAML file."""
        env = os.environ if environ is None else environ
        values: dict[str, str] = {}
        cfg_path = env.get("SUMMARIZER_CONFIG")
        if cfg_path:
            if not Path(cfg_path).exists():
                raise ConfigurationError(f"Config file not found at {cfg_path}")
            values.update({k: str(v) for k, v in load_cfg(cfg_path).items() if v is not None})
        values.update({k: v for k, v in env.items() if v != ""})

        def get(name: str) -> str | None:
            return values.get(name)

        settings = cls(
            groq_api_key=get("GROQ_API_KEY"),
            groq_model=get("GROQ_MODEL") or cls.groq_model,
            llm_base_url=(get("LLM_BASE_URL") or cls.llm_base_url).rstrip("/"),
            resend_api_key=get("RESEND_API_KEY"),
            email_base_url=(get("EMAIL_BASE_URL") or cls.email_base_url).rstrip("/"),
            from_email=get("FROM_EMAIL"),
            host=get("HOST") or cls.host,
            port=_as_int("PORT", get("PORT") or str(cls.port)),
            http_timeout_seconds=_as_float(
                "HTTP_TIMEOUT_SECONDS", get("HTTP_TIMEOUT_SECONDS") or str(cls.http_timeout_seconds)
            ),
            rate_limit_max=_as_int("RATE_LIMIT_MAX", get("RATE_LIMIT_MAX") or str(cls.rate_limit_max)),
            rate_limit_window_seconds=_as_int(
                "RATE_LIMIT_WINDOW_SECONDS",
                get("RATE_LIMIT_WINDOW_SECONDS") or str(cls.rate_limit_window_seconds),
            ),
            trust_proxy_headers=_as_bool(get("TRUST_PROXY_HEADERS") or "", cls.trust_proxy_headers),
            max_body_bytes=_as_int("MAX_BODY_BYTES", get("MAX_BODY_BYTES") or str(cls.max_body_bytes)),
            static_dir=get("STATIC_DIR") or cls.static_dir,
            log_level=(get("LOG_LEVEL") or cls.log_level).upper(),
        )
        settings.validate()
        return settings

    def validate(self) -> None:
        if self.rate_limit_max < 1:
            raise ConfigurationError("RATE_LIMIT_MAX must be at least 1")
        if self.rate_limit_window_seconds < 1:
            raise ConfigurationError("RATE_LIMIT_WINDOW_SECONDS must be at least 1")
        if self.http_timeout_seconds <= 0:
            raise ConfigurationError("HTTP_TIMEOUT_SECONDS must be positive")
        if self.max_body_bytes < 1:
            raise ConfigurationError("MAX_BODY_BYTES must be positive")

    def log_status(self) -> None:
        """Warn about missing keys and log what is enabled; never logs secrets."""
        if not self.groq_api_key:
            LOGGER.warning("Missing GROQ_API_KEY; /api/summarize will fail until it is set")
        if not self.from_email:
            LOGGER.warning("Missing FROM_EMAIL (for email sending)")
        LOGGER.info("LLM model: %s via %s", self.groq_model, self.llm_base_url)
        LOGGER.info("Email sending: %s", "enabled" if self.email_enabled else "disabled (no RESEND_API_KEY)")
