"""FastAPI app for transcript summarization and summary delivery by email.

Endpoints:
- GET /health
- POST /api/summarize   { "transcript": "...", "prompt": "..." }
- POST /api/send-email  { "email": "...", "summary": "..." }
"""
from __future__ import annotations
import json
import logging
from pathlib import Path
from typing import Any, Protocol, Sequence

from fastapi import Depends, FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from pydantic import BaseModel
from pydantic import ValidationError as SchemaError
from starlette.exceptions import HTTPException as StarletteHTTPException

from meeting_summarizer.clients.llm import LLMClient
from meeting_summarizer.clients.mailer import EmailClient
from meeting_summarizer.common.config import Settings
from meeting_summarizer.common.errors import ConfigurationError, UpstreamError, ValidationError
from meeting_summarizer.common.schema import (
    ChatMessage,
    Completion,
    EmailIn,
    EmailOut,
    ErrorOut,
    SummarizeIn,
    SummarizeOut,
    TokenUsage,
)
from meeting_summarizer.common.templates import build_messages
from meeting_summarizer.serve.ratelimit import FixedWindowRateLimiter, client_key

LOGGER = logging.getLogger("meeting_summarizer.app")

API_PREFIX = "/api/"
FORM_CONTENT_TYPE = "application/x-www-form-urlencoded"

SUMMARIZE_MESSAGES = {"transcript": "Transcript is required", "prompt": "Prompt must be text"}
EMAIL_MESSAGES = {"email": "Recipient email required", "summary": "Summary content required"}

class Summarizer(Protocol):
    def complete(self, messages: Sequence[ChatMessage]) -> Completion: ...

class Mailer(Protocol):
    def send(self, recipient: str, summary: str) -> str: ...

def _error(status_code: int, message: str, headers: dict[str, str] | None = None) -> JSONResponse:
    return JSONResponse(status_code=status_code, content=ErrorOut(error=message).model_dump(), headers=headers)

async def request_body(request: Request) -> dict[str, Any]:
    """Read a JSON object or a url-encoded form; anything else counts as empty."""
    raw = await request.body()
    if len(raw) > request.app.state.settings.max_body_bytes:
        raise HTTPException(status_code=413, detail="Request body too large")
    if not raw:
        return {}
    content_type = request.headers.get("content-type", "")
    if content_type.split(";")[0].strip().lower() == FORM_CONTENT_TYPE:
        form = await request.form()
        return {k: v for k, v in form.items() if isinstance(v, str)}
    try:
        data = json.loads(raw)
    except ValueError:
        LOGGER.info("Ignoring malformed JSON body on %s", request.url.path)
        return {}
    return data if isinstance(data, dict) else {}

def get_settings(request: Request) -> Settings:
    return request.app.state.settings

def get_llm_client(request: Request) -> Summarizer:
    return request.app.state.llm_client

def get_email_client(request: Request) -> Mailer:
    return request.app.state.email_client

def _parse(model: type[BaseModel], body: dict[str, Any], messages: dict[str, str]) -> Any:
    """Validate ``body`` against ``model``; a wrongly typed field raises that field's message."""
    try:
        return model.model_validate(body)
    except SchemaError as e:
        errors = e.errors()
        loc = errors[0]["loc"] if errors else ()
        field = str(loc[0]) if loc else ""
        raise ValidationError(messages.get(field, "Invalid request body")) from None

def _required_text(value: str | None, message: str) -> str:
    if not value or not value.strip():
        raise ValidationError(message)
    return value

def summarize(
    body: dict[str, Any] = Depends(request_body),
    settings: Settings = Depends(get_settings),
    llm: Summarizer = Depends(get_llm_client),
) -> Any:
    try:
        req = _parse(SummarizeIn, body, SUMMARIZE_MESSAGES)
        transcript = _required_text(req.transcript, SUMMARIZE_MESSAGES["transcript"])
    except ValidationError as e:
        LOGGER.info("Rejected summarize request: %s", e)
        return _error(400, str(e))

    messages = build_messages(transcript, req.prompt)

    try:
        completion = llm.complete(messages)
    except (UpstreamError, ConfigurationError) as e:
        LOGGER.error("Summarize failed: %s", e)
        return _error(500, "Failed to summarize")
    except Exception:
        LOGGER.exception("Summarize failed unexpectedly")
        return _error(500, "Failed to summarize")

    return SummarizeOut(
        summary=completion.content,
        model=settings.groq_model,
        tokens=TokenUsage(prompt=completion.prompt_tokens, completion=completion.completion_tokens),
    )

def send_email(
    body: dict[str, Any] = Depends(request_body),
    settings: Settings = Depends(get_settings),
    mailer: Mailer = Depends(get_email_client),
) -> Any:
    try:
        req = _parse(EmailIn, body, EMAIL_MESSAGES)
        if not req.email:
            raise ValidationError(EMAIL_MESSAGES["email"])
        summary = _required_text(req.summary, EMAIL_MESSAGES["summary"])
    except ValidationError as e:
        LOGGER.info("Rejected send-email request: %s", e)
        return _error(400, str(e))

    if not settings.email_enabled:
        LOGGER.warning("Email requested but RESEND_API_KEY is not configured")
        return _error(500, "Email service not configured")

    try:
        message_id = mailer.send(req.email, summary)
    except ConfigurationError as e:
        LOGGER.warning("Email requested but service is not configured: %s", e)
        return _error(500, "Email service not configured")
    except UpstreamError as e:
        LOGGER.error("Failed to send email: %s", e)
        return _error(500, "Failed to send email")
    except Exception:
        LOGGER.exception("Failed to send email")
        return _error(500, "Failed to send email")

    return EmailOut(ok=True, id=message_id)

def create_app(
    settings: Settings | None = None,
    llm_client: Summarizer | None = None,
    email_client: Mailer | None = None,
    rate_limiter: FixedWindowRateLimiter | None = None,
) -> FastAPI:
    """Build the app with its provider clients injected.

    Clients default to the HTTP implementations configured from ``settings``;
    tests pass stubs instead.
    """
    settings = settings or Settings.from_env()
    app = FastAPI(title="Meeting Summarizer")
    app.state.settings = settings
    app.state.llm_client = llm_client or LLMClient.from_settings(settings)
    app.state.email_client = email_client or EmailClient.from_settings(settings)
    app.state.rate_limiter = rate_limiter or FixedWindowRateLimiter(
        settings.rate_limit_max, settings.rate_limit_window_seconds
    )

    @app.on_event("startup")
    def _log_configuration_on_startup() -> None:
        settings.log_status()

    @app.exception_handler(StarletteHTTPException)
    async def _http_error(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        return _error(exc.status_code, str(exc.detail), getattr(exc, "headers", None))

    @app.middleware("http")
    async def enforce_rate_limit(request: Request, call_next):
        if not request.url.path.startswith(API_PREFIX):
            return await call_next(request)

        key = client_key(request, settings.trust_proxy_headers)
        decision = app.state.rate_limiter.hit(key)
        headers = {
            "X-RateLimit-Limit": str(decision.limit),
            "X-RateLimit-Remaining": str(decision.remaining),
        }
        if not decision.allowed:
            LOGGER.warning("Rate limit exceeded for %s on %s", key, request.url.path)
            headers["Retry-After"] = str(decision.reset_after)
            return _error(429, "Too many requests, please try again later.", headers)

        response = await call_next(request)
        response.headers.update(headers)
        return response

    @app.middleware("http")
    async def enforce_body_limit(request: Request, call_next):
        length = request.headers.get("content-length")
        if length is not None and length.isdigit() and int(length) > settings.max_body_bytes:
            return _error(413, "Request body too large")
        return await call_next(request)

    @app.get("/health")
    def health() -> dict[str, Any]:
        return {"status": "ok", "model": settings.groq_model, "email_enabled": settings.email_enabled}

    app.add_api_route(
        "/api/summarize",
        summarize,
        methods=["POST"],
        response_model=SummarizeOut,
        responses={400: {"model": ErrorOut}, 500: {"model": ErrorOut}},
    )
    app.add_api_route(
        "/api/send-email",
        send_email,
        methods=["POST"],
        response_model=EmailOut,
        responses={400: {"model": ErrorOut}, 500: {"model": ErrorOut}},
    )

    static_dir = Path(settings.static_dir)
    if static_dir.is_dir():
        app.mount("/", StaticFiles(directory=static_dir, html=True), name="static")
        LOGGER.info("Serving static files from %s", static_dir)

    return app
