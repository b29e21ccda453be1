from __future__ import annotations

import logging
from dataclasses import replace
from pathlib import Path
from typing import Sequence

from fastapi.testclient import TestClient

from meeting_summarizer.common.config import Settings
from meeting_summarizer.common.errors import ConfigurationError, UpstreamError
from meeting_summarizer.common.schema import ChatMessage, Completion
from meeting_summarizer.serve.fastapi_app import create_app


class _FakeLLM:
    def __init__(self, content: str = "X", prompt_tokens: int = 10, completion_tokens: int = 5) -> None:
        self.content = content
        self.prompt_tokens = prompt_tokens
        self.completion_tokens = completion_tokens
        self.calls: list[Sequence[ChatMessage]] = []

    def complete(self, messages: Sequence[ChatMessage]) -> Completion:
        self.calls.append(messages)
        return Completion(self.content, self.prompt_tokens, self.completion_tokens)


class _FailingLLM(_FakeLLM):
    def complete(self, messages: Sequence[ChatMessage]) -> Completion:
        self.calls.append(messages)
        raise UpstreamError("Groq", 503, "upstream secret: service unavailable")


class _FakeMailer:
    def __init__(self, message_id: str = "msg_1", error: Exception | None = None) -> None:
        self.message_id = message_id
        self.error = error
        self.sent: list[tuple[str, str]] = []

    def send(self, recipient: str, summary: str) -> str:
        self.sent.append((recipient, summary))
        if self.error is not None:
            raise self.error
        return self.message_id


def _client(settings: Settings, llm: _FakeLLM | None = None, mailer: _FakeMailer | None = None) -> TestClient:
    app = create_app(settings, llm_client=llm or _FakeLLM(), email_client=mailer or _FakeMailer())
    return TestClient(app)


def test_health_ok(settings: Settings) -> None:
    r = _client(settings).get("/health")
    assert r.status_code == 200
    data = r.json()
    assert data == {"status": "ok", "model": "test-model", "email_enabled": True}


def test_summarize_success(settings: Settings) -> None:
    llm = _FakeLLM()
    r = _client(settings, llm=llm).post("/api/summarize", json={"transcript": "Alice: hi", "prompt": "Be brief"})
    assert r.status_code == 200
    assert r.json() == {"summary": "X", "model": "test-model", "tokens": {"prompt": 10, "completion": 5}}
    assert len(llm.calls) == 1
    user = llm.calls[0][1].content
    assert "Alice: hi" in user
    assert user.endswith("Be brief")


def test_summarize_rejects_blank_transcript(settings: Settings) -> None:
    llm = _FakeLLM()
    client = _client(settings, llm=llm)
    for body in ({"transcript": ""}, {"transcript": "   \n\t"}, {}, {"transcript": 42}):
        r = client.post("/api/summarize", json=body)
        assert r.status_code == 400
        assert r.json() == {"error": "Transcript is required"}
    assert llm.calls == []


def test_summarize_malformed_json_is_a_validation_error(settings: Settings) -> None:
    llm = _FakeLLM()
    r = _client(settings, llm=llm).post(
        "/api/summarize", content=b"{not json", headers={"Content-Type": "application/json"}
    )
    assert r.status_code == 400
    assert "error" in r.json()
    assert llm.calls == []


def test_summarize_upstream_failure_is_generic(settings: Settings, caplog) -> None:
    caplog.set_level(logging.ERROR, logger="meeting_summarizer.app")
    r = _client(settings, llm=_FailingLLM()).post("/api/summarize", json={"transcript": "hello"})
    assert r.status_code == 500
    assert r.json() == {"error": "Failed to summarize"}
    assert "upstream secret" not in r.text
    assert "503" in caplog.text
    assert "upstream secret" in caplog.text


def test_summarize_unexpected_error_is_generic(settings: Settings) -> None:
    class _Broken(_FakeLLM):
        def complete(self, messages: Sequence[ChatMessage]) -> Completion:
            raise RuntimeError("boom")

    r = _client(settings, llm=_Broken()).post("/api/summarize", json={"transcript": "hello"})
    assert r.status_code == 500
    assert r.json() == {"error": "Failed to summarize"}


def test_send_email_success(settings: Settings) -> None:
    mailer = _FakeMailer("msg_1")
    r = _client(settings, mailer=mailer).post("/api/send-email", json={"email": "a@b.com", "summary": "<b>Notes</b>"})
    assert r.status_code == 200
    assert r.json() == {"ok": True, "id": "msg_1"}
    assert mailer.sent == [("a@b.com", "<b>Notes</b>")]


def test_send_email_fallback_id(settings: Settings) -> None:
    r = _client(settings, mailer=_FakeMailer("sent")).post(
        "/api/send-email", json={"email": "a@b.com", "summary": "Notes"}
    )
    assert r.status_code == 200
    assert r.json() == {"ok": True, "id": "sent"}


def test_send_email_validation(settings: Settings) -> None:
    mailer = _FakeMailer()
    client = _client(settings, mailer=mailer)

    r = client.post("/api/send-email", json={"email": "a@b.com", "summary": ""})
    assert r.status_code == 400
    assert r.json() == {"error": "Summary content required"}

    r = client.post("/api/send-email", json={"email": "a@b.com", "summary": "   "})
    assert r.status_code == 400

    r = client.post("/api/send-email", json={"summary": "Notes"})
    assert r.status_code == 400
    assert r.json() == {"error": "Recipient email required"}

    assert mailer.sent == []


def test_send_email_not_configured(settings: Settings) -> None:
    mailer = _FakeMailer()
    unconfigured = replace(settings, resend_api_key=None)
    r = _client(unconfigured, mailer=mailer).post("/api/send-email", json={"email": "a@b.com", "summary": "Notes"})
    assert r.status_code == 500
    assert r.json() == {"error": "Email service not configured"}
    assert mailer.sent == []


def test_send_email_client_reports_not_configured(settings: Settings) -> None:
    mailer = _FakeMailer(error=ConfigurationError("Email service not configured"))
    r = _client(settings, mailer=mailer).post("/api/send-email", json={"email": "a@b.com", "summary": "Notes"})
    assert r.status_code == 500
    assert r.json() == {"error": "Email service not configured"}


def test_send_email_provider_failure_is_generic(settings: Settings, caplog) -> None:
    caplog.set_level(logging.ERROR, logger="meeting_summarizer.app")
    mailer = _FakeMailer(error=UpstreamError("Resend", 422, "invalid `from` field"))
    r = _client(settings, mailer=mailer).post("/api/send-email", json={"email": "a@b.com", "summary": "Notes"})
    assert r.status_code == 500
    assert r.json() == {"error": "Failed to send email"}
    assert "invalid `from` field" in caplog.text


def test_body_too_large(settings: Settings) -> None:
    small = replace(settings, max_body_bytes=64)
    r = _client(small).post("/api/summarize", json={"transcript": "x" * 200})
    assert r.status_code == 413
    assert r.json() == {"error": "Request body too large"}


def test_streamed_body_without_content_length_too_large(settings: Settings) -> None:
    small = replace(settings, max_body_bytes=64)
    llm = _FakeLLM()

    def chunks():
        yield b'{"transcript": "'
        yield b"x" * 200
        yield b'"}'

    r = _client(small, llm=llm).post(
        "/api/summarize", content=chunks(), headers={"Content-Type": "application/json"}
    )
    assert "content-length" not in {k.lower() for k in r.request.headers}
    assert r.status_code == 413
    assert r.json() == {"error": "Request body too large"}
    assert llm.calls == []


def test_form_encoded_bodies_accepted(settings: Settings) -> None:
    llm = _FakeLLM()
    mailer = _FakeMailer("msg_1")
    client = _client(settings, llm=llm, mailer=mailer)

    r = client.post("/api/summarize", data={"transcript": "Alice: hi", "prompt": "short"})
    assert r.status_code == 200
    assert r.json()["summary"] == "X"
    user = llm.calls[0][1].content
    assert "Alice: hi" in user
    assert user.endswith("short")

    r = client.post("/api/send-email", data={"email": "a@b.com", "summary": "Notes"})
    assert r.status_code == 200
    assert r.json() == {"ok": True, "id": "msg_1"}
    assert mailer.sent == [("a@b.com", "Notes")]


def test_form_encoded_blank_transcript_rejected(settings: Settings) -> None:
    r = _client(settings).post("/api/summarize", data={"transcript": "  "})
    assert r.status_code == 400
    assert r.json() == {"error": "Transcript is required"}


def test_wrongly_typed_fields_rejected(settings: Settings) -> None:
    llm = _FakeLLM()
    mailer = _FakeMailer()
    client = _client(settings, llm=llm, mailer=mailer)

    r = client.post("/api/summarize", json={"transcript": "hello", "prompt": ["a", "b"]})
    assert r.status_code == 400
    assert r.json() == {"error": "Prompt must be text"}

    r = client.post("/api/send-email", json={"email": ["a@b.com"], "summary": "Notes"})
    assert r.status_code == 400
    assert r.json() == {"error": "Recipient email required"}

    assert llm.calls == []
    assert mailer.sent == []


def test_static_files_mounted_when_directory_exists(settings: Settings, tmp_path: Path) -> None:
    static = tmp_path / "public"
    static.mkdir()
    (static / "index.html").write_text("<h1>Summarizer</h1>", encoding="utf-8")
    client = _client(replace(settings, static_dir=str(static)))
    r = client.get("/")
    assert r.status_code == 200
    assert "Summarizer" in r.text
    assert client.get("/health").json()["status"] == "ok"
