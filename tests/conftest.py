from __future__ import annotations

from pathlib import Path

import pytest

from meeting_summarizer.common.config import Settings


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    return Settings(
        groq_api_key="gsk-test",
        groq_model="test-model",
        resend_api_key="re-test",
        from_email="notes@example.com",
        static_dir=str(tmp_path / "no-static"),
    )
