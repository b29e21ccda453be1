"""Run the summarizer API under uvicorn using settings from the environment."""
from __future__ import annotations
import logging

import uvicorn

from meeting_summarizer.common.config import Settings
from meeting_summarizer.common.logging_setup import setup_logging
from meeting_summarizer.serve.fastapi_app import create_app

LOGGER = logging.getLogger("meeting_summarizer.server")

def main() -> None:
    settings = Settings.from_env()
    setup_logging(settings.log_level)
    app = create_app(settings)
    LOGGER.info("Server running on http://%s:%s", settings.host, settings.port)
    uvicorn.run(app, host=settings.host, port=settings.port, log_config=None)

if __name__ == "__main__":
    main()
