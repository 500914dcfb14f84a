"""Main entry point for Lead Screener."""

import os
import uvicorn

from lead_screener.core.config import settings
from lead_screener.core.logging import logger


def main():
    """Run the Lead Screener API server."""
    logger.info("Starting Lead Screener API server")

    # Task state lives in process memory, so only one worker may serve it.
    dev_mode = os.environ.get("DEV_MODE", "0") == "1" or os.environ.get("UVICORN_RELOAD", "0") == "1"
    if dev_mode:
        logger.info("Running in DEV MODE with auto-reload enabled")

    uvicorn.run(
        "lead_screener.api.main:app",
        host=os.environ.get("HOST", "0.0.0.0"),
        port=int(os.environ.get("PORT", "8000")),
        reload=dev_mode,
        reload_dirs=["src"] if dev_mode else None,
        reload_excludes=["*.log", "*.pyc", "__pycache__", "data/*", "logs/*"] if dev_mode else None,
        workers=1,
        log_level=settings.LOG_LEVEL.lower(),
    )


if __name__ == "__main__":
    main()
