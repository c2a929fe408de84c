"""
Main entrypoint: FastAPI server for the allowlist and eligibility API.

Env: ALLOWGATE_DB_URL / ALLOWGATE_DB_PATH, NEYNAR_API_KEY, QUOTIENT_API_KEY,
API_HOST, API_PORT, LOG_LEVEL (see allowgate.config.settings).

Equivalent: uvicorn allowgate.api_server.app:app --host 0.0.0.0 --port 8000
"""

import os

# Configure structured JSON logging before other imports that may log
from allowgate.allowgate_logging import get_logger

logger = get_logger("main")


def main() -> None:
    from allowgate.config import get_settings
    from allowgate.api_server.app import app
    import uvicorn

    settings = get_settings()
    if not settings.neynar_api_key:
        logger.warning("main_config_warning", message="NEYNAR_API_KEY not set; social checks will fail")

    logger.info("main_server_starting", host=settings.api_host, port=settings.api_port)
    uvicorn.run(app, host=settings.api_host, port=settings.api_port, log_level=os.getenv("LOG_LEVEL", "info").lower())


if __name__ == "__main__":
    main()
