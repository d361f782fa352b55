"""Process entry point: `plan-service` console script.

Loads `.env`, reads configuration, configures logging and serves the app
with uvicorn.
"""

from __future__ import annotations

import logging

import uvicorn
from dotenv import load_dotenv

from plan_service.config import load_config
from plan_service.logging_setup import configure_logging
from plan_service.main import create_app

logger = logging.getLogger(__name__)


def main() -> None:
    # Explicit environment variables win over .env entries
    load_dotenv(override=False)
    cfg = load_config()
    configure_logging(cfg.log_level)
    logger.info("Server starting on %s:%s", cfg.server.host, cfg.server.port)
    uvicorn.run(
        create_app(cfg),
        host=cfg.server.host,
        port=cfg.server.port,
        log_config=None,
    )


if __name__ == "__main__":  # pragma: no cover
    main()
