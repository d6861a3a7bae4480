#!/usr/bin/env python3
"""Run the TinyDates HTTP service under Uvicorn.

Host, port, log level and auto-reload come from `src.config` (`API_HOST`,
`API_PORT`, `LOG_LEVEL`, `DEBUG`). Set `DATABASE_URL` and `REDIS_URL` to point
the service at Postgres and Redis; without them it runs on a local SQLite file
with in-process sessions.
"""

import uvicorn

from src.config import settings
from src.utils.logging import configure_logging, get_logger

logger = get_logger(__name__)

if __name__ == "__main__":
    configure_logging()
    logger.info(
        "Starting TinyDates service",
        host=settings.API_HOST,
        port=settings.API_PORT,
        environment=settings.ENVIRONMENT,
        sessions="redis" if settings.REDIS_URL else "memory",
    )

    uvicorn.run(
        "src.api.main:app",
        host=settings.API_HOST,
        port=settings.API_PORT,
        log_level=settings.LOG_LEVEL.lower(),
        reload=settings.DEBUG,
    )
