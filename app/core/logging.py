"""
Logging configuration for the attendance and leave service
"""
import logging
import sys
from typing import Optional

from app.core.config import settings


def setup_logging(level: Optional[str] = None) -> None:
    """
    Configure root logging to stdout.

    level overrides settings.LOG_LEVEL (the cron jobs pass --log-level through).
    SQL statement logging stays off unless DEBUG is asked for.
    """
    level_name = (level or settings.LOG_LEVEL).upper()
    log_level = getattr(logging, level_name, logging.INFO)

    logging.basicConfig(
        level=log_level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        handlers=[logging.StreamHandler(sys.stdout)],
    )
    logging.getLogger().setLevel(log_level)

    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.INFO if log_level == logging.DEBUG else logging.WARNING)
    logging.getLogger("alembic").setLevel(logging.INFO)

    logging.getLogger(__name__).info(
        "Logging configured: level=%s env=%s timezone=%s",
        level_name, settings.APP_ENV, settings.APP_TIMEZONE,
    )
