"""
Logging configuration for the ingestion job and the trigger API
"""

import logging
import sys

from core.config import Settings

LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# Per-request and per-statement chatter; page progress is logged by the job
QUIET_LOGGERS = (
    "sqlalchemy.engine",
    "sqlalchemy.pool",
    "httpx",
    "httpcore",
    "apscheduler",
)


def setup_logging(settings: Settings) -> None:
    """
    Send job logs to stdout at ``LOG_LEVEL`` (INFO when unrecognized).

    The root handler is only installed once per process; later calls
    (the CLI and the app startup hook can both run) leave it in place.
    """
    level = logging.getLevelName(settings.LOG_LEVEL.upper())
    if not isinstance(level, int):
        level = logging.INFO

    logging.basicConfig(
        level=level,
        format=LOG_FORMAT,
        datefmt=DATE_FORMAT,
        handlers=[logging.StreamHandler(sys.stdout)]
    )

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(max(level, logging.WARNING))

    logging.getLogger(__name__).info(
        f"Logging configured at {logging.getLevelName(level)} level ({settings.ENVIRONMENT})"
    )
