"""Centralized logging configuration for the API and the scripts."""

import logging

from config import settings

NOISY_LOGGERS = (
    "sqlalchemy.engine",
    "sqlalchemy.pool",
    "httpx",
    "httpcore",
    "urllib3",
    "yfinance",
    "peewee",
)


def setup_logging(level: str | None = None) -> None:
    """Configure the root logger.

    Args:
        level: Overrides ``settings.LOG_LEVEL`` when given (scripts pass
            DEBUG for ``--verbose``).

    Database and market-data library loggers stay at WARNING regardless
    of the chosen level.
    """
    level_name = (level or settings.LOG_LEVEL).upper()
    logging.basicConfig(
        format="%(asctime)s %(levelname)-8s %(name)s  %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        level=getattr(logging, level_name),
        force=True,
    )

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
