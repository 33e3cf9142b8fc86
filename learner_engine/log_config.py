"""
Loguru setup for entry points.

Library modules only ever call `logger.debug/info/...`; sinks are
configured once by whoever owns the process (the CLI, a service, tests).
"""

from __future__ import annotations

import sys

from loguru import logger

from learner_engine.config import Settings, get_settings

LOG_FORMAT = "<dim>{time:HH:mm:ss}</dim> | <level>{level: <8}</level> | {message}"
FILE_FORMAT = "{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {name}:{function}:{line} - {message}"


def configure_logging(settings: Settings | None = None, level: str | None = None) -> None:
    """
    Replace loguru's default handler with the configured sinks.

    Args:
        settings: Settings to read log_level/log_file from (cached settings if None)
        level: Explicit level overriding settings.log_level
    """
    settings = settings or get_settings()
    logger.remove()
    logger.add(
        sys.stderr,
        level=level or settings.log_level,
        format=LOG_FORMAT,
    )
    if settings.log_file:
        logger.add(
            settings.log_file,
            level="DEBUG",
            format=FILE_FORMAT,
            rotation="10 MB",
        )
