from __future__ import annotations

import sys

from loguru import logger

from match_alerts.config import get_settings


def configure_logging() -> None:
    """Reset loguru sinks from settings: stderr always, a rotating file when log_file is set."""
    settings = get_settings()
    logger.remove()
    logger.add(sys.stderr, level=settings.log_level)
    if settings.log_file:
        logger.add(
            settings.log_file,
            level=settings.log_level,
            rotation="10 MB",
            retention="14 days",
        )
