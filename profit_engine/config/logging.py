"""
Logging configuration.

Configures loguru logger for jobs and scripts.
Sets up log rotation and retention policies.
"""

import sys

from loguru import logger

from profit_engine.config.settings import settings


def setup_logging(component: str = "distribution") -> None:
    """
    Configure logger with console and rotating file sinks.

    Args:
        component: Component name bound to every record
    """
    logger.remove()
    logger.add(sys.stderr, level=settings.log_level)
    logger.add(
        settings.log_file,
        rotation="1 day",
        retention="7 days",
        level=settings.log_level,
        encoding="utf-8",
    )
    logger.configure(extra={"component": component})

    logger.info(f"Logging configured for {component}")
