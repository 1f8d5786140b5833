"""Project-wide loguru logger, configured from LoggingSettings.

Structured context is attached with `logger.bind(...)` and rendered after the message."""
import sys

from loguru import logger

from waterlevel.settings import logging_settings

__all__ = ("logger", "LOG_FORMAT")

LOG_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | "
    "<level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - "
    "<level>{message}</level> | {extra}"
)

logger.remove()
logger.add(
    sys.stderr,
    level=logging_settings.level.upper(),
    format=LOG_FORMAT,
    serialize=logging_settings.serialize,
    backtrace=False,
    diagnose=False,
)
