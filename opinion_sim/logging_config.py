"""
Logging configuration helpers for opinion_sim.

The library is silent by default (the package logger carries a
NullHandler). Callers opt in to output:

    import opinion_sim.logging_config as lc

    lc.enable_console_logging(level="DEBUG")
    lc.configure_from_env()   # reads OPINION_SIM_LOGGING

INFO covers run start/stop and the network summary. DEBUG adds the
per-step stationary counter and every attempted interaction.
"""

import logging
import os
from typing import Optional, Union

__all__ = [
    "configure_from_env",
    "disable_logging",
    "enable_console_logging",
    "set_level",
]

DEFAULT_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
DEFAULT_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

LOGGER_NAME = "opinion_sim"
ENV_LEVEL = "OPINION_SIM_LOGGING"


def _get_level(level: Union[str, int]) -> int:
    """Convert a level name or int to a logging level constant."""
    if isinstance(level, int):
        return level
    return getattr(logging, level.upper(), logging.INFO)


def _get_logger() -> logging.Logger:
    return logging.getLogger(LOGGER_NAME)


def _clear_handlers() -> None:
    """Remove and close every handler except the NullHandler."""
    logger = _get_logger()
    for handler in logger.handlers[:]:
        if not isinstance(handler, logging.NullHandler):
            logger.removeHandler(handler)
            handler.close()


def enable_console_logging(
    level: Union[str, int] = "INFO",
    format: str = DEFAULT_FORMAT,
    date_format: str = DEFAULT_DATE_FORMAT,
) -> logging.StreamHandler:
    """Send opinion_sim log records to stderr.

    Args:
        level: Level name (DEBUG, INFO, ...) or logging constant.
        format: Record format string.
        date_format: Format for %(asctime)s.

    Returns:
        The installed StreamHandler.
    """
    _clear_handlers()
    logger = _get_logger()
    logger.setLevel(_get_level(level))

    handler = logging.StreamHandler()
    handler.setLevel(_get_level(level))
    handler.setFormatter(logging.Formatter(format, date_format))
    logger.addHandler(handler)
    return handler


def set_level(level: Union[str, int]) -> None:
    """Change the level of the package logger and its handlers."""
    logger = _get_logger()
    logger.setLevel(_get_level(level))
    for handler in logger.handlers:
        handler.setLevel(_get_level(level))


def disable_logging() -> None:
    """Silence opinion_sim again."""
    _clear_handlers()
    _get_logger().setLevel(logging.WARNING)


def configure_from_env() -> Optional[logging.StreamHandler]:
    """Enable console logging if OPINION_SIM_LOGGING names a level.

    Returns:
        The installed handler, or None when the variable is unset.
    """
    level = os.environ.get(ENV_LEVEL)
    if not level:
        return None
    return enable_console_logging(level=level)
