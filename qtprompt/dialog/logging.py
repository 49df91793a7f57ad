"""
Dialog Engine Logging

All engine modules log through the ``qtprompt`` logger. Output is
warnings-only unless ``QTPROMPT_LOG_LEVEL`` names another level or the
host calls configure_logging / set_debug_enabled.
"""

import logging
import os
from typing import Optional

logger = logging.getLogger("qtprompt")

LOG_LEVEL_ENV_VAR = "QTPROMPT_LOG_LEVEL"
DEFAULT_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
DEFAULT_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def level_from_env(default: int = logging.WARNING) -> int:
    """Level named by $QTPROMPT_LOG_LEVEL; ``default`` when unset or unknown."""
    name = os.environ.get(LOG_LEVEL_ENV_VAR, "").strip().upper()
    level = logging.getLevelName(name) if name else default
    return level if isinstance(level, int) else default


def configure_logging(
    level: int = logging.WARNING,
    format_str: Optional[str] = None,
    date_format: Optional[str] = None,
    log_file: Optional[str] = None,
):
    """
    Replace the engine's handlers with a stderr handler, plus a file
    handler when ``log_file`` is given.

    Args:
        level: Logging level (e.g., logging.DEBUG, logging.INFO)
        format_str: Log message format string
        date_format: Date format string
        log_file: Optional path that receives the same records
    """
    formatter = logging.Formatter(
        format_str or DEFAULT_FORMAT,
        datefmt=date_format or DEFAULT_DATE_FORMAT,
    )
    handlers: list[logging.Handler] = [logging.StreamHandler()]
    if log_file:
        handlers.append(logging.FileHandler(log_file, encoding="utf-8"))

    for handler in logger.handlers:
        handler.close()
    logger.handlers.clear()
    for handler in handlers:
        handler.setFormatter(formatter)
        logger.addHandler(handler)
    logger.setLevel(level)
    logger.propagate = False


def set_debug_enabled(enabled: bool):
    """Switch between debug and warnings-only output."""
    logger.setLevel(logging.DEBUG if enabled else logging.WARNING)


def is_debug_enabled() -> bool:
    return logger.level <= logging.DEBUG


configure_logging(level_from_env())
