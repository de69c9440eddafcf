"""
Centralized logging configuration.

One package logger ('subtitle_translator') owns the handlers; modules log
through children of it:

    from config.logging_config import get_logger
    logger = get_logger(__name__)      # -> subtitle_translator.core.batch.scheduler
"""
import logging
import logging.handlers
from pathlib import Path
from typing import Optional

from .constants import (
    LOG_LEVEL, LOG_FORMAT, LOG_FILE,
    LOG_MAX_SIZE_MB, LOG_BACKUP_COUNT
)

ROOT_LOGGER_NAME = 'subtitle_translator'

_console_handler: Optional[logging.Handler] = None


def configure_logging(level: str = LOG_LEVEL, log_file: Optional[str] = LOG_FILE) -> logging.Logger:
    """
    Attach console and rotating file handlers to the package logger.

    Safe to call more than once; handlers are only added the first time.

    Args:
        level: Level of the package logger
        log_file: Rotating log file (DEBUG and up), None to disable

    Returns:
        The package logger.
    """
    global _console_handler

    root = logging.getLogger(ROOT_LOGGER_NAME)
    root.setLevel(getattr(logging, level))
    if root.handlers:
        return root

    formatter = logging.Formatter(LOG_FORMAT)

    # Console handler - INFO level
    _console_handler = logging.StreamHandler()
    _console_handler.setLevel(logging.INFO)
    _console_handler.setFormatter(formatter)
    root.addHandler(_console_handler)

    if log_file:
        Path(log_file).parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.handlers.RotatingFileHandler(
            log_file,
            maxBytes=LOG_MAX_SIZE_MB * 1024 * 1024,
            backupCount=LOG_BACKUP_COUNT,
            encoding='utf-8',
        )
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(formatter)
        root.addHandler(file_handler)

    return root


def get_logger(name: str = None) -> logging.Logger:
    """
    Logger for a module, nested under the package logger.

    Usage:
        from config.logging_config import get_logger
        logger = get_logger(__name__)
    """
    if not name or name == ROOT_LOGGER_NAME:
        return logging.getLogger(ROOT_LOGGER_NAME)
    return logging.getLogger(f"{ROOT_LOGGER_NAME}.{name}")


def set_console_level(level):
    """Change console verbosity (file logging is unaffected)."""
    if _console_handler is not None:
        _console_handler.setLevel(level)


# Singleton logger for quick imports
# Usage: from config.logging_config import logger
logger = get_logger()
