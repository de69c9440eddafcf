"""
Configuration module for the batch subtitle translator.

Settings are imported explicitly from config.settings so that importing
constants or loggers never reads the environment.
"""
from .constants import *
from .logging_config import configure_logging, get_logger, set_console_level, logger

__all__ = [
    # Logging
    'configure_logging',
    'get_logger',
    'set_console_level',
    'logger',
    # Constants (all exported via *)
]
