"""
slotwise logger: console + rotating JSON file.

Usage:
    from slotwise.core.logger import LoggerConfig, configure, get_logger

    configure(LoggerConfig(level="DEBUG", log_dir="/var/log/slotwise"))
    # or configure() to read LOG_LEVEL, LOG_DIR, ... from the environment

    logger = get_logger(__name__)
"""
from slotwise.core.logger.config import LoggerConfig
from slotwise.core.logger.formatters import JsonFormatter, PlainConsoleFormatter
from slotwise.core.logger.setup import configure, get_logger

__all__ = [
    "LoggerConfig",
    "JsonFormatter",
    "PlainConsoleFormatter",
    "configure",
    "get_logger",
]
