"""
Logging utilities for Dump Triage.

Provides centralized logging configuration with a rotating log file in the
per-user application directory.
"""

import logging
import logging.handlers
import traceback
from typing import Optional

from .config import ConfigManager


def setup_logging(
    level: int = logging.INFO,
    log_to_console: bool = True,
    log_to_file: bool = True,
    max_bytes: int = 10 * 1024 * 1024,  # 10MB
    backup_count: int = 5,
    config_manager: Optional[ConfigManager] = None
) -> logging.Logger:
    """
    Setup centralized logging configuration.

    Args:
        level: Logging level (default: INFO)
        log_to_console: Whether to log to console
        log_to_file: Whether to log to file
        max_bytes: Maximum log file size in bytes
        backup_count: Number of backup log files to keep
        config_manager: Settings holder providing the log directory

    Returns:
        Root logger instance
    """
    logger = logging.getLogger()
    logger.setLevel(level)

    # Clear existing handlers
    logger.handlers.clear()

    formatter = logging.Formatter(
        '%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )

    if log_to_console:
        console_handler = logging.StreamHandler()
        console_handler.setLevel(level)
        console_handler.setFormatter(formatter)
        logger.addHandler(console_handler)

    if log_to_file:
        try:
            log_dir = (config_manager or ConfigManager()).get_log_dir()
            log_file = log_dir / "dump_triage.log"

            file_handler = logging.handlers.RotatingFileHandler(
                log_file,
                maxBytes=max_bytes,
                backupCount=backup_count,
                encoding='utf-8'
            )
            file_handler.setLevel(level)
            file_handler.setFormatter(formatter)
            logger.addHandler(file_handler)

        except OSError as e:
            # Fallback to console if file logging fails
            logger.warning(f"Failed to setup file logging: {e}")

    return logger


def log_exception(logger: logging.Logger, context: str, e: Exception, level: int = logging.ERROR):
    """
    Log an exception with full traceback.

    Args:
        logger: Logger to write to
        context: Description of what was happening
        e: The exception
        level: Logging level (default ERROR)
    """
    full_traceback = "".join(traceback.format_exception(type(e), e, e.__traceback__))
    logger.log(level, f"{context}: {e}\n{full_traceback}")
