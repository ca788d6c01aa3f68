"""
Logger module - Logging configuration and utilities

This module provides logging configuration with support for:
- Console logging
- Rotating file logging
- Configuration from .env
"""

import logging
import logging.handlers
import os
import sys
from pathlib import Path
from typing import Optional

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
LOG_DATE_FORMAT = '%Y-%m-%d %H:%M:%S'

# Root logger of the package; module loggers propagate to it
PACKAGE_LOGGER_NAME = "task_orchestrator"

# Flag to track if logging has been configured
_logging_initialized = False


def configure_logging(
    log_level: str = "INFO",
    log_folder: Optional[str] = None,
    enable_console: bool = True,
    enable_file: bool = False,
    max_bytes: int = 10 * 1024 * 1024,  # 10MB
    backup_count: int = 5
) -> logging.Logger:
    """
    Configure the package logger with console and file handlers.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_folder: Folder for log files (default: ./logs)
        enable_console: Enable console logging
        enable_file: Enable rotating file logging
        max_bytes: Max file size before rotation (default: 10MB)
        backup_count: Number of backup files to keep

    Returns:
        The configured package logger
    """
    global _logging_initialized
    _logging_initialized = True

    level = getattr(logging, log_level.upper(), logging.INFO)
    package_logger = logging.getLogger(PACKAGE_LOGGER_NAME)
    package_logger.setLevel(level)

    for handler in list(package_logger.handlers):
        package_logger.removeHandler(handler)
        handler.close()

    formatter = logging.Formatter(LOG_FORMAT, datefmt=LOG_DATE_FORMAT)

    if enable_console:
        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setLevel(level)
        console_handler.setFormatter(formatter)
        package_logger.addHandler(console_handler)

    if enable_file:
        folder = Path(log_folder or "./logs")
        folder.mkdir(parents=True, exist_ok=True)
        file_handler = logging.handlers.RotatingFileHandler(
            folder / "task_orchestrator.log",
            maxBytes=max_bytes,
            backupCount=backup_count,
            encoding="utf-8"
        )
        file_handler.setLevel(level)
        file_handler.setFormatter(formatter)
        package_logger.addHandler(file_handler)

    return package_logger


def _ensure_logging_initialized() -> None:
    """
    Configure logging from .env on first use.
    This is called automatically by get_logger().
    """
    if _logging_initialized:
        return

    # Imported here: config imports this module for its own logger
    from task_orchestrator.config import EnvConfig

    EnvConfig.load_env_file()
    configure_logging(
        log_level=os.getenv("ORCHESTRATOR_LOG_LEVEL", "INFO"),
        log_folder=os.getenv("ORCHESTRATOR_LOG_FOLDER", "./logs"),
        enable_console=EnvConfig.get_bool("ORCHESTRATOR_ENABLE_CONSOLE_LOGGING", True),
        enable_file=EnvConfig.get_bool("ORCHESTRATOR_ENABLE_FILE_LOGGING", False),
        max_bytes=EnvConfig.get_int("ORCHESTRATOR_LOG_MAX_BYTES", 10485760),
        backup_count=EnvConfig.get_int("ORCHESTRATOR_LOG_BACKUP_COUNT", 5),
    )


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger with standard formatting and .env configuration.

    The first call configures the package logger; module loggers
    (``task_orchestrator.*``) inherit its handlers.

    Args:
        name: Logger name (typically __name__)

    Returns:
        Logger instance
    """
    _ensure_logging_initialized()
    return logging.getLogger(name)


def set_log_level(log_level: str) -> logging.Logger:
    """
    Change the level of the package logger and its handlers in place.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)

    Returns:
        The package logger
    """
    _ensure_logging_initialized()
    level = getattr(logging, log_level.upper(), logging.INFO)
    package_logger = logging.getLogger(PACKAGE_LOGGER_NAME)
    package_logger.setLevel(level)
    for handler in package_logger.handlers:
        handler.setLevel(level)
    return package_logger
