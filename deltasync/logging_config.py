"""Logging configuration utilities for deltasync.

deltasync is silent by default (its logger only has a NullHandler). Call
one of these helpers to see what servers and clients decide per request.

Example usage:
    import deltasync

    # Per-request decisions on the console
    deltasync.enable_console_logging(level="DEBUG")

    # Rotating file logging
    deltasync.enable_file_logging("sync.log", max_bytes=10_000_000)

    # JSON logging for log aggregation
    deltasync.enable_json_logging()

    # Configure from environment variables
    deltasync.configure_from_env()

Environment variables:
    DS_LOGGING: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    DS_LOG_FILE: Path to log file (enables rotating file logging)
    DS_LOG_JSON: Set to "1" for JSON output
"""

from __future__ import annotations

import json
import logging
import os
from datetime import UTC, datetime
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Literal

__all__ = [
    "configure_from_env",
    "disable_logging",
    "enable_console_logging",
    "enable_file_logging",
    "enable_json_file_logging",
    "enable_json_logging",
    "set_level",
    "set_module_level",
]

DEFAULT_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
DEFAULT_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

DEFAULT_MAX_BYTES = 10 * 1024 * 1024  # 10 MB
DEFAULT_BACKUP_COUNT = 5

LOGGER_NAME = "deltasync"

LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]


class JsonFormatter(logging.Formatter):
    """Formats log records as one JSON object per line.

    Example output:
        {"timestamp": "2026-01-15T10:30:00.123456+00:00", "level": "DEBUG",
         "logger": "deltasync.server", "message": "[server] Forgot client 7"}
    """

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "timestamp": datetime.fromtimestamp(record.created, tz=UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)
        return json.dumps(log_data)


def _get_level(level: str | int) -> int:
    if isinstance(level, int):
        return level
    return getattr(logging, level.upper(), logging.INFO)


def _get_logger() -> logging.Logger:
    return logging.getLogger(LOGGER_NAME)


def _clear_handlers() -> None:
    """Remove and close every handler except NullHandler."""
    logger = _get_logger()
    for handler in logger.handlers[:]:
        if not isinstance(handler, logging.NullHandler):
            logger.removeHandler(handler)
            handler.close()


def _install(handler: logging.Handler, level: LogLevel | int) -> None:
    logger = _get_logger()
    logger.setLevel(_get_level(level))
    handler.setLevel(_get_level(level))
    logger.addHandler(handler)


def _rotating_handler(path: str | Path, max_bytes: int, backup_count: int) -> RotatingFileHandler:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    return RotatingFileHandler(path, maxBytes=max_bytes, backupCount=backup_count)


def enable_console_logging(
    level: LogLevel | int = "INFO",
    format: str = DEFAULT_FORMAT,
    date_format: str = DEFAULT_DATE_FORMAT,
) -> logging.StreamHandler:
    """Enable console (stderr) logging.

    Args:
        level: Log level name or int.
        format: Log message format string.
        date_format: Date format string for %(asctime)s.

    Returns:
        The created StreamHandler.
    """
    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter(format, date_format))
    _install(handler, level)
    return handler


def enable_file_logging(
    path: str | Path,
    level: LogLevel | int = "INFO",
    max_bytes: int = DEFAULT_MAX_BYTES,
    backup_count: int = DEFAULT_BACKUP_COUNT,
    format: str = DEFAULT_FORMAT,
    date_format: str = DEFAULT_DATE_FORMAT,
) -> RotatingFileHandler:
    """Enable rotating file logging.

    Args:
        path: Log file path. Parent directories are created.
        level: Log level name or int.
        max_bytes: Size at which the file is rotated.
        backup_count: Rotated files to keep.
        format: Log message format string.
        date_format: Date format string for %(asctime)s.

    Returns:
        The created RotatingFileHandler.
    """
    handler = _rotating_handler(path, max_bytes, backup_count)
    handler.setFormatter(logging.Formatter(format, date_format))
    _install(handler, level)
    return handler


def enable_json_logging(level: LogLevel | int = "INFO") -> logging.StreamHandler:
    """Enable JSON console logging to stderr."""
    handler = logging.StreamHandler()
    handler.setFormatter(JsonFormatter())
    _install(handler, level)
    return handler


def enable_json_file_logging(
    path: str | Path,
    level: LogLevel | int = "INFO",
    max_bytes: int = DEFAULT_MAX_BYTES,
    backup_count: int = DEFAULT_BACKUP_COUNT,
) -> RotatingFileHandler:
    """Enable JSON logging to a rotating file."""
    handler = _rotating_handler(path, max_bytes, backup_count)
    handler.setFormatter(JsonFormatter())
    _install(handler, level)
    return handler


def configure_from_env() -> None:
    """Configure logging from ``DS_LOGGING``, ``DS_LOG_FILE`` and ``DS_LOG_JSON``.

    Does nothing if neither ``DS_LOGGING`` nor ``DS_LOG_FILE`` is set.
    """
    level = os.environ.get("DS_LOGGING", "").upper()
    log_file = os.environ.get("DS_LOG_FILE", "")
    use_json = os.environ.get("DS_LOG_JSON", "") == "1"

    if not level and not log_file:
        return

    level = level or "INFO"

    if use_json:
        if log_file:
            enable_json_file_logging(log_file, level=level)
        else:
            enable_json_logging(level=level)
    else:
        if log_file:
            enable_file_logging(log_file, level=level)
        else:
            enable_console_logging(level=level)


def set_level(level: LogLevel | int) -> None:
    """Set the level of the deltasync logger."""
    _get_logger().setLevel(_get_level(level))


def set_module_level(module: str, level: LogLevel | int) -> None:
    """Set the level for one submodule, e.g. ``set_module_level("server", "DEBUG")``."""
    logging.getLogger(f"{LOGGER_NAME}.{module}").setLevel(_get_level(level))


def disable_logging() -> None:
    """Remove all handlers and silence deltasync completely."""
    logger = _get_logger()
    _clear_handlers()
    logger.addHandler(logging.NullHandler())
    logger.setLevel(logging.CRITICAL + 1)
