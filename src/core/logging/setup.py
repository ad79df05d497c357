"""Logging setup and configuration."""

import io
import logging
import sys
from logging.handlers import TimedRotatingFileHandler
from pathlib import Path

from core.logging.formatters import ConsoleFormatter, JSONFormatter

# Default settings
DEFAULT_ROTATION_WHEN = "midnight"
DEFAULT_BACKUP_COUNT = 7
DEFAULT_CONSOLE_LEVEL = logging.INFO
DEFAULT_FILE_LEVEL = logging.DEBUG

# Noisy loggers to suppress
NOISY_LOGGERS = [
    "aiohttp",
    "aiohttp.access",
    "aiohttp.client",
    "asyncio",
    "urllib3",
]


def _build_console_handler() -> logging.StreamHandler:
    if sys.platform == "win32":
        safe_stderr = io.TextIOWrapper(sys.stderr.buffer, encoding="utf-8", errors="replace")
        return logging.StreamHandler(safe_stderr)
    return logging.StreamHandler(sys.stderr)


def setup_logging(
    name: str = "nakadi",
    console_level: int = DEFAULT_CONSOLE_LEVEL,
    json_format: bool = False,
    log_file: Path | None = None,
    file_level: int = DEFAULT_FILE_LEVEL,
    rotation_when: str = DEFAULT_ROTATION_WHEN,
    backup_count: int = DEFAULT_BACKUP_COUNT,
    suppress_noisy: bool = True,
) -> logging.Logger:
    """
    Configure the root logger with a console handler and an optional file handler.

    Console output goes to stderr so that stdout stays free for data (the CLI
    prints one JSON batch per line there).

    Args:
        name: Name of the logger returned to the caller
        console_level: Console handler level (default: INFO)
        json_format: Use JSONFormatter on the console instead of ConsoleFormatter
        log_file: Optional path of a time-rotated log file (always JSON)
        file_level: File handler level (default: DEBUG)
        rotation_when: When to rotate the file - 'midnight', 'H' (hourly), ...
        backup_count: Number of rotated files to keep
        suppress_noisy: Quiet down HTTP client and event loop loggers

    Returns:
        Configured logger instance
    """
    root_logger = logging.getLogger()
    root_logger.setLevel(logging.DEBUG)  # Capture all, handlers filter
    root_logger.handlers.clear()

    console_handler = _build_console_handler()
    console_handler.setLevel(console_level)
    console_handler.setFormatter(JSONFormatter() if json_format else ConsoleFormatter())
    root_logger.addHandler(console_handler)

    if log_file is not None:
        log_file = Path(log_file)
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = TimedRotatingFileHandler(
            log_file,
            when=rotation_when,
            backupCount=backup_count,
            encoding="utf-8",
        )
        file_handler.setLevel(file_level)
        file_handler.setFormatter(JSONFormatter())
        root_logger.addHandler(file_handler)

    if suppress_noisy:
        for logger_name in NOISY_LOGGERS:
            logging.getLogger(logger_name).setLevel(logging.WARNING)

    return logging.getLogger(name)


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger instance.

    Use this instead of logging.getLogger() to ensure consistent naming.

    Args:
        name: Logger name (typically __name__)

    Returns:
        Logger instance
    """
    return logging.getLogger(name)
