"""
Console logging configuration.

Usage:
    from mongodb_s3_backup.config.logging_config import init_logging
    init_logging()
    logging.getLogger("mongodb_s3_backup").info("Backup started")
"""

from __future__ import annotations

import logging
import os
import sys
from datetime import datetime

# ANSI color codes for console output
COLORS = {
    "DEBUG": "\033[36m",  # Cyan
    "INFO": "\033[32m",  # Green
    "WARNING": "\033[33m",  # Yellow
    "ERROR": "\033[31m",  # Red
    "CRITICAL": "\033[35m",  # Magenta
    "RESET": "\033[0m",
}

# Module-specific colors for tags
TAG_COLORS = {
    "mongodb_s3_backup.pipeline": "\033[94m",  # Blue
    "mongodb_s3_backup.dump": "\033[92m",  # Green
    "mongodb_s3_backup.archive": "\033[96m",  # Cyan
    "mongodb_s3_backup.storage.s3": "\033[95m",  # Magenta
    "mongodb_s3_backup.scheduler": "\033[93m",  # Yellow
}

_NOISY_LOGGERS = ("boto3", "botocore", "s3transfer", "urllib3", "asyncio")

_initialized = False


class ColoredConsoleFormatter(logging.Formatter):
    """Formatter with a timestamp, padded colored level and a [tag]."""

    def __init__(self, use_color: bool = True):
        super().__init__()
        self.use_color = use_color

    def format(self, record: logging.LogRecord) -> str:
        timestamp = datetime.fromtimestamp(record.created).strftime("%Y-%m-%d %H:%M:%S")
        tag = record.name

        if self.use_color:
            reset = COLORS["RESET"]
            level_str = f"{COLORS.get(record.levelname, '')}{record.levelname:8}{reset}"
            tag_str = f"{TAG_COLORS.get(tag, chr(27) + '[37m')}[{tag}]{reset}"
        else:
            level_str = f"{record.levelname:8}"
            tag_str = f"[{tag}]"

        msg = f"{timestamp} {level_str} {tag_str} {record.getMessage()}"

        if record.exc_info:
            msg += "\n" + self.formatException(record.exc_info)

        return msg


def _get_console_level() -> int:
    """Read the console level from LOG_LEVEL (default INFO)."""
    name = os.getenv("LOG_LEVEL", "INFO").upper()
    level = logging.getLevelName(name)
    return level if isinstance(level, int) else logging.INFO


def init_logging(console_level: int | None = None, force: bool = False) -> None:
    """Install the console handler on the root logger."""
    global _initialized

    if _initialized and not force:
        return

    if console_level is None:
        console_level = _get_console_level()

    root_logger = logging.getLogger()
    for handler in list(root_logger.handlers):
        if getattr(handler, "_mongodb_s3_backup", False):
            root_logger.removeHandler(handler)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(console_level)
    console_handler.setFormatter(ColoredConsoleFormatter(use_color=sys.stdout.isatty()))
    console_handler._mongodb_s3_backup = True  # type: ignore[attr-defined]

    root_logger.setLevel(logging.DEBUG)
    root_logger.addHandler(console_handler)

    # Reduce noise from third-party libraries
    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    _initialized = True
