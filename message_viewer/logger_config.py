"""
Logging configuration for the message viewer.

Uses dictConfig so it can be called repeatedly (CLI, API startup, tests).
The default format includes the thread name because search runs on its own
worker thread and its log lines should be told apart from the loader's.

Environment Variables:
    LOG_LEVEL: DEBUG, INFO, WARNING, ERROR or CRITICAL (default INFO).
    MESSAGE_VIEWER_LOG_FILE: Optional path for a rotating log file.

Usage:
    from message_viewer.logger_config import setup_logging
    setup_logging()
    setup_logging(level=logging.DEBUG)  # shows skipped-record details
"""

import logging
import logging.config
import os
from typing import Iterable, Optional

DEFAULT_FORMAT = "%(asctime)s - %(name)s - %(threadName)s - %(levelname)s - %(message)s"

# Third-party loggers that drown out ingest output at INFO
NOISY_LOGGERS = ("uvicorn.access", "httpx")


def get_log_level() -> int:
    """
    Get log level from the LOG_LEVEL environment variable.

    Returns:
        Logging level constant; INFO when unset or invalid.
    """
    level_name = os.getenv("LOG_LEVEL", "INFO").upper()
    level = getattr(logging, level_name, None)

    if level is None or not isinstance(level, int):
        return logging.INFO

    return level


def setup_logging(
    level: Optional[int] = None,
    format_string: Optional[str] = None,
    log_file: Optional[str] = None,
    quiet_loggers: Iterable[str] = NOISY_LOGGERS,
) -> None:
    """
    Configure logging for the application.

    Args:
        level: Logging level. If None, reads LOG_LEVEL (default: INFO).
        format_string: Optional custom format string.
        log_file: Optional rotating log file. Falls back to MESSAGE_VIEWER_LOG_FILE.
        quiet_loggers: Logger names pinned to WARNING regardless of level.
    """
    if level is None:
        level = get_log_level()

    if format_string is None:
        format_string = DEFAULT_FORMAT

    if log_file is None:
        log_file = os.getenv("MESSAGE_VIEWER_LOG_FILE") or None

    config: dict = {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "standard": {
                "format": format_string,
                "datefmt": "%Y-%m-%d %H:%M:%S",
            },
        },
        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "level": level,
                "formatter": "standard",
                "stream": "ext://sys.stderr",
            },
        },
        "loggers": {
            name: {"level": max(level, logging.WARNING)} for name in quiet_loggers
        },
        "root": {
            "level": level,
            "handlers": ["console"],
        },
    }

    if log_file:
        config["handlers"]["file"] = {
            "class": "logging.handlers.RotatingFileHandler",
            "level": level,
            "formatter": "standard",
            "filename": log_file,
            "maxBytes": 5_242_880,  # 5 MB
            "backupCount": 3,
            "encoding": "utf-8",
        }
        config["root"]["handlers"].append("file")

    logging.config.dictConfig(config)
