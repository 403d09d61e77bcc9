"""Logging Configuration for the Reddit Intelligence Daemon

This module provides centralized logging configuration using structlog with JSON output.
Both the CLI and the web server call setup_logging() once at startup; library code only
calls get_logger().

Usage:
    >>> from reddit_intel.backend.utils.logging_config import setup_logging, get_logger
    >>> setup_logging()
    >>> logger = get_logger(__name__)
    >>> logger.info("job_started", job_id=1, channels=3)
    >>> logger.error("channel_failed", exc_info=True, channel="r/python")
"""

import logging
import os
import sys
from pathlib import Path
from typing import Optional, Union

import structlog


def _resolve_level(level: Union[str, int, None]) -> int:
    """Map a level name (or LOG_LEVEL env var) to a stdlib logging level."""
    if level is None:
        level = os.environ.get("LOG_LEVEL", "INFO")
    if isinstance(level, int):
        return level
    resolved = logging.getLevelName(str(level).upper())
    return resolved if isinstance(resolved, int) else logging.INFO


def setup_logging(
    log_dir: str = "logs",
    log_filename: str = "daemon.log",
    level: Union[str, int, None] = None,
) -> None:
    """Configure structlog with JSON renderer and file + console output.

    Sets up both Python stdlib logging and structlog to write JSON-formatted
    log entries to <log_dir>/<log_filename>. Creates the log directory if it
    doesn't exist.

    Args:
        log_dir: Directory for log files, relative to current working directory (default: "logs")
        log_filename: Name of the log file (default: "daemon.log")
        level: Console log level name or number. Defaults to the LOG_LEVEL
            environment variable, then INFO. The file handler always logs DEBUG.

    Log entry format (JSON):
        {
            "event": "page_fetched",
            "level": "info",
            "timestamp": "2026-02-10T12:34:56.789Z",
            "logger": "reddit_intel.fetcher",
            ...additional context fields...
        }
    """
    log_path = Path(log_dir)
    log_path.mkdir(parents=True, exist_ok=True)

    log_file = log_path / log_filename

    shared_processors = [
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.format_exc_info,
        structlog.processors.StackInfoRenderer(),
    ]

    structlog.configure(
        processors=shared_processors + [
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    # Final JSON rendering happens in the stdlib formatter so that records from
    # third-party libraries (requests, uvicorn) come out in the same shape
    formatter = structlog.stdlib.ProcessorFormatter(
        processor=structlog.processors.JSONRenderer(),
        foreign_pre_chain=shared_processors,
    )

    file_handler = logging.FileHandler(str(log_file), encoding="utf-8")
    file_handler.setLevel(logging.DEBUG)
    file_handler.setFormatter(formatter)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(_resolve_level(level))
    console_handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.setLevel(logging.DEBUG)
    root_logger.handlers.clear()
    root_logger.addHandler(file_handler)
    root_logger.addHandler(console_handler)

    # urllib3 is chatty at DEBUG (one line per connection)
    logging.getLogger("urllib3").setLevel(logging.INFO)


def get_logger(name: Optional[str] = None):
    """Get a configured structlog logger instance.

    Args:
        name: Logger name (typically __name__). If None, returns root logger.

    Returns:
        Configured structlog logger ready for use (BoundLoggerLazyProxy)
    """
    return structlog.get_logger(name)
