"""Structured logging configuration.

This module initializes structlog once with JSON lines on stderr, so
command output on stdout stays machine-readable.
"""

from __future__ import annotations

import logging
import os
import sys
from typing import Any

import structlog

LOG_LEVEL_ENV = "TENANTDB_LOG_LEVEL"


def get_logger(name: str) -> Any:
    """Return a module logger instance.

    Args:
        name: Logger name, usually __name__.

    Returns:
        A structlog logger filtered at the TENANTDB_LOG_LEVEL level.
    """
    if not structlog.is_configured():
        structlog.configure(
            processors=[
                structlog.processors.TimeStamper(fmt="iso"),
                structlog.processors.add_log_level,
                structlog.processors.JSONRenderer(),
            ],
            wrapper_class=structlog.make_filtering_bound_logger(_log_level()),
            logger_factory=_stderr_logger,
            cache_logger_on_first_use=False,
        )
    return structlog.get_logger(name)


def _stderr_logger(*_: Any) -> structlog.PrintLogger:
    # Resolved per call so redirected stderr streams are honored.
    return structlog.PrintLogger(sys.stderr)


def _log_level() -> int:
    """Return the configured level, defaulting to INFO for unknown names."""
    level = getattr(logging, os.getenv(LOG_LEVEL_ENV, "INFO").strip().upper(), None)
    return level if isinstance(level, int) else logging.INFO
