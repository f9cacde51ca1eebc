"""Logging configuration for the Ordering domain."""

import logging
import os

import structlog

from ordering.domain import ordering

logger = structlog.get_logger(__name__)

# Suppress noisy library loggers
logging.getLogger("protean").setLevel(logging.WARNING)


def configure_logging() -> None:
    """Set up structured logging from ``domain.toml``.

    ``LOG_DIR`` enables rotating ``storefront.log`` and ``storefront_error.log``
    files next to the console output.
    """
    ordering.configure_logging(log_dir=os.getenv("LOG_DIR") or None)
