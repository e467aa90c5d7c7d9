"""Logging setup utilities for serverwitch.

The terminal belongs to the live view while the agent runs, so logs go
to a file unless console output is explicitly requested.
"""

from __future__ import annotations

import logging
import sys

from serverwitch.config.settings import LoggingConfig


def setup_logging(config: LoggingConfig | None = None) -> None:
    """Configure logging for the serverwitch application.

    Sets up the 'serverwitch' logger with the configured level and
    format, a file handler when ``config.file`` is set and a stderr
    handler when ``config.console`` is true.

    Args:
        config: Logging configuration. If None, uses defaults
                (INFO level, serverwitch.log).
    """
    if config is None:
        config = LoggingConfig()

    root_logger = logging.getLogger("serverwitch")
    root_logger.setLevel(getattr(logging, config.level.upper(), logging.INFO))
    root_logger.propagate = False

    formatter = logging.Formatter(config.format)

    if config.console:
        console_handler = logging.StreamHandler(sys.stderr)
        console_handler.setFormatter(formatter)
        root_logger.addHandler(console_handler)

    if config.file:
        file_handler = logging.FileHandler(config.file)
        file_handler.setFormatter(formatter)
        root_logger.addHandler(file_handler)

    if not root_logger.handlers:
        root_logger.addHandler(logging.NullHandler())

    root_logger.info("Logging initialized at %s level", config.level)
