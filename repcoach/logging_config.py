"""Logging setup for command-line use.

Library modules only create named loggers; handlers are attached here, once,
by the entry point.
"""

from __future__ import annotations

import logging
import os
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional, Union

LOG_FORMAT = "%(asctime)s - %(levelname)s - %(name)s - %(message)s"
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")
DEFAULT_LEVEL = os.getenv("REPCOACH_LOG_LEVEL", "WARNING")


def configure_logging(
    level: Optional[str] = None, log_file: Optional[Union[str, Path]] = None
) -> None:
    """Attach stream (and optional rotating file) handlers to the root logger.

    Does nothing if the root logger already has handlers.

    Raises:
        ValueError: if ``level`` (or ``$REPCOACH_LOG_LEVEL``) is not one of
            :data:`LOG_LEVELS`.
    """

    name = (level or DEFAULT_LEVEL).upper()
    if name not in LOG_LEVELS:
        raise ValueError(f"unknown log level {name!r}; expected one of {', '.join(LOG_LEVELS)}")

    root = logging.getLogger()
    if root.handlers:
        return

    root.setLevel(name)
    formatter = logging.Formatter(LOG_FORMAT)

    stream_handler = logging.StreamHandler()
    stream_handler.setFormatter(formatter)
    root.addHandler(stream_handler)

    if log_file is not None:
        file_handler = RotatingFileHandler(log_file, maxBytes=5_000_000, backupCount=3)
        file_handler.setFormatter(formatter)
        root.addHandler(file_handler)
