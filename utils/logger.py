"""
utils/logger.py
---------------
Logging setup for the scheduler, the repositories and the reminder job.

Every module logs through `get_logger(__name__)`. Records go to stdout,
where the job runner collects them, at the level named by LOG_LEVEL.
Timestamps are written in UTC so lines from the reminder sweep line up
with stored `updated_at` values regardless of the host's zone.
"""

import logging
import sys
import time

from config import LOG_LEVEL

LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%SZ"
_initialized = False


def build_formatter() -> logging.Formatter:
    """Formatter used for all scheduler output (UTC timestamps)."""
    formatter = logging.Formatter(LOG_FORMAT, DATE_FORMAT)
    formatter.converter = time.gmtime
    return formatter


def _init_logging() -> None:
    global _initialized
    if _initialized:
        return
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(build_formatter())
    root = logging.getLogger()
    root.setLevel(getattr(logging, LOG_LEVEL, logging.INFO))
    root.addHandler(handler)
    _initialized = True


def get_logger(name: str) -> logging.Logger:
    """
    Get a named logger, configuring output on first use.

    Args:
        name: Usually ``__name__`` of the calling module.
    """
    _init_logging()
    return logging.getLogger(name)
