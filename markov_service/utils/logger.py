"""
Logging setup shared by the service entry point and background tasks.
"""

import logging
import sys
from typing import Optional

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def setup_logger(name: str, level: Optional[str] = None) -> logging.Logger:
    """
    Configure the root handler once and return a named logger.

    Args:
        name: Logger name (usually __name__)
        level: Log level name; defaults to settings.LOG_LEVEL
    """
    if level is None:
        from markov_service.config import settings

        level = settings.LOG_LEVEL

    root = logging.getLogger()
    if not root.handlers:
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        root.addHandler(handler)
    root.setLevel(level.upper())

    return logging.getLogger(name)
