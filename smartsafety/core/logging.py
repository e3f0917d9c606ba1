"""
SmartSafety - Logging Configuration

Modules log through ``logging.getLogger(__name__)``; everything under the
``smartsafety`` package is routed to one stdout handler set up here.
"""

import logging
import sys
from typing import Optional

from smartsafety.core.config import settings

LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s:%(lineno)d | %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# Third-party loggers that are chatty at INFO
QUIET_LOGGERS = ("httpx", "httpcore", "sqlalchemy.engine", "uvicorn.access")


def _resolve_level(level: str) -> int:
    resolved = logging.getLevelName(level.upper())
    if not isinstance(resolved, int):
        raise ValueError(f"Unknown log level: {level}")
    return resolved


def setup_logging(level: Optional[str] = None) -> logging.Logger:
    """
    Configure the ``smartsafety`` logger.

    Safe to call more than once (the API lifespan and the CLI both call it);
    the handler is attached only the first time and the level is updated.

    Args:
        level: Log level name, ``settings.log_level`` by default

    Returns:
        The package logger
    """
    log_level = _resolve_level(level or settings.log_level)

    logger = logging.getLogger("smartsafety")
    logger.setLevel(log_level)
    logger.propagate = False

    if not any(getattr(h, "_smartsafety", False) for h in logger.handlers):
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT))
        handler._smartsafety = True
        logger.addHandler(handler)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    return logger
