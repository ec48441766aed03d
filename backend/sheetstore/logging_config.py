"""Logging setup for the service"""
import logging
import sys
from typing import Optional

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"

_configured = False


def setup_logging(level: str = "INFO") -> logging.Logger:
    """
    Configure the ``sheetstore`` logger once.

    Repeated calls only adjust the level, so importing the app twice does not
    duplicate handlers.

    Args:
        level: Level name, e.g. "INFO" or "DEBUG"

    Returns:
        The package logger
    """
    global _configured

    logger = logging.getLogger("sheetstore")
    logger.setLevel(getattr(logging, level.upper(), logging.INFO))
    if _configured:
        return logger

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    logger.addHandler(handler)
    logger.propagate = False

    _configured = True
    return logger


def reset_logging(logger: Optional[logging.Logger] = None) -> None:
    """Remove installed handlers. Mainly for tests."""
    global _configured
    logger = logger or logging.getLogger("sheetstore")
    for handler in logger.handlers[:]:
        logger.removeHandler(handler)
    logger.propagate = True
    _configured = False
