"""
Centralized logging configuration.

Usage:
    from kdp_press.logging_config import get_logger
    logger = get_logger(__name__)
"""

import logging
import os

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
ROOT_LOGGER = "kdp_press"


def setup_logger(name: str = None) -> logging.Logger:
    """
    Get or create a configured logger.

    Handlers are attached once to the package root logger; child loggers
    propagate to it.

    Args:
        name: Logger name. If None, uses 'kdp_press'.
    """
    root = logging.getLogger(ROOT_LOGGER)
    if not root.handlers:
        level = os.getenv("KDP_PRESS_LOG_LEVEL", "INFO").upper()
        root.setLevel(getattr(logging, level, logging.INFO))
        console = logging.StreamHandler()
        console.setFormatter(logging.Formatter(LOG_FORMAT))
        root.addHandler(console)

    if not name or name == ROOT_LOGGER:
        return root
    if not name.startswith(ROOT_LOGGER + "."):
        name = f"{ROOT_LOGGER}.{name}"
    return logging.getLogger(name)


def get_logger(name: str = None) -> logging.Logger:
    """Alias for setup_logger for convenience."""
    return setup_logger(name)
