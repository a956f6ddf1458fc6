"""
Logging setup

Library modules only call ``logging.getLogger(__name__)``; applications and
notebooks that want console output call ``configure_logging()`` once.
"""

import logging
from typing import Optional, Union

from dbbridge.core.config import settings

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def configure_logging(level: Optional[Union[str, int]] = None) -> logging.Logger:
    """
    Attach a console handler to the ``dbbridge`` logger.

    Args:
        level: Logging level name or number (default: settings.log_level)

    Returns:
        The package logger
    """
    level = level or settings.log_level
    if isinstance(level, str):
        name = level
        level = logging.getLevelName(name.upper())
        if not isinstance(level, int):
            raise ValueError(f"Unknown log level: {name}")

    logger = logging.getLogger("dbbridge")
    logger.setLevel(level)

    if not any(getattr(h, "_dbbridge", False) for h in logger.handlers):
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT))
        handler._dbbridge = True
        logger.addHandler(handler)

    return logger
