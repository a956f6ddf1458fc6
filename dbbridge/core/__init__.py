"""
Core Components

Configuration and logging setup.
"""

from dbbridge.core.config import settings, get_settings, Settings
from dbbridge.core.logging import configure_logging

__all__ = [
    "settings",
    "get_settings",
    "Settings",
    "configure_logging"
]
