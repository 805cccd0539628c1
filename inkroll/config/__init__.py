"""Config package exports."""

from .log import configure_logging
from .settings import (
    AllowedLogLevel,
    Settings,
    ensure_database_path,
    get_settings,
)

__all__ = [
    "Settings",
    "AllowedLogLevel",
    "configure_logging",
    "ensure_database_path",
    "get_settings",
]
