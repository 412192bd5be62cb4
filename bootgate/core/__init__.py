"""Core infrastructure: settings, logging, exceptions."""

from .config import Settings, get_settings, settings
from .exceptions import (
    BootGateError,
    DependencyStartError,
    HaltError,
    MigrationError,
    NotLoadedError,
)
from .logging import get_logger, setup_logging


__all__ = [
    "BootGateError",
    "DependencyStartError",
    "HaltError",
    "MigrationError",
    "NotLoadedError",
    "Settings",
    "get_logger",
    "get_settings",
    "settings",
    "setup_logging",
]
