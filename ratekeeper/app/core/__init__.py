"""Core utilities for the ratekeeper application."""

from ratekeeper.app.core.config import Settings, settings
from ratekeeper.app.core.logging import get_logger, setup_logging

__all__ = [
    "Settings",
    "settings",
    "get_logger",
    "setup_logging",
]
