"""Core application configuration and utilities.

This package contains core functionality including:
- Configuration management (config.py)
- Logging setup (logging.py)
- Common exceptions (exceptions.py)
"""

from crawlflow.core.config import settings
from crawlflow.core.exceptions import AppError, StorageError

__all__ = [
    "AppError",
    "StorageError",
    "settings",
]
