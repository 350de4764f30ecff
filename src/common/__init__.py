"""
APK Store Common Utilities

Shared error, logging and resource helpers.
"""

from .exceptions import (
    StoreError, SubscriptionError, ImageLoadError, ConfigError,
    InvalidConfigError, error_message,
)
from .decorators import handle_errors, timed
from .logging_config import setup_logging, get_logger, ContextLogger
from .resources import (
    ManagedResource, CleanupRegistry, register_cleanup, cleanup_all,
)

__all__ = [
    # Exceptions
    "StoreError", "SubscriptionError", "ImageLoadError", "ConfigError",
    "InvalidConfigError", "error_message",
    # Decorators
    "handle_errors", "timed",
    # Logging
    "setup_logging", "get_logger", "ContextLogger",
    # Resources
    "ManagedResource", "CleanupRegistry", "register_cleanup", "cleanup_all",
]
