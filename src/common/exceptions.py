"""
APK Store Exception Hierarchy

Provides clear error messages with structured information
for logging, user feedback, and programmatic error handling.
"""

from typing import Optional, Dict, Any


class StoreError(Exception):
    """
    Base exception for all APK Store errors.

    Attributes:
        message: Human-readable error message
        code: Machine-readable error code
        details: Additional context as key-value pairs
        cause: Original exception that caused this error
    """

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
        cause: Optional[Exception] = None,
    ):
        super().__init__(message)
        self.message = message
        self.code = code or self.__class__.__name__
        self.details = details or {}
        self.cause = cause

    def __str__(self):
        s = f"[{self.code}] {self.message}"
        if self.details:
            s += f" (details: {self.details})"
        if self.cause:
            s += f" caused by: {self.cause}"
        return s


# =============================================================================
# Catalog subscription errors
# =============================================================================

class SubscriptionError(StoreError):
    """The live catalog query could not be established or delivered bad data."""
    def __init__(self, collection: str, reason: str, cause: Optional[Exception] = None):
        super().__init__(
            reason,
            code="SUBSCRIPTION_FAILED",
            details={"collection": collection},
            cause=cause,
        )


def error_message(exc: BaseException) -> str:
    """
    Raw message text of an exception, as shown to the user.

    google.api_core errors and StoreError both carry a ``message``
    attribute; anything else falls back to ``str(exc)``.
    """
    message = getattr(exc, "message", None)
    if isinstance(message, str) and message:
        return message
    return str(exc) or exc.__class__.__name__


# =============================================================================
# Image errors
# =============================================================================

class ImageLoadError(StoreError):
    """An icon or screenshot could not be fetched or decoded."""
    def __init__(self, url: str, reason: str):
        super().__init__(
            f"Failed to load image: {reason}",
            code="IMAGE_LOAD_FAILED",
            details={"url": url, "reason": reason},
        )


# =============================================================================
# Configuration errors
# =============================================================================

class ConfigError(StoreError):
    """Base for configuration errors."""
    pass


class InvalidConfigError(ConfigError):
    """Invalid configuration."""
    def __init__(self, field: str, value: Any, reason: str):
        super().__init__(
            f"Invalid configuration: {field}={value}: {reason}",
            code="INVALID_CONFIG",
            details={"field": field, "value": str(value), "reason": reason},
        )

