"""
Fallback and timing decorators.

Both log through the decorated function's own module logger, so a failed
icon fetch shows up under ``apkstore.images`` rather than here.
"""

from __future__ import annotations

import functools
import logging
import time
from typing import Type, Callable, Any

from .exceptions import StoreError


def _describe(exc: BaseException) -> str:
    if isinstance(exc, StoreError):
        return f"{exc.code}: {exc.message}"
    return f"{exc.__class__.__name__}: {exc}"


def handle_errors(
    *exception_types: Type[Exception],
    default: Any = None,
    log_level: int = logging.WARNING,
):
    """
    Return ``default`` instead of raising one of ``exception_types``.

    For per-element work (one icon, one screenshot) where a failure must
    not affect anything else on screen. Tracebacks are only attached at
    ERROR level and above.

    Example:
        @handle_errors(ImageLoadError, default=None, log_level=logging.DEBUG)
        def try_fetch_image(url):
            ...
    """
    caught = exception_types or (Exception,)

    def decorator(func: Callable) -> Callable:
        log = logging.getLogger(func.__module__)

        @functools.wraps(func)
        def wrapper(*args, **kwargs):
            try:
                return func(*args, **kwargs)
            except caught as e:
                log.log(
                    log_level,
                    f"{func.__qualname__} fell back to {default!r} ({_describe(e)})",
                    exc_info=log_level >= logging.ERROR,
                )
                return default
        return wrapper
    return decorator


def timed(label: str):
    """
    Log how long each call took at DEBUG level.

    Example:
        @timed("snapshot mapping")
        def _map(self, docs):
            ...
    """
    def decorator(func: Callable) -> Callable:
        log = logging.getLogger(func.__module__)

        @functools.wraps(func)
        def wrapper(*args, **kwargs):
            start = time.perf_counter()
            try:
                return func(*args, **kwargs)
            finally:
                log.debug(f"{label} took {(time.perf_counter() - start) * 1000:.1f} ms")
        return wrapper
    return decorator
