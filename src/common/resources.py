"""
Resource Management Utilities

Provides thread-safe scoped resource acquisition and cleanup.
"""

from __future__ import annotations

import threading
from typing import TypeVar, Generic, Callable, Optional, List
import logging

logger = logging.getLogger(__name__)

T = TypeVar('T')


class ManagedResource(Generic[T]):
    """
    Thread-safe resource with acquire-on-activate / release-on-deactivate.

    ``release`` runs exactly once per successful ``acquire``, no matter how
    many times or from how many threads deactivation is requested.

    Example:
        watch = ManagedResource(
            acquire=lambda: query.on_snapshot(callback),
            release=lambda w: w.unsubscribe(),
        )

        watch.get()       # subscribe
        watch.release()   # unsubscribe; later calls return False
    """

    def __init__(
        self,
        acquire: Callable[[], T],
        release: Callable[[T], None],
        name: str = "resource",
    ):
        self._acquire = acquire
        self._release = release
        self._name = name
        self._resource: Optional[T] = None
        self._lock = threading.RLock()

    def get(self) -> T:
        """Get the resource, acquiring if needed."""
        with self._lock:
            if self._resource is None:
                self._resource = self._acquire()
                logger.debug(f"Acquired {self._name}")
            return self._resource

    def release(self) -> bool:
        """
        Release the resource.

        Returns:
            True if this call performed the release, False if there was
            nothing held.
        """
        with self._lock:
            resource, self._resource = self._resource, None
        if resource is None:
            return False
        self._release(resource)
        logger.debug(f"Released {self._name}")
        return True


class CleanupRegistry:
    """
    Registry for cleanup callbacks to ensure resources are released.

    Example:
        registry = CleanupRegistry()
        registry.register(sync.stop)

        # On shutdown
        registry.cleanup_all()
    """

    def __init__(self):
        self._callbacks: List[Callable[[], None]] = []
        self._lock = threading.Lock()

    def register(self, callback: Callable[[], None]):
        """Register a cleanup callback."""
        with self._lock:
            self._callbacks.append(callback)

    def cleanup_all(self):
        """Execute all cleanup callbacks (in reverse order)."""
        with self._lock:
            callbacks = self._callbacks.copy()
            self._callbacks.clear()

        for callback in reversed(callbacks):
            try:
                callback()
            except Exception as e:
                logger.warning(f"Cleanup callback failed: {e}")


# Global cleanup registry
_global_cleanup = CleanupRegistry()


def register_cleanup(callback: Callable[[], None]):
    """Register a global cleanup callback."""
    _global_cleanup.register(callback)


def cleanup_all():
    """Execute all global cleanup callbacks."""
    _global_cleanup.cleanup_all()
