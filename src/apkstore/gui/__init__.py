"""
APK Store GUI

PyQt6 storefront window and widgets.
"""

from .store_window_qt import main, StoreWindow, AppCard, AppDetailsDialog

__all__ = ["main", "StoreWindow", "AppCard", "AppDetailsDialog"]
