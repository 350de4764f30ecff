"""
APK Store

Live Firestore-backed catalog of Android apps with client-side search.
"""

from .app_catalog import AppCatalog, AppRecord, AppView, filter_records
from .catalog_sync import CatalogSync, SyncState
from .config import StoreConfig
from .view_model import CatalogViewModel, PageModel, ViewStatus, render_page

__all__ = [
    "AppCatalog",
    "AppRecord",
    "AppView",
    "filter_records",
    "CatalogSync",
    "SyncState",
    "StoreConfig",
    "CatalogViewModel",
    "PageModel",
    "ViewStatus",
    "render_page",
]
