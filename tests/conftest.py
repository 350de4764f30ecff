"""
Pytest configuration and shared fixtures for APK Store tests.

Provides fake Firestore query/watch objects and sample catalog records.
"""

import os
import threading
import pytest
from pathlib import Path
from typing import Any, Dict, List, Optional
import sys

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

# Qt widgets must not need a display in CI
os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")


# ============ Firestore Fakes ============

class FakeDocument:
    """Stand-in for a Firestore DocumentSnapshot."""

    def __init__(self, doc_id: str, data: Optional[Dict[str, Any]] = None):
        self.id = doc_id
        self._data = data

    def to_dict(self):
        return None if self._data is None else dict(self._data)


class FakeWatch:
    """
    Stand-in for the Watch returned by on_snapshot.

    A ``live`` watch exposes ``is_active`` and can be closed by the server
    the way Firestore does it: on a helper thread that re-raises the RPC
    error, without calling the snapshot callback.
    """

    def __init__(self, live: bool = False):
        self.unsubscribe_calls = 0
        if live:
            self.is_active = True

    def unsubscribe(self):
        self.unsubscribe_calls += 1

    def close_from_server(self, reason: Optional[Exception] = None):
        from apkstore.catalog_sync import RPC_ERROR_THREAD_NAME

        def close():
            self.is_active = False
            if reason is not None:
                raise reason

        thread = threading.Thread(target=close, name=RPC_ERROR_THREAD_NAME, daemon=True)
        thread.start()
        thread.join()


class FakeQuery:
    """
    Collection reference whose snapshots are pushed by the test.

    ``initial`` is delivered synchronously on subscribe, like the first
    snapshot of a real listener. ``error`` makes on_snapshot raise, as
    client setup failures do. ``live`` hands out supervisable watches.
    """

    def __init__(self, initial: Optional[List[FakeDocument]] = None,
                 error: Optional[Exception] = None, live: bool = False):
        self.initial = initial
        self.error = error
        self.live = live
        self.callbacks = []
        self.watches: List[FakeWatch] = []

    def on_snapshot(self, callback):
        if self.error is not None:
            raise self.error
        self.callbacks.append(callback)
        watch = FakeWatch(live=self.live)
        self.watches.append(watch)
        if self.initial is not None:
            callback(list(self.initial), [], None)
        return watch

    def push(self, docs: List[FakeDocument], callback_index: int = -1):
        self.callbacks[callback_index](list(docs), [], None)


def make_docs(*records: Dict[str, Any]) -> List[FakeDocument]:
    """Build documents from dicts that carry their own ``id``."""
    docs = []
    for record in records:
        data = dict(record)
        doc_id = data.pop("id")
        docs.append(FakeDocument(doc_id, data))
    return docs


@pytest.fixture
def fake_query():
    return FakeQuery()


@pytest.fixture
def catalog_docs():
    return make_docs(
        {
            "id": "1",
            "name": "Calculator",
            "category": "Tools",
            "version": "2.1",
            "size": 5 * 1024 * 1024,
            "downloads": 12000,
            "description": "Simple calculator",
            "icon_url": "https://cdn.example.com/calc.png",
            "screenshot_urls": ["https://cdn.example.com/calc-1.png"],
            "apk_url": "https://cdn.example.com/calc.apk",
            "developer_id": "acme",
            "created_at": {"seconds": 1700000000, "nanoseconds": 0},
        },
        {
            "id": "2",
            "name": "Music Player",
            "category": "Media",
            "downloads": 0,
        },
        {
            "id": "3",
            "name": "Notes",
            "category": "Productivity",
        },
    )


# ============ Record Fixtures ============

@pytest.fixture
def sample_records():
    from apkstore.app_catalog import AppRecord

    return [
        AppRecord(id="1", name="Calculator", category="Tools"),
        AppRecord(id="2", name="Music Player", category="Media"),
        AppRecord(id="3", name="Toolbox", category="Utilities"),
        AppRecord(id="4"),
        AppRecord(id="5", name=None, category="Music"),
    ]


# ============ Marker Configuration ============

def pytest_configure(config):
    """Configure custom markers."""
    config.addinivalue_line(
        "markers", "unit: fast unit tests with no external deps"
    )
    config.addinivalue_line(
        "markers", "gui: tests that build Qt widgets"
    )


def pytest_collection_modifyitems(config, items):
    """Skip GUI tests when PyQt6 cannot be imported."""
    skip_gui = pytest.mark.skip(reason="PyQt6 not available")
    try:
        import PyQt6.QtWidgets  # noqa: F401
        gui_available = True
    except ImportError:
        gui_available = False

    for item in items:
        if "gui" in item.keywords and not gui_available:
            item.add_marker(skip_gui)
