"""
App Catalog - catalog records and the search filter.

Maps Firestore documents into immutable records, normalizes them into
display models and filters them for the storefront.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime, timezone
from numbers import Real
from typing import Optional, List, Dict, Any, Iterable, Sequence, Tuple

from .formatting import format_bytes, format_number, format_release_date

logger = logging.getLogger(__name__)

# Display fallbacks
DEFAULT_NAME = "Untitled App"
DEFAULT_CATEGORY = "Utility"
DEFAULT_VERSION = "1.0"
DEFAULT_DESCRIPTION = "No description available for this application."
DEFAULT_DEVELOPER = "Unknown Developer"
DEFAULT_LICENSE = "Free"
PLACEHOLDER_ICON_URL = "https://uiapp.store/placeholder-icon.png"
BROKEN_ICON_URL = "https://placehold.co/150x150/1e293b/ffffff?text=App"
NEW_RELEASE_LABEL = "New Release"


def parse_timestamp(value: Any) -> Optional[datetime]:
    """
    Convert a wire creation timestamp into an aware datetime.

    Accepts Firestore datetimes, ``{"seconds": ..., "nanoseconds": ...}``
    mappings, protobuf-style objects with a ``seconds`` attribute and plain
    numbers of seconds. Anything else is treated as absent.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, datetime):
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value

    if isinstance(value, Mapping):
        seconds = value.get("seconds", value.get("_seconds"))
        nanos = value.get("nanoseconds", value.get("_nanoseconds", 0))
    elif isinstance(value, Real):
        seconds, nanos = value, 0
    else:
        seconds = getattr(value, "seconds", None)
        nanos = getattr(value, "nanos", 0)

    if not isinstance(seconds, Real) or isinstance(seconds, bool):
        return None
    if not isinstance(nanos, Real) or isinstance(nanos, bool):
        nanos = 0

    try:
        return datetime.fromtimestamp(seconds + nanos / 1e9, tz=timezone.utc)
    except (OverflowError, OSError, ValueError):
        logger.debug(f"Unusable timestamp value: {value!r}")
        return None


def _text(data: Mapping, key: str) -> Optional[str]:
    value = data.get(key)
    return value if isinstance(value, str) else None


def _number(data: Mapping, key: str):
    value = data.get(key)
    if isinstance(value, Real) and not isinstance(value, bool):
        return value
    return None


@dataclass(frozen=True)
class AppRecord:
    """One catalog entry as delivered by the store."""
    id: str
    name: Optional[str] = None
    category: Optional[str] = None
    version: Optional[str] = None
    size: Optional[float] = None
    downloads: Optional[float] = None
    description: Optional[str] = None
    icon_url: Optional[str] = None
    screenshot_urls: Tuple[str, ...] = field(default_factory=tuple)
    apk_url: Optional[str] = None
    developer_id: Optional[str] = None
    created_at: Optional[datetime] = None

    @classmethod
    def from_document(cls, doc_id: str, data: Optional[Mapping[str, Any]]) -> "AppRecord":
        """Create from a document id and its field mapping."""
        data = data or {}
        screenshots = data.get("screenshot_urls")
        if isinstance(screenshots, (list, tuple)):
            screenshots = tuple(url for url in screenshots if isinstance(url, str))
        else:
            screenshots = ()

        return cls(
            id=doc_id,
            name=_text(data, "name"),
            category=_text(data, "category"),
            version=_text(data, "version"),
            size=_number(data, "size"),
            downloads=_number(data, "downloads"),
            description=_text(data, "description"),
            icon_url=_text(data, "icon_url"),
            screenshot_urls=screenshots,
            apk_url=_text(data, "apk_url"),
            developer_id=_text(data, "developer_id"),
            created_at=parse_timestamp(data.get("created_at")),
        )

    @classmethod
    def from_snapshot(cls, doc) -> "AppRecord":
        """Create from a Firestore ``DocumentSnapshot``."""
        return cls.from_document(doc.id, doc.to_dict())

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "id": self.id,
            "name": self.name,
            "category": self.category,
            "version": self.version,
            "size": self.size,
            "downloads": self.downloads,
            "description": self.description,
            "icon_url": self.icon_url,
            "screenshot_urls": list(self.screenshot_urls),
            "apk_url": self.apk_url,
            "developer_id": self.developer_id,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }


@dataclass(frozen=True)
class AppView:
    """A record with every display fallback applied."""
    id: str
    name: str
    category: str
    version_label: str
    size_label: str
    downloads_label: str
    downloads_count: str
    description: str
    icon_url: str
    fallback_icon_url: str
    screenshot_urls: Tuple[str, ...]
    apk_url: Optional[str]
    developer: str
    released: str
    license: str

    @property
    def can_download(self) -> bool:
        return bool(self.apk_url)

    @classmethod
    def from_record(cls, record: AppRecord) -> "AppView":
        downloads = record.downloads
        if isinstance(downloads, Real) and downloads > 0:
            downloads_label = f"{format_number(downloads)} downloads"
        else:
            downloads_label = NEW_RELEASE_LABEL

        return cls(
            id=record.id,
            name=record.name or DEFAULT_NAME,
            category=record.category or DEFAULT_CATEGORY,
            version_label=f"v{record.version or DEFAULT_VERSION}",
            size_label=format_bytes(record.size),
            downloads_label=downloads_label,
            downloads_count=format_number(downloads),
            description=record.description or DEFAULT_DESCRIPTION,
            icon_url=record.icon_url or PLACEHOLDER_ICON_URL,
            fallback_icon_url=BROKEN_ICON_URL,
            screenshot_urls=tuple(url for url in record.screenshot_urls if url),
            apk_url=record.apk_url or None,
            developer=record.developer_id or DEFAULT_DEVELOPER,
            released=format_release_date(record.created_at),
            license=DEFAULT_LICENSE,
        )


def _contains(value: Optional[str], needle: str) -> bool:
    return isinstance(value, str) and needle in value.lower()


def matches(record: AppRecord, query: str) -> bool:
    """True if ``query`` is empty or found in the record's name or category."""
    if not query:
        return True
    needle = query.lower()
    return _contains(record.name, needle) or _contains(record.category, needle)


def filter_records(records: Iterable[AppRecord], query: str) -> List[AppRecord]:
    """
    Stable case-insensitive substring filter over name and category.

    An empty query keeps every record. Records without a name or category
    never match a non-empty query on that field.
    """
    return [record for record in records if matches(record, query)]


class AppCatalog:
    """
    One point-in-time catalog snapshot.

    Keeps records in delivery order and provides lookup and search.
    """

    def __init__(self, records: Sequence[AppRecord] = ()):
        self._records: Tuple[AppRecord, ...] = tuple(records)

    def __len__(self) -> int:
        return len(self._records)

    def get(self, app_id: str) -> Optional[AppRecord]:
        """Get app by ID."""
        for record in self._records:
            if record.id == app_id:
                return record
        return None

    def search(self, query: str = "") -> List[AppRecord]:
        """Search the catalog by name or category."""
        return filter_records(self._records, query)
