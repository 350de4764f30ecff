"""
Catalog view model.

Owns the search text and the open record, and turns a sync state into a
``PageModel`` that the widgets draw without further decisions.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Sequence, Tuple, List, Callable

from .app_catalog import AppRecord, AppView, filter_records
from .catalog_sync import SyncState

logger = logging.getLogger(__name__)

LOADING_MESSAGE = "Loading apps..."
ERROR_TITLE = "Error loading apps:"
EMPTY_TITLE = "No apps found"
EMPTY_HINT = "Try adjusting your search query."


class ViewStatus(Enum):
    """Which of the mutually exclusive page states is shown."""
    LOADING = "loading"
    ERROR = "error"
    EMPTY = "empty"
    POPULATED = "populated"


@dataclass(frozen=True)
class PageModel:
    """Everything the storefront window needs to draw one frame."""
    status: ViewStatus
    show_spinner: bool
    error: Optional[str]
    show_empty_state: bool
    cards: Tuple[AppView, ...]
    count_label: str
    detail: Optional[AppView]

    @property
    def show_grid(self) -> bool:
        return not self.show_spinner


def render_page(
    filtered: Sequence[AppRecord],
    loading: bool,
    error: Optional[str],
    selected: Optional[AppRecord],
) -> PageModel:
    """
    Pure rendering decision for one page.

    Loading hides the grid. An error adds a banner but keeps the grid.
    The empty-state message only appears after loading, without an error.
    """
    if loading:
        status = ViewStatus.LOADING
    elif error:
        status = ViewStatus.ERROR
    elif not filtered:
        status = ViewStatus.EMPTY
    else:
        status = ViewStatus.POPULATED

    cards: Tuple[AppView, ...] = ()
    if not loading:
        cards = tuple(AppView.from_record(record) for record in filtered)

    return PageModel(
        status=status,
        show_spinner=loading,
        error=error or None,
        show_empty_state=status is ViewStatus.EMPTY,
        cards=cards,
        count_label=f"{len(filtered)} Apps Available",
        detail=AppView.from_record(selected) if selected is not None else None,
    )


class CatalogViewModel:
    """
    Search and selection state over the synced catalog.

    The selected record is captured by value when it is opened; snapshots
    that later drop or change it leave the open detail view untouched until
    ``dismiss()``.
    """

    def __init__(self, state: Optional[SyncState] = None):
        self._state = state or SyncState()
        self._query = ""
        self._selected: Optional[AppRecord] = None
        self._listeners: List[Callable[[PageModel], None]] = []

    @property
    def query(self) -> str:
        return self._query

    @property
    def selected(self) -> Optional[AppRecord]:
        return self._selected

    @property
    def records(self) -> Tuple[AppRecord, ...]:
        return self._state.records

    def filtered(self) -> List[AppRecord]:
        return filter_records(self._state.records, self._query)

    def page(self) -> PageModel:
        return render_page(
            self.filtered(),
            self._state.loading,
            self._state.error,
            self._selected,
        )

    def on_change(self, listener: Callable[[PageModel], None]):
        """Call ``listener`` with a fresh page after every state change."""
        self._listeners.append(listener)

    def update(self, state: SyncState):
        """Take a new sync state (full snapshot replace)."""
        self._state = state
        self._emit()

    def set_query(self, query: str):
        self._query = query or ""
        self._emit()

    def select(self, record: AppRecord):
        """Open ``record`` in the detail view, replacing any open record."""
        self._selected = record
        logger.debug(f"Selected app {record.id}")
        self._emit()

    def dismiss(self):
        """Close the detail view."""
        if self._selected is None:
            return
        self._selected = None
        self._emit()

    def _emit(self):
        if not self._listeners:
            return
        page = self.page()
        for listener in self._listeners:
            listener(page)
