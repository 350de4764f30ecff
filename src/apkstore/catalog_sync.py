"""
Catalog Sync - live mirror of the Firestore app collection.

Holds a standing ``on_snapshot`` subscription on the whole collection and
republishes the full, freshly mapped record list on every change.
"""

from __future__ import annotations

import functools
import threading
from dataclasses import dataclass, replace
from typing import Callable, List, Optional, Tuple

from google.cloud import firestore

from common.decorators import timed
from common.exceptions import SubscriptionError, error_message
from common.logging_config import get_logger
from common.resources import ManagedResource

from .app_catalog import AppRecord
from .config import StoreConfig

logger = get_logger(__name__)

Listener = Callable[["SyncState"], None]

# Name of the thread google-cloud-firestore uses to close a listen stream
# that ended for good; the RPC error is re-raised on that thread.
RPC_ERROR_THREAD_NAME = "Thread-OnRpcTerminated"
STREAM_CLOSED_MESSAGE = "Listen stream closed"
DEFAULT_POLL_INTERVAL = 0.5
CLOSE_REASON_WAIT = 1.0


@dataclass(frozen=True)
class SyncState:
    """What the view layer observes: records plus loading/error status."""
    records: Tuple[AppRecord, ...] = ()
    loading: bool = True
    error: Optional[str] = None


def create_client(config: StoreConfig) -> firestore.Client:
    """Build a Firestore client for the configured project (or emulator)."""
    config.apply_emulator()
    return firestore.Client(project=config.project_id)


class CollectionQuery:
    """
    ``client.collection(name)``, with the client built on first subscribe.

    Missing credentials or an unknown project then fail inside
    ``CatalogSync.start`` and show up as a sync error.
    """

    def __init__(self, config: StoreConfig, client=None,
                 client_factory: Optional[Callable[[StoreConfig], firestore.Client]] = None):
        self._config = config
        self._client = client
        self._client_factory = client_factory or create_client

    def on_snapshot(self, callback):
        if self._client is None:
            self._client = self._client_factory(self._config)
        return self._client.collection(self._config.collection).on_snapshot(callback)


class StreamErrors:
    """
    Captures the error that ends a Firestore listen stream.

    ``Watch`` never reports a terminal RPC failure to the snapshot callback;
    it closes itself on a helper thread that re-raises the error, so
    ``threading.excepthook`` is the only place the reason surfaces.
    """

    def __init__(self):
        self._arrived = threading.Condition()
        self._latest: Optional[BaseException] = None
        self._previous_hook = None

    def install(self):
        """Chain into ``threading.excepthook`` unless already installed."""
        with self._arrived:
            if threading.excepthook == self._hook:
                return
            self._previous_hook = threading.excepthook
            threading.excepthook = self._hook

    def _hook(self, args):
        thread = args.thread
        if thread is not None and thread.name == RPC_ERROR_THREAD_NAME and args.exc_value is not None:
            with self._arrived:
                self._latest = args.exc_value
                self._arrived.notify_all()
            return
        (self._previous_hook or threading.__excepthook__)(args)

    def take(self, timeout: float) -> Optional[BaseException]:
        """Wait up to ``timeout`` for a stream error and consume it."""
        with self._arrived:
            self._arrived.wait_for(lambda: self._latest is not None, timeout)
            error, self._latest = self._latest, None
        return error


stream_errors = StreamErrors()


def _unsubscribe(watch) -> None:
    watch.unsubscribe()


class CatalogSync:
    """
    Live catalog subscription.

    ``query`` is anything with Firestore's ``on_snapshot(callback)``
    signature, normally a ``CollectionQuery``. Snapshot callbacks arrive on
    the client's watch thread; state changes are serialized under a lock
    and listeners are called after it is released.

    When the returned watch exposes ``is_active`` (Firestore's ``Watch``
    does), a supervisor thread polls it and reports a stream that closed
    without recovering as a failure.

    Example:
        sync = CatalogSync.from_config(StoreConfig.load())
        sync.subscribe(lambda state: print(len(state.records)))
        with sync:
            ...
    """

    def __init__(self, query, collection: str = "apps",
                 poll_interval: float = DEFAULT_POLL_INTERVAL):
        self._query = query
        self._collection = collection
        self._poll_interval = poll_interval
        self._log = logger.bind(collection=collection)
        self._lock = threading.RLock()
        self._changed = threading.Condition(self._lock)
        self._state = SyncState()
        self._listeners: List[Listener] = []
        self._generation = 0
        self._watch: Optional[ManagedResource] = None
        self._stopped: Optional[threading.Event] = None

    @classmethod
    def from_config(cls, config: StoreConfig, client=None,
                    client_factory: Optional[Callable[[StoreConfig], firestore.Client]] = None,
                    ) -> "CatalogSync":
        """Subscription to ``config.collection``; the client is built on ``start()``."""
        return cls(CollectionQuery(config, client, client_factory), config.collection)

    # -- observable outputs -------------------------------------------------

    @property
    def collection(self) -> str:
        return self._collection

    @property
    def records(self) -> Tuple[AppRecord, ...]:
        return self.state().records

    @property
    def loading(self) -> bool:
        return self.state().loading

    @property
    def error(self) -> Optional[str]:
        return self.state().error

    @property
    def active(self) -> bool:
        with self._lock:
            return self._watch is not None

    def state(self) -> SyncState:
        with self._lock:
            return self._state

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """
        Register a listener for state changes.

        Returns:
            A callable that removes the listener again.
        """
        with self._lock:
            self._listeners.append(listener)

        def unsubscribe():
            with self._lock:
                if listener in self._listeners:
                    self._listeners.remove(listener)

        return unsubscribe

    def wait_until_ready(self, timeout: Optional[float] = None) -> bool:
        """Block until the first snapshot or error arrives."""
        with self._changed:
            return self._changed.wait_for(lambda: not self._state.loading, timeout)

    # -- lifecycle ----------------------------------------------------------

    def start(self) -> None:
        """Open the subscription. A second call while active does nothing."""
        with self._lock:
            if self._watch is not None:
                return
            self._generation += 1
            generation = self._generation
            self._state = replace(self._state, loading=True, error=None)
            stopped = threading.Event()
            self._stopped = stopped
            watch = ManagedResource(
                acquire=lambda: self._query.on_snapshot(
                    functools.partial(self._on_snapshot, generation)
                ),
                release=_unsubscribe,
                name=f"'{self._collection}' subscription",
            )
            self._watch = watch

        log = self._log.bind(generation=generation)
        log.info(f"Subscribing to collection '{self._collection}'")
        stream_errors.install()
        try:
            handle = watch.get()
        except Exception as e:
            with self._lock:
                if self._watch is watch:
                    self._watch = None
            self._fail(generation, e)
            return

        with self._lock:
            superseded = generation != self._generation
        if superseded:
            # stop() ran while the subscription was being opened
            self._release(watch)
            return

        if getattr(handle, "is_active", None) is not None:
            threading.Thread(
                target=self._supervise,
                args=(generation, watch, handle, stopped),
                name=f"catalog-sync-{self._collection}",
                daemon=True,
            ).start()

    def stop(self) -> bool:
        """
        Tear down the subscription.

        Safe to call any number of times from any thread; the underlying
        ``unsubscribe`` runs once per ``start``.

        Returns:
            True if a subscription was torn down by this call.
        """
        with self._lock:
            self._generation += 1
            watch, self._watch = self._watch, None
            stopped, self._stopped = self._stopped, None
        if stopped is not None:
            stopped.set()
        if watch is None:
            return False
        released = self._release(watch)
        if released:
            self._log.info(f"Unsubscribed from collection '{self._collection}'")
        return released

    def fail(self, exc: BaseException) -> None:
        """Report a failure of the current subscription."""
        with self._lock:
            generation = self._generation
        self._fail(generation, exc)

    def __enter__(self) -> "CatalogSync":
        self.start()
        return self

    def __exit__(self, *args):
        self.stop()

    # -- callbacks ----------------------------------------------------------

    def _on_snapshot(self, generation: int, docs, changes=None, read_time=None) -> None:
        with self._lock:
            if generation != self._generation:
                self._log.debug("Dropping snapshot from a closed subscription")
                return
            try:
                records = self._map(docs)
            except Exception as e:
                failure = e
            else:
                failure = None
                self._state = SyncState(records=records, loading=False, error=None)
                state = self._state
                self._changed.notify_all()

        if failure is not None:
            self._fail(generation, failure)
            return

        self._log.debug(f"Snapshot with {len(records)} apps (read_time={read_time})")
        self._notify(state)

    @timed("snapshot mapping")
    def _map(self, docs) -> Tuple[AppRecord, ...]:
        return tuple(AppRecord.from_snapshot(doc) for doc in docs)

    def _supervise(self, generation: int, watch: ManagedResource, handle,
                   stopped: threading.Event) -> None:
        while handle.is_active:
            if stopped.wait(self._poll_interval):
                return

        reason = stream_errors.take(CLOSE_REASON_WAIT)
        with self._lock:
            if generation != self._generation:
                return
        self._fail(generation, reason or SubscriptionError(self._collection, STREAM_CLOSED_MESSAGE))

        with self._lock:
            if self._watch is watch:
                self._watch = None
        self._release(watch)

    def _fail(self, generation: int, exc: BaseException) -> None:
        if isinstance(exc, SubscriptionError):
            error = exc
        else:
            error = SubscriptionError(self._collection, error_message(exc), cause=exc)

        with self._lock:
            if generation != self._generation:
                self._log.debug(f"Ignoring failure from a closed subscription: {exc}")
                return
            self._state = replace(self._state, loading=False, error=error.message)
            state = self._state
            self._changed.notify_all()

        self._log.error(f"Error fetching apps: {error.message}")
        self._notify(state)

    def _notify(self, state: SyncState) -> None:
        with self._lock:
            listeners = list(self._listeners)
        for listener in listeners:
            try:
                listener(state)
            except Exception as e:
                self._log.warning(f"Catalog listener failed: {e}", exc_info=True)

    def _release(self, watch: ManagedResource) -> bool:
        try:
            return watch.release()
        except Exception as e:
            self._log.warning(f"Error closing subscription: {e}", exc_info=True)
            return True
