"""
Change notifier: listener registry and fan-out for repository changes.

Each registered listener gets its own adapter. The adapter is what actually
subscribes to the store's raw change stream; it drops before-update
notifications, builds the ChangeEvent and calls the listener with error
isolation. The registry outlives any single store so listeners survive a
close/open cycle.
"""

from __future__ import annotations

import threading
from typing import Any, Optional

from loguru import logger

from ..failures import FailureContext, FailureListener, notify_failure_listeners
from ..metrics.registry import LISTENER_ERRORS_TOTAL, REPOSITORY_EVENTS_TOTAL
from .events import ChangeEvent, RawChange, RepositoryListener
from .store import RepositoryStore


class _ListenerAdapter:
    """Bridges the raw change stream to one repository listener."""

    __slots__ = ("listener", "_notifier")

    def __init__(self, listener: RepositoryListener, notifier: "ChangeNotifier"):
        self.listener = listener
        self._notifier = notifier

    def __call__(self, change: RawChange) -> None:
        if change.before_update:
            return
        self._notifier._deliver(self.listener, change)

    def __repr__(self) -> str:
        return f"_ListenerAdapter({self.listener!r})"


class ChangeNotifier:
    """Registry of repository listeners with synchronous, isolated delivery.

    Listeners are called in registration order on the thread that made the
    change. One listener's exception is logged, counted and reported to the
    failure listeners; the remaining listeners and the mutator are unaffected.

    Thread-safe: registration may happen concurrently with delivery.

    Example:
        notifier = ChangeNotifier(source=repo)
        notifier.register(on_change)
        notifier.attach(store)
    """

    def __init__(self, source: Any = None) -> None:
        self._source = source
        self._adapters: dict[RepositoryListener, _ListenerAdapter] = {}
        self._failure_listeners: tuple[FailureListener, ...] = ()
        self._store: Optional[RepositoryStore] = None
        self._lock = threading.RLock()

    # --------------------------- registry

    def register(self, listener: RepositoryListener) -> bool:
        """Add a listener; returns False if it was already registered."""
        with self._lock:
            if listener in self._adapters:
                return False
            adapter = _ListenerAdapter(listener, self)
            self._adapters[listener] = adapter
            if self._store is not None:
                self._store.subscribe(adapter)
            logger.debug(f"Repository listener added (total: {len(self._adapters)})")
            return True

    def unregister(self, listener: RepositoryListener) -> bool:
        """Remove a listener; no-op (returns False) if it is not registered."""
        with self._lock:
            adapter = self._adapters.pop(listener, None)
            if adapter is None:
                return False
            if self._store is not None:
                self._store.unsubscribe(adapter)
            logger.debug(f"Repository listener removed (total: {len(self._adapters)})")
            return True

    def adapter_for(self, listener: RepositoryListener) -> Optional[_ListenerAdapter]:
        return self._adapters.get(listener)

    def is_registered(self, listener: RepositoryListener) -> bool:
        return listener in self._adapters

    @property
    def listener_count(self) -> int:
        return len(self._adapters)

    def add_failure_listener(self, listener: FailureListener) -> None:
        with self._lock:
            if listener not in self._failure_listeners:
                self._failure_listeners = self._failure_listeners + (listener,)

    def remove_failure_listener(self, listener: FailureListener) -> None:
        with self._lock:
            self._failure_listeners = tuple(
                f for f in self._failure_listeners if f is not listener
            )

    # --------------------------- store binding

    def attach(self, store: RepositoryStore) -> None:
        """Subscribe every registered adapter to ``store`` in registration order."""
        with self._lock:
            if self._store is store:
                return
            if self._store is not None:
                self.detach(self._store)
            for adapter in self._adapters.values():
                store.subscribe(adapter)
            self._store = store

    def detach(self, store: RepositoryStore) -> None:
        with self._lock:
            for adapter in self._adapters.values():
                store.unsubscribe(adapter)
            if self._store is store:
                self._store = None

    # --------------------------- delivery

    def _deliver(self, listener: RepositoryListener, change: RawChange) -> None:
        event = ChangeEvent(
            source=self._source if self._source is not None else self._store,
            kind=change.kind,
            key=change.key,
            value=change.value,
            cause=change.cause,
        )
        logger.debug(f"Repository change: {event}")
        REPOSITORY_EVENTS_TOTAL.labels(kind=event.kind.value).inc()
        try:
            listener(event)
        except Exception as exc:
            LISTENER_ERRORS_TOTAL.labels(component="repository").inc()
            logger.warning(f"Repository listener error (ignored): {type(exc).__name__}: {exc}")
            notify_failure_listeners(
                self._failure_listeners,
                FailureContext(source=event.source, payload=event),
                exc,
                component="repository",
            )
