"""
Repository store: the current key/value snapshot and its raw change stream.
"""

from __future__ import annotations

import threading
from typing import Any, Callable, Iterator, Optional

from loguru import logger

from ..errors import ReloadError, ResourceError
from ..metrics.registry import REPOSITORY_RELOADS_TOTAL
from .events import ChangeKind, RawChange
from .loader import Resource, ResourceLoader

RawObserver = Callable[[RawChange], None]


class RepositoryStore:
    """Holds the snapshot loaded from one backing resource.

    Readers take a reference to the current dict, so a reload (which builds
    the new dict off-lock and swaps the reference) is never observed half
    applied. Mutations update the live dict under the store lock.

    Observers receive every RawChange, including before-update
    notifications, in subscription order on the mutating thread. Changes are
    emitted under the store lock, so observers see them in commit order.
    """

    def __init__(self, locator: str, loader: Optional[ResourceLoader] = None):
        self._locator = locator
        self._loader = loader or ResourceLoader()
        self._resource: Optional[Resource] = None
        self._snapshot: Optional[dict[str, Any]] = None
        self._lock = threading.RLock()
        self._observers: tuple[RawObserver, ...] = ()

    @property
    def locator(self) -> str:
        return self._locator

    @property
    def resource(self) -> Optional[Resource]:
        return self._resource

    @property
    def is_loaded(self) -> bool:
        return self._snapshot is not None

    # --------------------------- observers

    def subscribe(self, observer: RawObserver) -> None:
        with self._lock:
            if observer not in self._observers:
                self._observers = self._observers + (observer,)

    def unsubscribe(self, observer: RawObserver) -> None:
        with self._lock:
            self._observers = tuple(o for o in self._observers if o is not observer)

    @property
    def observer_count(self) -> int:
        return len(self._observers)

    # --------------------------- loading

    def load(self) -> None:
        """Initial load; failures raise ResourceError and emit nothing."""
        resource, entries = self._loader.load(self._locator)
        with self._lock:
            self._resource = resource
            self._snapshot = entries
            REPOSITORY_RELOADS_TOTAL.labels(outcome="success").inc()
            logger.debug(f"Token repository loaded: {self._locator} ({len(entries)} keys)")
            self._emit(RawChange(ChangeKind.RELOAD))

    def reload(self) -> bool:
        """Replace the snapshot from the backing resource.

        Returns:
            True on success. On failure an ERROR change is emitted, the
            previous snapshot is kept and False is returned.
        """
        try:
            resource = self._resource or self._loader.resolve(self._locator)
            entries = self._loader.read(resource)
        except Exception as e:
            self.report_error(e)
            return False

        with self._lock:
            self._resource = resource
            self._snapshot = entries
            REPOSITORY_RELOADS_TOTAL.labels(outcome="success").inc()
            logger.debug(f"Token repository reloaded: {self._locator} ({len(entries)} keys)")
            self._emit(RawChange(ChangeKind.RELOAD))
        return True

    def report_error(self, cause: BaseException) -> None:
        """Emit an ERROR change for a failed reload or watch check."""
        REPOSITORY_RELOADS_TOTAL.labels(outcome="failure").inc()
        error = ReloadError(f"Reload of {self._locator} failed: {cause}")
        error.__cause__ = cause
        logger.error(f"Token repository reload failed: {self._locator}: {cause}")
        with self._lock:
            self._emit(RawChange(ChangeKind.ERROR, cause=error))

    def modification_signal(self) -> Any:
        resource = self._resource
        if resource is None:
            raise ResourceError(f"Resource not resolved: {self._locator}")
        return self._loader.last_modified(resource)

    # --------------------------- reads

    def get(self, key: str) -> Any:
        snapshot = self._snapshot
        return snapshot.get(key) if snapshot is not None else None

    def keys(self) -> Iterator[str]:
        snapshot = self._snapshot
        if snapshot is None:
            return iter(())
        with self._lock:
            keys = tuple(snapshot)
        return iter(keys)

    def __len__(self) -> int:
        snapshot = self._snapshot
        return len(snapshot) if snapshot is not None else 0

    # --------------------------- mutations

    def set(self, key: str, value: Any) -> None:
        with self._lock:
            snapshot = self._require_snapshot()
            kind = ChangeKind.SET if key in snapshot else ChangeKind.ADD
            self._emit(RawChange(kind, key, value, before_update=True))
            snapshot[key] = value
            self._emit(RawChange(kind, key, value))

    def remove(self, key: str) -> None:
        with self._lock:
            snapshot = self._require_snapshot()
            previous = snapshot.get(key)
            self._emit(RawChange(ChangeKind.CLEAR_KEY, key, previous, before_update=True))
            snapshot.pop(key, None)
            self._emit(RawChange(ChangeKind.CLEAR_KEY, key, previous))

    def clear_all(self) -> None:
        with self._lock:
            snapshot = self._require_snapshot()
            self._emit(RawChange(ChangeKind.CLEAR_ALL, before_update=True))
            snapshot.clear()
            self._emit(RawChange(ChangeKind.CLEAR_ALL))

    # --------------------------- internals

    def _require_snapshot(self) -> dict[str, Any]:
        if self._snapshot is None:
            raise ResourceError(f"Token repository not loaded: {self._locator}")
        return self._snapshot

    def _emit(self, change: RawChange) -> None:
        for observer in self._observers:
            observer(change)

    def __repr__(self) -> str:
        return f"RepositoryStore(locator={self._locator!r}, keys={len(self)})"
