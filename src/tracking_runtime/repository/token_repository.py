"""
Dynamic token repository: the public read/write/subscribe surface.

Composes a RepositoryStore (snapshot), a ReloadWatcher (hot reload) and a
ChangeNotifier (listener fan-out).

Usage:
    repo = DynamicTokenRepository("tokens.properties", refresh_ms=5000)
    repo.add_listener(lambda ev: print(ev.kind, ev.key))
    repo.open()
    threshold = int(repo.get("sampling.threshold") or 0)
    repo.close()
"""

from __future__ import annotations

import threading
from typing import Any, Iterator, Mapping, Optional

from loguru import logger
from pydantic import ValidationError

from ..errors import ConfigurationError, ResourceError
from ..failures import FailureListener
from .events import RepositoryListener
from .loader import ResourceLoader
from .notifier import ChangeNotifier
from .settings import DEFAULT_REFRESH_MS, RepositoryOptions, RepositorySettings
from .store import RepositoryStore
from .watcher import ReloadWatcher


class DynamicTokenRepository:
    """Hot-reloadable ``key=value`` token repository.

    Args:
        url: Backing resource locator (URL, sys.path resource or file path).
            None leaves the repository undefined: open() and listener
            registration are no-ops.
        refresh_ms: Reload polling interval; 0 disables watching
        loader: Resource loader (mainly for tests)
    """

    def __init__(
        self,
        url: Optional[str] = None,
        refresh_ms: int = DEFAULT_REFRESH_MS,
        *,
        loader: Optional[ResourceLoader] = None,
    ):
        if refresh_ms < 0:
            raise ConfigurationError("refresh_ms must be >= 0")
        self._url = url
        self._refresh_ms = refresh_ms
        self._loader = loader or ResourceLoader()
        self._settings: Optional[Mapping[str, Any]] = None
        self._notifier = ChangeNotifier(source=self)
        self._store: Optional[RepositoryStore] = None
        self._watcher: Optional[ReloadWatcher] = None
        self._lock = threading.RLock()

    @classmethod
    def from_settings(cls, settings: Optional[RepositorySettings] = None) -> "DynamicTokenRepository":
        s = settings or RepositorySettings()
        return cls(s.url, s.refresh_ms)

    # --------------------------- configuration

    @property
    def name(self) -> Optional[str]:
        return self._url

    @property
    def refresh_ms(self) -> int:
        return self._refresh_ms

    def get_configuration(self) -> Optional[Mapping[str, Any]]:
        return self._settings

    def set_configuration(self, props: Mapping[str, Any]) -> None:
        """Apply ``Url`` / ``RefreshTime`` options; unspecified ones keep their value.

        Raises:
            ConfigurationError: malformed option values
        """
        merged = {"Url": self._url, "RefreshTime": self._refresh_ms, **dict(props)}
        try:
            opts = RepositoryOptions.model_validate(merged)
        except ValidationError as e:
            raise ConfigurationError(f"Invalid token repository options: {e}") from e
        self._settings = props
        self._url = opts.url
        self._refresh_ms = opts.refresh_time

    def is_defined(self) -> bool:
        return self._url is not None

    # --------------------------- lifecycle

    def is_open(self) -> bool:
        store = self._store
        return store is not None and store.is_loaded

    def open(self) -> None:
        """Load the backing resource and start watching it.

        Raises:
            ResourceError: resource could not be resolved or loaded; the
                repository stays unopened
        """
        with self._lock:
            if self.is_open() or not self.is_defined():
                return
            store = RepositoryStore(self._url, self._loader)
            watcher: Optional[ReloadWatcher] = None
            try:
                self._store = store
                self._notifier.attach(store)
                store.load()
                if self._refresh_ms > 0:
                    watcher = ReloadWatcher(store, self._refresh_ms)
                    watcher.start()
            except Exception as e:
                if watcher is not None:
                    watcher.stop()
                self._notifier.detach(store)
                self._store = None
                if isinstance(e, ResourceError):
                    raise
                raise ResourceError(f"Failed to open token repository {self._url}: {e}") from e
            self._watcher = watcher
            logger.info(f"Token repository opened: {self._url} (refresh={self._refresh_ms}ms)")

    def close(self) -> None:
        with self._lock:
            watcher, self._watcher = self._watcher, None
            store, self._store = self._store, None
            if watcher is not None:
                watcher.stop()
            if store is not None:
                self._notifier.detach(store)
                logger.info(f"Token repository closed: {self._url}")

    def reopen(self) -> None:
        self.close()
        self.open()

    def __enter__(self) -> "DynamicTokenRepository":
        self.open()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    # --------------------------- listeners

    def add_listener(self, listener: RepositoryListener) -> None:
        if not self.is_defined():
            return
        self._notifier.register(listener)

    def remove_listener(self, listener: RepositoryListener) -> None:
        if not self.is_defined():
            return
        self._notifier.unregister(listener)

    def add_failure_listener(self, listener: FailureListener) -> None:
        self._notifier.add_failure_listener(listener)

    def remove_failure_listener(self, listener: FailureListener) -> None:
        self._notifier.remove_failure_listener(listener)

    @property
    def listener_count(self) -> int:
        return self._notifier.listener_count

    # --------------------------- tokens

    def get(self, key: str, default: Any = None) -> Any:
        store = self._store
        if store is None:
            return default
        value = store.get(key)
        return default if value is None else value

    def get_keys(self) -> Iterator[str]:
        store = self._store
        return store.keys() if store is not None else iter(())

    def set(self, key: str, value: Any) -> None:
        store = self._store
        if store is not None and store.is_loaded:
            store.set(key, value)

    def remove(self, key: str) -> None:
        store = self._store
        if store is not None and store.is_loaded:
            store.remove(key)

    def clear_all(self) -> None:
        store = self._store
        if store is not None and store.is_loaded:
            store.clear_all()

    def reload(self) -> bool:
        """Force a reload now; False if unopened or the reload failed."""
        store = self._store
        return store.reload() if store is not None and store.is_loaded else False

    def __repr__(self) -> str:
        return (
            f"DynamicTokenRepository(url={self._url!r}, refresh_ms={self._refresh_ms}, "
            f"open={self.is_open()})"
        )
