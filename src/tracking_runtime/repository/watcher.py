"""
Periodic reload of the token repository when its backing resource changes.
"""

from __future__ import annotations

import threading
from typing import Any, Optional

from loguru import logger

from .store import RepositoryStore


class ReloadWatcher:
    """Polls the store's modification signal on a daemon thread.

    A check that starts while another is still running returns immediately
    instead of queueing, so slow reloads never stack up.

    Args:
        store: Store to reload
        refresh_ms: Polling interval in milliseconds (must be > 0)
        name: Thread name
    """

    def __init__(self, store: RepositoryStore, refresh_ms: int, *, name: str = "token-repo-watcher"):
        if refresh_ms <= 0:
            raise ValueError("refresh_ms must be > 0")
        self._store = store
        self._interval = refresh_ms / 1000.0
        self._name = name
        self._guard = threading.Lock()  # held while a check/reload is in flight
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None
        self._last_signal: Any = None

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    @property
    def interval(self) -> float:
        return self._interval

    def start(self) -> None:
        if self.is_running:
            return
        try:
            self._last_signal = self._store.modification_signal()
        except Exception as e:
            # No baseline; the first successful check will trigger a reload.
            logger.warning(f"Token repository watch baseline unavailable: {e}")
            self._last_signal = None
        self._stop.clear()
        self._thread = threading.Thread(target=self._run, name=self._name, daemon=True)
        self._thread.start()
        logger.debug(f"Reload watcher started: every {self._interval:.3f}s")

    def stop(self, timeout: float | None = 5.0) -> None:
        self._stop.set()
        thread = self._thread
        if thread is not None and thread is not threading.current_thread():
            thread.join(timeout)
        self._thread = None
        logger.debug("Reload watcher stopped")

    def check(self) -> bool:
        """Run one check; returns True if a reload was attempted.

        No-op (False) while another check is in flight.
        """
        if not self._guard.acquire(blocking=False):
            return False
        try:
            try:
                signal = self._store.modification_signal()
            except Exception as e:
                self._store.report_error(e)
                return False
            if signal == self._last_signal:
                return False
            if self._store.reload():
                self._last_signal = signal
            return True
        finally:
            self._guard.release()

    def _run(self) -> None:
        while not self._stop.wait(self._interval):
            try:
                self.check()
            except Exception as exc:
                logger.exception(f"Reload watcher check failed: {exc}")
