from __future__ import annotations

import sys
import threading
import time
from pathlib import Path
from typing import Any, Callable, Optional, TextIO

from loguru import logger

from ..failures import FailureListener
from ..models import Severity
from .formatter import LineFormatter
from .gate import SinkGate, severity_of, size_of
from .types import Formatter, RateLimiter, Sink


class StreamSink(Sink):
    """Leaf sink writing one formatted line per record to a text stream.

    Writes to ``stream`` (stdout by default), or to ``path`` opened in append
    mode on open(). Every record is flushed on its own.
    """

    def __init__(
        self,
        stream: Optional[TextIO] = None,
        *,
        path: str | Path | None = None,
        formatter: Optional[Formatter] = None,
        threshold: Severity = Severity.NONE,
        rate_limiter: Optional[RateLimiter] = None,
        name: str = "stream",
    ):
        self._stream = stream
        self._path = Path(path) if path is not None else None
        self._formatter = formatter or LineFormatter()
        self._gate = SinkGate(name, threshold, rate_limiter)
        self._out: Optional[TextIO] = None
        self._owned = False
        self._lock = threading.RLock()

    @property
    def name(self) -> str:
        return self._gate.name

    @property
    def formatter(self) -> Formatter:
        return self._formatter

    # --------------------------- lifecycle

    def open(self) -> None:
        with self._lock:
            if self._out is not None:
                return
            if self._path is not None:
                self._out = open(self._path, "a", encoding="utf-8")
                self._owned = True
            else:
                self._out = self._stream if self._stream is not None else sys.stdout
                self._owned = False
            logger.debug(f"Sink {self.name} opened")

    def close(self) -> None:
        with self._lock:
            out, owned = self._out, self._owned
            try:
                if out is not None and owned:
                    out.close()
            finally:
                self._out = None
                self._owned = False

    def is_open(self) -> bool:
        return self._out is not None

    # --------------------------- gating

    def is_set(self, severity: Severity) -> bool:
        return self._gate.is_set(severity)

    def add_failure_listener(self, listener: FailureListener) -> None:
        self._gate.add_failure_listener(listener)

    def remove_failure_listener(self, listener: FailureListener) -> None:
        self._gate.remove_failure_listener(listener)

    # --------------------------- logging

    def log(self, record: Any) -> None:
        if not self._gate.accept(severity_of(record), size_of(record)):
            return
        if self.is_open():
            self._emit(lambda: self._formatter.format(record), record)

    def log_message(
        self, severity: Severity, msg: str, exc: Optional[BaseException] = None
    ) -> None:
        if not self._gate.accept(severity, size_of(msg)):
            return
        if self.is_open():
            self._emit(lambda: self._formatter.format_message(severity, msg, exc), msg)

    def write(self, obj: Any) -> None:
        if self.is_open():
            self._emit(lambda: self._formatter.format(obj), obj)

    def _emit(self, render: Callable[[], str], payload: Any) -> None:
        with self._lock:
            out = self._out
            if out is None:
                return
            started = time.perf_counter()
            try:
                line = render()
                out.write(line if line.endswith("\n") else line + "\n")
                out.flush()
            except Exception as exc:
                self._gate.record_write(False, started)
                self._gate.report_failure(self, payload, exc)
                return
            self._gate.record_write(True, started)

    def __repr__(self) -> str:
        target = self._path or self._stream or "stdout"
        return f"StreamSink(name={self.name!r}, target={target!r}, open={self.is_open()})"
