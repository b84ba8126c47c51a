"""
Socket transport sink: newline-delimited records over one TCP connection.
"""

from __future__ import annotations

import socket
import threading
import time
from contextlib import suppress
from typing import Any, BinaryIO, Callable, Optional

from loguru import logger

from ..errors import TransportError
from ..failures import FailureListener
from ..models import Severity
from .formatter import LineFormatter
from .gate import SinkGate, severity_of, size_of
from .settings import SocketSinkSettings
from .throttle import new_throttle
from .types import Formatter, RateLimiter, Sink


class SocketEventSink(Sink):
    """Streams formatted records to ``host:port``, optionally piping to another sink.

    Each record is encoded as UTF-8, terminated with ``\\n``, written and
    flushed on its own. A write failure tears the connection down and is
    reported to failure listeners; nothing reconnects automatically, the
    caller must reopen().

    Writes are serialized with an internal lock, so one instance can be
    shared between threads.

    Args:
        host: Receiver host
        port: Receiver port
        formatter: Record formatter (LineFormatter by default)
        chained: Sink every accepted record is piped to first; its lifecycle
            is owned by this sink
        threshold: Severity threshold used when there is no chained sink
        rate_limiter: Optional admission control
        connect_timeout: Socket connect timeout in seconds (None blocks)
    """

    def __init__(
        self,
        host: str = "localhost",
        port: int = 6400,
        formatter: Optional[Formatter] = None,
        chained: Optional[Sink] = None,
        *,
        threshold: Severity = Severity.NONE,
        rate_limiter: Optional[RateLimiter] = None,
        connect_timeout: Optional[float] = None,
        name: str = "socket",
    ):
        self._host = host
        self._port = port
        self._formatter = formatter or LineFormatter()
        self._chained = chained
        self._connect_timeout = connect_timeout
        self._gate = SinkGate(name, threshold, rate_limiter)
        self._sock: Optional[socket.socket] = None
        self._out: Optional[BinaryIO] = None
        self._lock = threading.RLock()

    @classmethod
    def from_settings(
        cls,
        settings: Optional[SocketSinkSettings] = None,
        formatter: Optional[Formatter] = None,
        chained: Optional[Sink] = None,
        rate_limiter: Optional[RateLimiter] = None,
    ) -> "SocketEventSink":
        s = settings or SocketSinkSettings()
        return cls(
            s.host,
            s.port,
            formatter,
            chained,
            threshold=s.threshold,
            rate_limiter=rate_limiter or new_throttle(s.max_mps, s.max_bps, s.throttle_enabled),
            connect_timeout=s.connect_timeout,
        )

    @property
    def name(self) -> str:
        return self._gate.name

    @property
    def address(self) -> tuple[str, int]:
        return self._host, self._port

    @property
    def chained(self) -> Optional[Sink]:
        return self._chained

    @property
    def sink_handle(self) -> Optional[socket.socket]:
        return self._sock

    # --------------------------- lifecycle

    def open(self) -> None:
        """Connect, then open the chained sink.

        Raises:
            TransportError: connection failed; no handle is kept
        """
        with self._lock:
            if self.is_open():
                return
            if self._sock is not None:
                # peer went away since the last write
                self._drop_connection()
            try:
                sock = socket.create_connection(
                    (self._host, self._port), timeout=self._connect_timeout
                )
            except OSError as e:
                raise TransportError(
                    f"Failed to connect to {self._host}:{self._port}: {e}"
                ) from e
            self._sock = sock
            self._out = sock.makefile("wb")
            logger.debug(f"Sink {self.name} connected to {self._host}:{self._port}")

            if self._chained is not None:
                try:
                    self._chained.open()
                except Exception:
                    self._drop_connection()
                    raise

    def close(self) -> None:
        """Close the chained sink, then the stream, then the socket.

        Both handles are cleared even when closing fails.

        Raises:
            TransportError: closing the stream or socket failed
        """
        with self._lock:
            sock, out = self._sock, self._out
            try:
                if self._chained is not None:
                    self._chained.close()
                if out is not None:
                    try:
                        out.close()
                    finally:
                        if sock is not None:
                            sock.close()
                elif sock is not None:
                    sock.close()
            except OSError as e:
                raise TransportError(f"Failed to close {self._host}:{self._port}: {e}") from e
            finally:
                self._out = None
                self._sock = None

    def is_open(self) -> bool:
        sock = self._sock
        if sock is None or sock.fileno() == -1:
            return False
        try:
            sock.getpeername()
        except OSError:
            return False
        return True

    # --------------------------- gating

    def is_set(self, severity: Severity) -> bool:
        if self._chained is not None:
            return self._chained.is_set(severity)
        return self._gate.is_set(severity)

    def add_failure_listener(self, listener: FailureListener) -> None:
        self._gate.add_failure_listener(listener)

    def remove_failure_listener(self, listener: FailureListener) -> None:
        self._gate.remove_failure_listener(listener)

    # --------------------------- logging

    def log(self, record: Any) -> None:
        if not self._gate.accept(severity_of(record), size_of(record), self.is_set):
            return
        if self._chained is not None:
            self._chained.log(record)
        if self.is_open():
            self._emit(lambda: self._formatter.format(record), record)

    def log_message(
        self, severity: Severity, msg: str, exc: Optional[BaseException] = None
    ) -> None:
        if not self._gate.accept(severity, size_of(msg), self.is_set):
            return
        if self._chained is not None:
            self._chained.log_message(severity, msg, exc)
        if self.is_open():
            self._emit(lambda: self._formatter.format_message(severity, msg, exc), msg)

    def write(self, obj: Any) -> None:
        if self.is_open():
            self._emit(lambda: self._formatter.format(obj), obj)

    # --------------------------- internals

    def _emit(self, render: Callable[[], str], payload: Any) -> None:
        with self._lock:
            out = self._out
            if out is None:
                return
            started = time.perf_counter()
            try:
                line = render()
                data = (line if line.endswith("\n") else line + "\n").encode("utf-8")
            except Exception as exc:
                self._gate.record_write(False, started)
                self._gate.report_failure(self, payload, exc)
                return

            try:
                out.write(data)
                out.flush()
            except Exception as exc:
                self._gate.record_write(False, started)
                self._drop_connection()
                error = TransportError(f"Write to {self._host}:{self._port} failed: {exc}")
                error.__cause__ = exc
                self._gate.report_failure(self, line, error)
                return
            self._gate.record_write(True, started)

    def _drop_connection(self) -> None:
        """Discard a broken connection; close errors are irrelevant at this point."""
        sock, out = self._sock, self._out
        self._sock = None
        self._out = None
        if out is not None:
            with suppress(OSError):
                out.close()
        if sock is not None:
            with suppress(OSError):
                sock.close()
        logger.warning(f"Sink {self.name} connection to {self._host}:{self._port} dropped")

    def __repr__(self) -> str:
        return (
            f"SocketEventSink(name={self.name!r}, host={self._host!r}, port={self._port}, "
            f"open={self.is_open()}, chained={self._chained!r})"
        )
