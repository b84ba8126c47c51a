"""
Fixtures for sink unit tests.
"""

from typing import Any, Optional
from unittest.mock import MagicMock

import pytest

from tracking_runtime.models import Severity
from tracking_runtime.sinks import LineFormatter, Sink, SinkGate


class SpyFormatter(LineFormatter):
    """LineFormatter that counts invocations."""

    def __init__(self, fail: bool = False):
        self.calls = 0
        self.fail = fail

    def format(self, obj):
        self.calls += 1
        if self.fail:
            raise ValueError("cannot render")
        return super().format(obj)

    def format_message(self, severity, msg, exc=None):
        self.calls += 1
        if self.fail:
            raise ValueError("cannot render")
        return super().format_message(severity, msg, exc)


class StaticLimiter:
    """Rate limiter with a fixed answer that records its calls."""

    def __init__(self, admit: bool):
        self.admit = admit
        self.calls = []

    def try_acquire(self, messages, nbytes):
        self.calls.append((messages, nbytes))
        return self.admit


class RecordingSink(Sink):
    """In-memory sink recording everything it logs while open."""

    def __init__(self, threshold: Severity = Severity.NONE, fail_open: bool = False):
        self._gate = SinkGate("recording", threshold)
        self._open = False
        self.fail_open = fail_open
        self.records: list[Any] = []
        self.messages: list[tuple] = []
        self.writes: list[Any] = []
        self.open_calls = 0
        self.close_calls = 0

    def open(self) -> None:
        self.open_calls += 1
        if self.fail_open:
            raise RuntimeError("chained open failed")
        self._open = True

    def close(self) -> None:
        self.close_calls += 1
        self._open = False

    def is_open(self) -> bool:
        return self._open

    def is_set(self, severity: Severity) -> bool:
        return self._gate.is_set(severity)

    def log(self, record: Any) -> None:
        if self._open and self._gate.accept(Severity.parse(record.severity), 0):
            self.records.append(record)

    def log_message(self, severity: Severity, msg: str, exc: Optional[BaseException] = None):
        if self._open and self._gate.accept(severity, 0):
            self.messages.append((severity, msg, exc))

    def write(self, obj: Any) -> None:
        if self._open:
            self.writes.append(obj)


@pytest.fixture
def spy_formatter():
    return SpyFormatter()


@pytest.fixture
def failing_formatter():
    return SpyFormatter(fail=True)


@pytest.fixture
def recording_sink():
    return RecordingSink()


@pytest.fixture
def make_recording_sink():
    return RecordingSink


@pytest.fixture
def make_limiter():
    return StaticLimiter


@pytest.fixture
def fake_connection(monkeypatch):
    """Patch socket.create_connection with a mock socket; returns (connect, sock, out)."""
    from tracking_runtime.sinks import socket_sink

    out = MagicMock(name="out")
    sock = MagicMock(name="sock")
    sock.fileno.return_value = 7
    sock.makefile.return_value = out
    connect = MagicMock(return_value=sock)
    monkeypatch.setattr(socket_sink.socket, "create_connection", connect)
    return connect, sock, out
