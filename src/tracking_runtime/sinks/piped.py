from __future__ import annotations

from typing import Any, Optional

from ..failures import FailureListener
from ..models import Severity
from .gate import SinkGate, severity_of, size_of
from .types import RateLimiter, Sink


class PipedSink(Sink):
    """Wraps a head sink and pipes every accepted record to a chained sink.

    The chained sink is offered each record first, even while the head is
    closed, and applies its own gating. The wrapper owns both lifecycles.

    Args:
        head: Primary transport
        chained: Secondary sink every record is piped to
        threshold: Wrapper-level severity threshold (NONE defers to the sinks)
        rate_limiter: Wrapper-level admission control
    """

    def __init__(
        self,
        head: Sink,
        chained: Sink,
        *,
        threshold: Severity = Severity.NONE,
        rate_limiter: Optional[RateLimiter] = None,
        name: str = "piped",
    ):
        self._head = head
        self._chained = chained
        self._gate = SinkGate(name, threshold, rate_limiter)

    @property
    def name(self) -> str:
        return self._gate.name

    @property
    def head(self) -> Sink:
        return self._head

    @property
    def chained(self) -> Sink:
        return self._chained

    # --------------------------- lifecycle

    def open(self) -> None:
        self._head.open()
        try:
            self._chained.open()
        except Exception:
            self._head.close()
            raise

    def close(self) -> None:
        try:
            self._head.close()
        finally:
            self._chained.close()

    def is_open(self) -> bool:
        return self._head.is_open()

    # --------------------------- gating

    def is_set(self, severity: Severity) -> bool:
        return self._gate.is_set(severity) and (
            self._head.is_set(severity) or self._chained.is_set(severity)
        )

    def add_failure_listener(self, listener: FailureListener) -> None:
        for sink in (self._head, self._chained):
            add = getattr(sink, "add_failure_listener", None)
            if add is not None:
                add(listener)

    def remove_failure_listener(self, listener: FailureListener) -> None:
        for sink in (self._head, self._chained):
            remove = getattr(sink, "remove_failure_listener", None)
            if remove is not None:
                remove(listener)

    # --------------------------- logging

    def log(self, record: Any) -> None:
        if not self._gate.accept(severity_of(record), size_of(record), self.is_set):
            return
        self._chained.log(record)
        if self._head.is_open():
            self._head.log(record)

    def log_message(
        self, severity: Severity, msg: str, exc: Optional[BaseException] = None
    ) -> None:
        if not self._gate.accept(severity, size_of(msg), self.is_set):
            return
        self._chained.log_message(severity, msg, exc)
        if self._head.is_open():
            self._head.log_message(severity, msg, exc)

    def write(self, obj: Any) -> None:
        if self._head.is_open():
            self._head.write(obj)

    def __repr__(self) -> str:
        return f"PipedSink(name={self.name!r}, head={self._head!r}, chained={self._chained!r})"
