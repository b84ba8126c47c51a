"""
Default sink behaviour, composed by value into each sink implementation:
severity threshold, optional rate limiting, failure listeners and the
per-write metrics.
"""

from __future__ import annotations

import threading
import time
from typing import Any, Callable, Optional

from loguru import logger

from ..failures import FailureContext, FailureListener, notify_failure_listeners
from ..metrics.registry import SINK_GATED_TOTAL, SINK_WRITE_LATENCY, SINK_WRITES_TOTAL
from ..models import Severity
from .types import RateLimiter


def severity_of(record: Any) -> Severity:
    """Severity carried by a record; INFO when it has none."""
    value = getattr(record, "severity", None)
    if value is None:
        return Severity.INFO
    return Severity.parse(value)


def size_of(value: Any) -> int:
    """Rough payload size in bytes, used for rate limiting."""
    if isinstance(value, bytes):
        return len(value)
    text = value if isinstance(value, str) else getattr(value, "message", None)
    if text is None:
        text = str(value)
    return len(str(text).encode("utf-8", errors="replace"))


class SinkGate:
    """Gating and failure reporting shared by every sink.

    Args:
        name: Sink name used in logs and metric labels
        threshold: Lowest severity accepted (NONE accepts everything)
        rate_limiter: Optional admission control; None always admits
    """

    def __init__(
        self,
        name: str,
        threshold: Severity = Severity.NONE,
        rate_limiter: Optional[RateLimiter] = None,
    ):
        self.name = name
        self.threshold = Severity.parse(threshold)
        self.rate_limiter = rate_limiter
        self._failure_listeners: tuple[FailureListener, ...] = ()
        self._lock = threading.Lock()

    def is_set(self, severity: Severity) -> bool:
        return Severity.parse(severity) >= self.threshold

    def accept(
        self,
        severity: Severity,
        nbytes: int,
        level_check: Optional[Callable[[Severity], bool]] = None,
    ) -> bool:
        """Severity check, then rate limiter admission."""
        passes = level_check(severity) if level_check is not None else self.is_set(severity)
        if not passes:
            SINK_GATED_TOTAL.labels(sink=self.name, reason="severity").inc()
            return False
        if self.rate_limiter is not None and not self.rate_limiter.try_acquire(1, nbytes):
            SINK_GATED_TOTAL.labels(sink=self.name, reason="rate").inc()
            return False
        return True

    # --------------------------- failures

    def add_failure_listener(self, listener: FailureListener) -> None:
        with self._lock:
            if listener not in self._failure_listeners:
                self._failure_listeners = self._failure_listeners + (listener,)

    def remove_failure_listener(self, listener: FailureListener) -> None:
        with self._lock:
            self._failure_listeners = tuple(
                f for f in self._failure_listeners if f is not listener
            )

    @property
    def failure_listener_count(self) -> int:
        return len(self._failure_listeners)

    def report_failure(self, source: Any, payload: Any, cause: BaseException) -> None:
        logger.warning(f"Sink {self.name} write failed: {type(cause).__name__}: {cause}")
        notify_failure_listeners(
            self._failure_listeners,
            FailureContext(source=source, payload=payload),
            cause,
            component="sink",
        )

    # --------------------------- metrics

    def record_write(self, ok: bool, started: float) -> None:
        SINK_WRITES_TOTAL.labels(sink=self.name, status="success" if ok else "failure").inc()
        SINK_WRITE_LATENCY.labels(sink=self.name).observe(time.perf_counter() - started)
