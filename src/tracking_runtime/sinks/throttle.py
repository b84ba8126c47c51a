"""
Token-bucket rate limiter usable as a sink's ``rate_limiter``.
"""

from __future__ import annotations

import threading
import time
from typing import Callable, Optional


class Throttle:
    """Admits up to ``max_mps`` messages and ``max_bps`` bytes per second.

    Each limit is a token bucket holding one second worth of capacity.
    A limit of 0 disables that bucket; a disabled throttle admits everything.

    Args:
        max_mps: Messages per second (0 = unlimited)
        max_bps: Bytes per second (0 = unlimited)
        enabled: When False, try_acquire() always returns True
        clock: Monotonic clock, injectable for tests
    """

    def __init__(
        self,
        max_mps: float = 0,
        max_bps: float = 0,
        enabled: bool = True,
        *,
        clock: Callable[[], float] = time.monotonic,
    ):
        if max_mps < 0 or max_bps < 0:
            raise ValueError("max_mps and max_bps must be >= 0")
        self.max_mps = max_mps
        self.max_bps = max_bps
        self.enabled = enabled
        self._clock = clock
        self._messages = float(max_mps)
        self._bytes = float(max_bps)
        self._stamp = clock()
        self._lock = threading.Lock()

    def try_acquire(self, messages: int, nbytes: int) -> bool:
        if not self.enabled:
            return True
        with self._lock:
            self._refill()
            if self.max_mps and messages > self._messages:
                return False
            if self.max_bps and nbytes > self._bytes:
                return False
            if self.max_mps:
                self._messages -= messages
            if self.max_bps:
                self._bytes -= nbytes
            return True

    def _refill(self) -> None:
        now = self._clock()
        elapsed = max(0.0, now - self._stamp)
        self._stamp = now
        self._messages = min(float(self.max_mps), self._messages + elapsed * self.max_mps)
        self._bytes = min(float(self.max_bps), self._bytes + elapsed * self.max_bps)

    def __repr__(self) -> str:
        return f"Throttle(max_mps={self.max_mps}, max_bps={self.max_bps}, enabled={self.enabled})"


def new_throttle(max_mps: float, max_bps: float, enabled: bool = True) -> Optional[Throttle]:
    """Build a throttle, or None when both limits are 0 (nothing to limit)."""
    if not max_mps and not max_bps:
        return None
    return Throttle(max_mps, max_bps, enabled)
