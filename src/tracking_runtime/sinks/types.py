from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Optional, Protocol, runtime_checkable

from ..models import Severity


@runtime_checkable
class Formatter(Protocol):
    """Renders records and messages to a single transmissible line."""

    def format(self, obj: Any) -> str: ...

    def format_message(
        self, severity: Severity, msg: str, exc: Optional[BaseException] = None
    ) -> str: ...


@runtime_checkable
class RateLimiter(Protocol):
    """Admission control consulted before a record is formatted."""

    def try_acquire(self, messages: int, nbytes: int) -> bool: ...


class Sink(ABC):
    """Destination for tracking records.

    State machine is CLOSED -> OPEN -> CLOSED; open() on an open sink and
    close() on a closed sink are no-ops. log* and write never raise for
    formatting or transport failures; those go to failure listeners.
    """

    @abstractmethod
    def open(self) -> None: ...

    @abstractmethod
    def close(self) -> None: ...

    @abstractmethod
    def is_open(self) -> bool: ...

    @abstractmethod
    def is_set(self, severity: Severity) -> bool:
        """Whether records at ``severity`` pass this sink's threshold."""

    @abstractmethod
    def log(self, record: Any) -> None:
        """Log an event or activity (anything with a ``severity``)."""

    @abstractmethod
    def log_message(
        self, severity: Severity, msg: str, exc: Optional[BaseException] = None
    ) -> None: ...

    @abstractmethod
    def write(self, obj: Any) -> None:
        """Format and write ``obj`` as-is; no gating, no piping."""

    def reopen(self) -> None:
        self.close()
        self.open()

    def __enter__(self):
        self.open()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()
