"""
Change events emitted by the token repository.

A ChangeEvent is built once a mutation, reload or reload failure has
completed, delivered synchronously to every listener and then discarded.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional, Protocol


class ChangeKind(str, Enum):
    """Kind of repository change."""

    ADD = "add"  # key was absent before set()
    SET = "set"  # existing key overwritten
    CLEAR_KEY = "clear_key"
    CLEAR_ALL = "clear_all"
    RELOAD = "reload"  # whole snapshot replaced from the backing resource
    ERROR = "error"  # reload or watch failure; snapshot unchanged


@dataclass(frozen=True)
class RawChange:
    """Notification on the store's raw change stream.

    Each mutation produces a ``before_update`` notification and a post-commit
    one. Only post-commit notifications become ChangeEvents.
    """

    kind: ChangeKind
    key: Optional[str] = None
    value: Any = None
    before_update: bool = False
    cause: Optional[BaseException] = None


@dataclass(frozen=True)
class ChangeEvent:
    """Immutable repository change event.

    Attributes:
        source: Repository (or store) the change happened in
        kind: What happened
        key: Affected key (None for CLEAR_ALL, RELOAD, ERROR)
        value: New value for ADD/SET, previous value for CLEAR_KEY
        cause: Exception for ERROR events
    """

    source: Any
    kind: ChangeKind
    key: Optional[str] = None
    value: Any = None
    cause: Optional[BaseException] = None

    @property
    def is_error(self) -> bool:
        return self.kind is ChangeKind.ERROR

    def __str__(self) -> str:
        return (
            f"ChangeEvent(kind={self.kind.value}, key={self.key}, "
            f"value={self.value}, error={self.cause is not None})"
        )


class RepositoryListener(Protocol):
    """Protocol for repository listeners.

    Listeners are plain callables accepting a ChangeEvent. Exceptions are
    caught and logged so one listener cannot break another.
    """

    def __call__(self, event: ChangeEvent) -> None:
        """Handle change event."""
        ...
