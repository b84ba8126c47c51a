"""
Side-channel failure reporting shared by the repository and the sinks.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Iterable

from loguru import logger

from .metrics.registry import LISTENER_ERRORS_TOTAL


@dataclass(frozen=True)
class FailureContext:
    """What was being processed when a failure occurred.

    Attributes:
        source: Component reporting the failure (sink, repository)
        payload: Record, message or ChangeEvent being handled
    """

    source: Any
    payload: Any = None


FailureListener = Callable[[FailureContext, BaseException], None]
"""Receives ``(context, cause)`` for every isolated failure."""


def notify_failure_listeners(
    listeners: Iterable[FailureListener],
    context: FailureContext,
    cause: BaseException,
    component: str,
) -> None:
    """Call every failure listener; a failing listener is logged and skipped."""
    for listener in listeners:
        try:
            listener(context, cause)
        except Exception as exc:
            LISTENER_ERRORS_TOTAL.labels(component=f"{component}.failure").inc()
            logger.warning(
                f"Failure listener error (ignored): {type(exc).__name__}: {exc}"
            )
