"""
Pydantic record models flowing through the sink pipeline.

Sinks only rely on a ``severity`` attribute; these models are the records
the runtime ships with.
"""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum, IntEnum
from typing import Any

from pydantic import BaseModel, Field, field_validator


class Severity(IntEnum):
    """Ordered severity levels used for threshold gating."""

    NONE = 0
    TRACE = 1
    DEBUG = 2
    INFO = 3
    NOTICE = 4
    WARNING = 5
    ERROR = 6
    CRITICAL = 7
    FAILURE = 8
    FATAL = 9
    HALT = 10

    @classmethod
    def parse(cls, value: "Severity | int | str") -> "Severity":
        """Accept a member, its integer value or its (case-insensitive) name."""
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            try:
                return cls[value.strip().upper()]
            except KeyError:
                raise ValueError(f"Unknown severity: {value}") from None
        return cls(value)


class CompletionCode(str, Enum):
    """Completion code of a tracked operation."""

    SUCCESS = "success"
    WARNING = "warning"
    ERROR = "error"


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class TrackingEvent(BaseModel):
    """A single tracked event."""

    name: str
    severity: Severity = Severity.INFO
    message: str = ""
    completion: CompletionCode = CompletionCode.SUCCESS
    timestamp: datetime = Field(default_factory=_utc_now)
    properties: dict[str, Any] = Field(default_factory=dict)

    @field_validator("severity", mode="before")
    @classmethod
    def _parse_severity(cls, v):
        return Severity.parse(v)


class TrackingActivity(BaseModel):
    """A group of related events (e.g. one request or job run)."""

    name: str
    severity: Severity = Severity.INFO
    completion: CompletionCode = CompletionCode.SUCCESS
    timestamp: datetime = Field(default_factory=_utc_now)
    events: list[TrackingEvent] = Field(default_factory=list)
    properties: dict[str, Any] = Field(default_factory=dict)

    @field_validator("severity", mode="before")
    @classmethod
    def _parse_severity(cls, v):
        return Severity.parse(v)

    @property
    def message(self) -> str:
        return f"{self.name} ({len(self.events)} events)"
