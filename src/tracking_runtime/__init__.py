"""
Tracking Runtime

Instrumentation runtime with a hot-reloadable token repository and a chain
of event sinks forwarding tracking records to a socket transport.

Usage:
    from tracking_runtime import DynamicTokenRepository, Severity, SocketEventSink, StreamSink

    repo = DynamicTokenRepository("tokens.properties", refresh_ms=5000)
    repo.open()

    sink = SocketEventSink("collector.local", 6400, chained=StreamSink())
    with sink:
        sink.log_message(Severity.INFO, "service started")
"""

from .errors import (
    TrackingRuntimeError,
    ResourceError,
    ReloadError,
    TransportError,
    ConfigurationError,
)
from .failures import FailureContext, FailureListener
from .models import Severity, CompletionCode, TrackingEvent, TrackingActivity
from .repository import ChangeEvent, ChangeKind, DynamicTokenRepository, RepositorySettings
from .sinks import (
    Sink,
    Formatter,
    RateLimiter,
    LineFormatter,
    StreamSink,
    PipedSink,
    SocketEventSink,
    SocketSinkSettings,
    Throttle,
)

__version__ = "1.0.0"
__all__ = [
    "TrackingRuntimeError",
    "ResourceError",
    "ReloadError",
    "TransportError",
    "ConfigurationError",
    "FailureContext",
    "FailureListener",
    "Severity",
    "CompletionCode",
    "TrackingEvent",
    "TrackingActivity",
    "ChangeEvent",
    "ChangeKind",
    "DynamicTokenRepository",
    "RepositorySettings",
    "Sink",
    "Formatter",
    "RateLimiter",
    "LineFormatter",
    "StreamSink",
    "PipedSink",
    "SocketEventSink",
    "SocketSinkSettings",
    "Throttle",
]
