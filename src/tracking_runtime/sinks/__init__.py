"""Event Sink Pipeline

Sink capability plus transports:
- SinkGate (severity threshold + rate limiter + failure listeners), composed by value
- StreamSink (console / file leaf transport)
- SocketEventSink (line-delimited TCP transport with optional chained sink)
- PipedSink (head transport piped to a secondary sink)
- LineFormatter default formatter
- Throttle token-bucket rate limiter
- Prometheus metrics per write
"""

from .types import Formatter, RateLimiter, Sink
from .gate import SinkGate, severity_of, size_of
from .formatter import LineFormatter
from .stream import StreamSink
from .piped import PipedSink
from .throttle import Throttle, new_throttle
from .settings import SocketSinkSettings
from .socket_sink import SocketEventSink
from ..metrics.registry import SINK_GATED_TOTAL, SINK_WRITE_LATENCY, SINK_WRITES_TOTAL

__all__ = [
    # types
    "Sink",
    "Formatter",
    "RateLimiter",
    # behaviour
    "SinkGate",
    "severity_of",
    "size_of",
    "LineFormatter",
    "Throttle",
    "new_throttle",
    # transports
    "StreamSink",
    "PipedSink",
    "SocketEventSink",
    "SocketSinkSettings",
    # metrics
    "SINK_WRITES_TOTAL",
    "SINK_WRITE_LATENCY",
    "SINK_GATED_TOTAL",
]
