"""
Prometheus metrics for the token repository and the sink pipeline.
Everything registers with the global REGISTRY on import.
"""

from prometheus_client import Counter, Histogram


# --- Sink Metrics ---

SINK_WRITES_TOTAL = Counter(
    "sink_writes_total",
    "Total number of records written by a sink transport",
    ["sink", "status"],
)

SINK_WRITE_LATENCY = Histogram(
    "sink_write_latency_seconds",
    "Sink transport write latency in seconds",
    ["sink"],
    buckets=[0.0005, 0.001, 0.0025, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0],
)

SINK_GATED_TOTAL = Counter(
    "sink_gated_total",
    "Records rejected by sink gating before formatting",
    ["sink", "reason"],
)


# --- Token Repository Metrics ---

REPOSITORY_RELOADS_TOTAL = Counter(
    "token_repository_reloads_total",
    "Token repository snapshot reloads",
    ["outcome"],
)

REPOSITORY_EVENTS_TOTAL = Counter(
    "token_repository_events_total",
    "Change events delivered to token repository listeners",
    ["kind"],
)

LISTENER_ERRORS_TOTAL = Counter(
    "listener_errors_total",
    "Exceptions raised by listeners and isolated by the runtime",
    ["component"],
)


class MetricsRegistry:
    """Centralized metrics registry for runtime components.

    Provides access to all runtime metrics in a structured way.
    """

    sink_writes_total = SINK_WRITES_TOTAL
    sink_write_latency = SINK_WRITE_LATENCY
    sink_gated_total = SINK_GATED_TOTAL
    repository_reloads_total = REPOSITORY_RELOADS_TOTAL
    repository_events_total = REPOSITORY_EVENTS_TOTAL
    listener_errors_total = LISTENER_ERRORS_TOTAL


# Singleton instance
metrics_registry = MetricsRegistry()
