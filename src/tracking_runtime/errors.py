"""
Custom exceptions for the tracking runtime.

Construction and open() failures are raised to the caller; steady-state
failures (reloads, sink writes) are reported through listeners instead.
"""


class TrackingRuntimeError(Exception):
    """Base error for the tracking runtime."""

    pass


class ResourceError(TrackingRuntimeError, OSError):
    """Backing resource could not be resolved, read or parsed."""

    pass


class ReloadError(TrackingRuntimeError):
    """Transient reload failure; the previous snapshot is retained."""

    pass


class TransportError(TrackingRuntimeError, OSError):
    """Connection or write failure on a sink transport."""

    pass


class ConfigurationError(TrackingRuntimeError, ValueError):
    """Malformed options supplied at setup."""

    pass
