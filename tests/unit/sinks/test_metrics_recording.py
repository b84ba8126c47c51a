"""
Unit tests for sink metrics recording.
"""

import io

from tracking_runtime.models import Severity
from tracking_runtime.sinks import SINK_GATED_TOTAL, SINK_WRITE_LATENCY, SINK_WRITES_TOTAL, StreamSink


def _samples(metric, **labels):
    samples = list(metric.collect())[0].samples
    return [s for s in samples if all(s.labels.get(k) == v for k, v in labels.items())]


def test_metrics_success_increment():
    with StreamSink(io.StringIO(), name="metrics-ok") as sink:
        sink.log_message(Severity.INFO, "hello")

    assert len(_samples(SINK_WRITES_TOTAL, sink="metrics-ok", status="success")) > 0


def test_metrics_failure_increment(failing_formatter):
    with StreamSink(io.StringIO(), formatter=failing_formatter, name="metrics-fail") as sink:
        sink.log_message(Severity.INFO, "hello")

    assert len(_samples(SINK_WRITES_TOTAL, sink="metrics-fail", status="failure")) > 0


def test_metrics_latency_recorded():
    with StreamSink(io.StringIO(), name="metrics-latency") as sink:
        sink.log_message(Severity.INFO, "hello")

    assert len(_samples(SINK_WRITE_LATENCY, sink="metrics-latency")) > 0


def test_metrics_gated_reasons(make_limiter):
    with StreamSink(io.StringIO(), threshold=Severity.ERROR, name="metrics-gated") as sink:
        sink.log_message(Severity.INFO, "below threshold")
    with StreamSink(
        io.StringIO(), rate_limiter=make_limiter(admit=False), name="metrics-rated"
    ) as sink:
        sink.log_message(Severity.INFO, "over budget")

    assert len(_samples(SINK_GATED_TOTAL, sink="metrics-gated", reason="severity")) > 0
    assert len(_samples(SINK_GATED_TOTAL, sink="metrics-rated", reason="rate")) > 0
