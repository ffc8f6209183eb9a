"""Prometheus metrics for collection reads, writes and failures.

Each metric is mirrored to an OpenTelemetry instrument so a host
application that installs its own meter provider receives the same data.
"""

from __future__ import annotations

from contextlib import contextmanager
import time
from typing import TYPE_CHECKING, Any

from opentelemetry import metrics as otel_metrics
from opentelemetry.sdk.metrics import MeterProvider
from opentelemetry.sdk.resources import Resource
from prometheus_client import Counter, Histogram


if TYPE_CHECKING:
    from collections.abc import Generator


_meter_holder: dict[str, Any] = {"meter": None, "provider": None}


def init_metrics(service_name: str = "json-surf") -> MeterProvider:
    """Initialize the OpenTelemetry meter used by the metric bridges."""
    provider = _meter_holder.get("provider")
    if isinstance(provider, MeterProvider):
        return provider

    provider = MeterProvider(resource=Resource.create({"service.name": service_name}))
    otel_metrics.set_meter_provider(provider)
    _meter_holder["provider"] = provider
    _meter_holder["meter"] = otel_metrics.get_meter(__name__)
    return provider


def _get_meter():
    meter = _meter_holder.get("meter")
    if meter is None:
        init_metrics()
        meter = _meter_holder.get("meter")
    return meter


class _BoundMetric:
    def __init__(self, wrapper: MetricBridge, labels: dict[str, str]) -> None:
        self._wrapper = wrapper
        self._labels = labels

    def inc(self, amount: float = 1.0) -> None:
        self._wrapper.inc(self._labels, amount)

    def observe(self, value: float) -> None:
        self._wrapper.observe(self._labels, value)


class MetricBridge:
    """Bridge Prometheus metrics to OTel instruments."""

    def __init__(
        self,
        prom_metric: Counter | Histogram,
        *,
        otel_name: str,
        otel_description: str,
        otel_kind: str,
    ) -> None:
        self._prom_metric = prom_metric
        self._otel_name = otel_name
        self._otel_description = otel_description
        self._otel_kind = otel_kind
        self._otel_instrument = None

    @property
    def prometheus(self) -> Counter | Histogram:
        return self._prom_metric

    def labels(self, **labels: str) -> _BoundMetric:
        return _BoundMetric(self, labels)

    def _ensure_otel_instrument(self):
        if self._otel_instrument is not None:
            return self._otel_instrument
        meter = _get_meter()
        if self._otel_kind == "counter":
            self._otel_instrument = meter.create_counter(self._otel_name, description=self._otel_description)
        elif self._otel_kind == "histogram":
            self._otel_instrument = meter.create_histogram(self._otel_name, description=self._otel_description)
        else:
            msg = f"Unknown metric kind: {self._otel_kind}"
            raise ValueError(msg)
        return self._otel_instrument

    def inc(self, labels: dict[str, str], amount: float) -> None:
        self._prom_metric.labels(**labels).inc(amount)
        self._ensure_otel_instrument().add(amount, labels)

    def observe(self, labels: dict[str, str], value: float) -> None:
        self._prom_metric.labels(**labels).observe(value)
        self._ensure_otel_instrument().record(value, labels)


_SEARCH_LATENCY_PROM = Histogram(
    "json_surf_search_latency_seconds",
    "Boolean and free-text search latency",
    ["collection"],
    buckets=(0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0),
)

_DOCUMENTS_WRITTEN_PROM = Counter(
    "json_surf_documents_written_total",
    "Documents committed to a collection",
    ["collection"],
)

_DELETE_REQUESTS_PROM = Counter(
    "json_surf_delete_requests_total",
    "Delete requests issued against a collection",
    ["collection", "kind"],
)

_ERROR_COUNT_PROM = Counter(
    "json_surf_errors_total",
    "Failed collection operations",
    ["collection", "error_type"],
)

SEARCH_LATENCY = MetricBridge(
    _SEARCH_LATENCY_PROM,
    otel_name="json_surf_search_latency_seconds",
    otel_description="Boolean and free-text search latency",
    otel_kind="histogram",
)

DOCUMENTS_WRITTEN = MetricBridge(
    _DOCUMENTS_WRITTEN_PROM,
    otel_name="json_surf_documents_written_total",
    otel_description="Documents committed to a collection",
    otel_kind="counter",
)

DELETE_REQUESTS = MetricBridge(
    _DELETE_REQUESTS_PROM,
    otel_name="json_surf_delete_requests_total",
    otel_description="Delete requests issued against a collection",
    otel_kind="counter",
)

ERROR_COUNT = MetricBridge(
    _ERROR_COUNT_PROM,
    otel_name="json_surf_errors_total",
    otel_description="Failed collection operations",
    otel_kind="counter",
)


@contextmanager
def track_latency(histogram: MetricBridge, **labels: str) -> Generator[None, None, None]:
    """Context manager to track operation latency."""
    start = time.perf_counter()
    try:
        yield
    finally:
        histogram.labels(**labels).observe(time.perf_counter() - start)
