"""Observability module for OpenTelemetry-aligned tracing, metrics, and logging."""

from json_surf.observability.context import get_trace_context, set_trace_context, trace_context
from json_surf.observability.logging import JsonFormatter, configure_logging
from json_surf.observability.metrics import (
    DELETE_REQUESTS,
    DOCUMENTS_WRITTEN,
    ERROR_COUNT,
    SEARCH_LATENCY,
    init_metrics,
    track_latency,
)
from json_surf.observability.tracing import create_span, get_tracer, init_tracing


__all__ = [
    "DELETE_REQUESTS",
    "DOCUMENTS_WRITTEN",
    "ERROR_COUNT",
    "SEARCH_LATENCY",
    "JsonFormatter",
    "configure_logging",
    "create_span",
    "get_trace_context",
    "get_tracer",
    "init_metrics",
    "init_tracing",
    "set_trace_context",
    "trace_context",
    "track_latency",
]
