"""Observability module for OpenTelemetry-aligned tracing, metrics, and logging."""

from index_query_tool.observability.context import get_trace_context
from index_query_tool.observability.logging import JsonFormatter, configure_logging
from index_query_tool.observability.metrics import (
    DOCUMENTS_PRINTED,
    QUERY_COUNT,
    QUERY_LATENCY,
    track_latency,
    track_run,
)
from index_query_tool.observability.tracing import create_span, get_tracer, init_tracing


__all__ = [
    "DOCUMENTS_PRINTED",
    "QUERY_COUNT",
    "QUERY_LATENCY",
    "JsonFormatter",
    "configure_logging",
    "create_span",
    "get_trace_context",
    "get_tracer",
    "init_tracing",
    "track_latency",
    "track_run",
]
