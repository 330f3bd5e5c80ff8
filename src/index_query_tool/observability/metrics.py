"""Prometheus metrics for query runs."""

from __future__ import annotations

from contextlib import contextmanager
import time
from typing import TYPE_CHECKING

from prometheus_client import Counter, Histogram


if TYPE_CHECKING:
    from collections.abc import Generator


QUERY_COUNT = Counter(
    "index_query_runs_total",
    "Total query tool invocations",
    ["mode", "status"],
)

QUERY_LATENCY = Histogram(
    "index_query_latency_seconds",
    "Latency of one query tool invocation",
    ["mode"],
    buckets=(0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0),
)

DOCUMENTS_PRINTED = Counter(
    "index_query_documents_printed_total",
    "Documents written to the output sink",
    ["mode"],
)


@contextmanager
def track_latency(histogram: Histogram, **labels: str) -> Generator[None, None, None]:
    """Context manager to track operation latency."""
    start = time.perf_counter()
    try:
        yield
    finally:
        histogram.labels(**labels).observe(time.perf_counter() - start)


@contextmanager
def track_run(mode: str) -> Generator[None, None, None]:
    """Count one run of ``mode`` by outcome and record its latency."""
    status = "error"
    with track_latency(QUERY_LATENCY, mode=mode):
        try:
            yield
            status = "ok"
        finally:
            QUERY_COUNT.labels(mode=mode, status=status).inc()
