"""Prometheus metrics for tool calls, search and indexing."""

from __future__ import annotations

from contextlib import contextmanager
import time
from typing import TYPE_CHECKING

from prometheus_client import CONTENT_TYPE_LATEST, Counter, Gauge, Histogram, generate_latest


if TYPE_CHECKING:
    from collections.abc import Generator


REQUEST_LATENCY = Histogram(
    "mcp_request_latency_seconds",
    "Tool call latency in seconds",
    ["tool"],
    buckets=(0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0),
)

REQUEST_COUNT = Counter(
    "mcp_requests_total",
    "Total MCP tool calls",
    ["tool", "status"],
)

SEARCH_LATENCY = Histogram(
    "search_latency_seconds",
    "Search query latency",
    buckets=(0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5),
)

INDEX_DOC_COUNT = Gauge(
    "index_document_count",
    "Documents in the active index",
)

INDEX_BUILD_SECONDS = Histogram(
    "index_build_seconds",
    "Full index build duration",
    buckets=(0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0),
)

GIT_SYNC_COUNT = Counter(
    "git_sync_total",
    "Repository sync attempts",
    ["status"],
)


@contextmanager
def track_latency(histogram: Histogram, **labels: str) -> Generator[None, None, None]:
    """Context manager to track operation latency."""
    target = histogram.labels(**labels) if labels else histogram
    start = time.perf_counter()
    try:
        yield
    finally:
        target.observe(time.perf_counter() - start)


def get_metrics() -> bytes:
    """Generate Prometheus metrics output."""
    return generate_latest()


def get_metrics_content_type() -> str:
    return CONTENT_TYPE_LATEST
