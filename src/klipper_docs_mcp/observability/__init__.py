"""Observability: structured logging, Prometheus metrics and OpenTelemetry spans."""

from klipper_docs_mcp.observability.logging import JsonFormatter, configure_logging
from klipper_docs_mcp.observability.metrics import (
    GIT_SYNC_COUNT,
    INDEX_BUILD_SECONDS,
    INDEX_DOC_COUNT,
    REQUEST_COUNT,
    REQUEST_LATENCY,
    SEARCH_LATENCY,
    get_metrics,
    get_metrics_content_type,
    track_latency,
)
from klipper_docs_mcp.observability.tracing import create_span, init_tracing


__all__ = [
    "GIT_SYNC_COUNT",
    "INDEX_BUILD_SECONDS",
    "INDEX_DOC_COUNT",
    "REQUEST_COUNT",
    "REQUEST_LATENCY",
    "SEARCH_LATENCY",
    "JsonFormatter",
    "configure_logging",
    "create_span",
    "get_metrics",
    "get_metrics_content_type",
    "init_tracing",
    "track_latency",
]
