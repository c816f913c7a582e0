"""OpenTelemetry spans around tool calls and index builds."""

from __future__ import annotations

from contextlib import contextmanager
import logging
from typing import TYPE_CHECKING, Any

from opentelemetry import trace
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.trace import SpanKind, Status, StatusCode

from klipper_docs_mcp.observability.context import set_trace_context


if TYPE_CHECKING:
    from collections.abc import Generator

    from opentelemetry.trace import Span, Tracer

logger = logging.getLogger(__name__)

INSTRUMENTATION_NAME = "klipper_docs_mcp"

_tracer_holder: dict[str, Tracer | None] = {"tracer": None}


def init_tracing(service_name: str, service_version: str | None = None) -> TracerProvider:
    """Install an SDK tracer provider tagged with the server name and version."""
    attributes = {"service.name": service_name}
    if service_version:
        attributes["service.version"] = service_version
    provider = TracerProvider(resource=Resource.create(attributes))
    trace.set_tracer_provider(provider)
    _tracer_holder["tracer"] = provider.get_tracer(INSTRUMENTATION_NAME)
    logger.debug("Tracing initialized for %s %s", service_name, service_version or "")
    return provider


def _current_tracer() -> Tracer:
    tracer = _tracer_holder["tracer"]
    if tracer is None:
        tracer = _tracer_holder["tracer"] = trace.get_tracer(INSTRUMENTATION_NAME)
    return tracer


@contextmanager
def create_span(
    name: str,
    kind: SpanKind = SpanKind.INTERNAL,
    attributes: dict[str, Any] | None = None,
) -> Generator[Span, None, None]:
    """Run the block inside a span and correlate log lines with it.

    Exceptions get an ERROR status and an exception event, then propagate.
    """
    with _current_tracer().start_as_current_span(
        name,
        kind=kind,
        attributes=attributes,
        record_exception=False,
        set_status_on_exception=False,
    ) as span:
        span_context = span.get_span_context()
        if span_context.is_valid:
            set_trace_context(format(span_context.trace_id, "032x"), format(span_context.span_id, "016x"))
        try:
            yield span
        except Exception as exc:
            span.set_status(Status(StatusCode.ERROR, str(exc)))
            span.record_exception(exc)
            raise
