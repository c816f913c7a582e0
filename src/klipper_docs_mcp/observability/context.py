"""Trace and span ids for the current task, stamped onto every JSON log line.

`create_span` points these at the active OpenTelemetry span, so log lines and
exported spans share one trace id.
"""

from __future__ import annotations

from contextvars import ContextVar
from uuid import uuid4


_log_correlation: ContextVar[dict[str, str] | None] = ContextVar("klipper_log_correlation", default=None)


def get_trace_context() -> dict[str, str]:
    """Ids for the current task; random ones are minted outside any span."""
    ids = _log_correlation.get()
    if not ids:
        trace_id = uuid4().hex
        ids = {"trace_id": trace_id, "span_id": trace_id[16:]}
        _log_correlation.set(ids)
    return ids


def set_trace_context(trace_id: str, span_id: str) -> None:
    _log_correlation.set({"trace_id": trace_id, "span_id": span_id})
