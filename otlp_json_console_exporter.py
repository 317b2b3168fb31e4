"""
Span exporter that prints each finished trace as one OTLP/JSON line.
"""

import collections
import json
import sys
import threading
from typing import Sequence, TextIO

from opentelemetry.sdk.trace import ReadableSpan
from opentelemetry.sdk.trace.export import SpanExporter, SpanExportResult

__all__ = ["OTLPJsonConsoleExporter", "encode_value", "encode_span"]


def encode_value(value):
    """OTLP AnyValue for a span or resource attribute."""
    if isinstance(value, bool):
        return {"boolValue": value}
    if isinstance(value, int):
        return {"intValue": str(value)}
    if isinstance(value, float):
        return {"doubleValue": value}
    if isinstance(value, (list, tuple)):
        return {"arrayValue": {"values": [encode_value(v) for v in value]}}
    return {"stringValue": str(value)}


def _encode_attributes(items):
    return [{"key": k, "value": encode_value(v)} for k, v in items]


def encode_span(span: ReadableSpan) -> dict:
    parent_span_id = ""
    if span.parent is not None and span.parent.is_valid:
        parent_span_id = f"{span.parent.span_id:016x}"
    return {
        "traceId": f"{span.context.trace_id:032x}",
        "spanId": f"{span.context.span_id:016x}",
        "parentSpanId": parent_span_id,
        "name": span.name,
        "kind": int(span.kind.value),
        "startTimeUnixNano": str(span.start_time),
        "endTimeUnixNano": str(span.end_time),
        "status": {
            "code": int(span.status.status_code.value),
            "message": span.status.description or "",
        },
        "attributes": _encode_attributes((span.attributes or {}).items()),
    }


def _is_local_root(span: ReadableSpan) -> bool:
    parent = span.parent
    return parent is None or not parent.is_valid or parent.is_remote


class OTLPJsonConsoleExporter(SpanExporter):
    """
    Buffers spans per trace id and writes the whole trace once its
    process-local root span has ended.

    Works behind both SimpleSpanProcessor and BatchSpanProcessor. Traces
    still buffered at shutdown are written as they are.
    """

    def __init__(self, out: TextIO | None = None):
        self._out = out
        self._lock = threading.Lock()
        self._pending: dict[int, list[ReadableSpan]] = collections.defaultdict(list)

    @property
    def out(self) -> TextIO:
        # resolved late so a replaced sys.stdout is honoured
        return self._out if self._out is not None else sys.stdout

    def export(self, spans: Sequence[ReadableSpan]) -> SpanExportResult:
        with self._lock:
            for span in spans:
                trace_id = span.context.trace_id
                self._pending[trace_id].append(span)
                if _is_local_root(span):
                    self._write_trace(trace_id)
        return SpanExportResult.SUCCESS

    def force_flush(self, timeout_millis: int = 30000) -> bool:
        # incomplete traces stay buffered until their root span ends
        return True

    def shutdown(self) -> None:
        with self._lock:
            for trace_id in list(self._pending):
                self._write_trace(trace_id)

    def _write_trace(self, trace_id: int) -> None:
        spans = self._pending.pop(trace_id, [])
        if not spans:
            return

        # resource -> (scope name, scope version) -> spans
        grouped = collections.defaultdict(lambda: collections.defaultdict(list))
        for span in spans:
            resource_key = tuple(sorted(span.resource.attributes.items()))
            scope = span.instrumentation_scope
            scope_key = (scope.name, scope.version) if scope is not None else ("", None)
            grouped[resource_key][scope_key].append(span)

        payload = {
            "resourceSpans": [
                {
                    "resource": {"attributes": _encode_attributes(resource_key)},
                    "scopeSpans": [
                        {
                            "scope": {"name": name, "version": version or ""},
                            "spans": [encode_span(s) for s in scope_spans],
                        }
                        for (name, version), scope_spans in scopes.items()
                    ],
                }
                for resource_key, scopes in grouped.items()
            ]
        }
        self.out.write(json.dumps(payload, separators=(",", ":")) + "\n")
        self.out.flush()
