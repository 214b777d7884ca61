"""OpenTelemetry helpers.

Only the API package is required. Without a configured SDK the tracer hands
out non-recording spans, so instrumentation is free in tests.
"""

import hashlib
import logging

from opentelemetry import trace
from opentelemetry.trace import (
    NonRecordingSpan,
    SpanContext,
    TraceFlags,
    set_span_in_context,
)

logger = logging.getLogger(__name__)

_TRACER_NAME = "buildloop"
_tracer = None


def get_tracer():
    """Get or create the OpenTelemetry tracer instance."""
    global _tracer
    if _tracer is None:
        _tracer = trace.get_tracer(_TRACER_NAME)
    return _tracer


def generate_trace_id_from_execution_id(execution_id: str) -> int:
    """Derive a stable 128-bit trace id so replays of an execution share a trace."""
    digest = hashlib.sha256(execution_id.encode("utf-8")).digest()
    return int.from_bytes(digest[:16], "big") or 1


def create_context_with_trace_id(trace_id: int):
    """Create a parent context carrying a fixed trace id."""
    span_context = SpanContext(
        trace_id=trace_id,
        span_id=(trace_id & 0xFFFFFFFFFFFFFFFF) or 1,
        is_remote=True,
        trace_flags=TraceFlags(TraceFlags.SAMPLED),
    )
    return set_span_in_context(NonRecordingSpan(span_context))


def get_parent_span_context_from_execution_context(exec_context):
    parent_context = None
    if exec_context:
        parent_span_context = exec_context.get("_otel_span_context")
        if parent_span_context:
            # Convert SpanContext to Context by wrapping in NonRecordingSpan
            parent_context = set_span_in_context(NonRecordingSpan(parent_span_context))
    return parent_context


def get_span_context_from_execution_context(exec_context):
    if exec_context:
        return exec_context.get("_otel_span_context")
    return None


def set_span_context_in_execution_context(exec_context, span_context):
    if exec_context is not None:
        exec_context["_otel_span_context"] = span_context
