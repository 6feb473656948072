"""OpenTelemetry instrumentation for kvquery.

Namespace operations run inside spans named ``kvquery.<collection>.<operation>``.
Without a configured tracer provider the spans are no-ops.
Disabled by default - enable via settings.otel.enabled=True.
"""

from kvquery.otel.attributes import set_operation_attributes
from kvquery.otel.context import get_current_trace_context, trace_suffix
from kvquery.otel.setup import setup_instrumentation

__all__ = [
    "setup_instrumentation",
    "set_operation_attributes",
    "get_current_trace_context",
    "trace_suffix",
]
