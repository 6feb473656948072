"""Trace ids of the active span, for correlating errors and logs."""

from opentelemetry import trace


def get_current_trace_context() -> dict[str, str | None]:
    """Hex trace and span ids of the recording span, or None for both."""
    span_context = trace.get_current_span().get_span_context()
    if not span_context.is_valid:
        return {"trace_id": None, "span_id": None}
    return {
        "trace_id": format(span_context.trace_id, "032x"),
        "span_id": format(span_context.span_id, "016x"),
    }


def trace_suffix() -> str:
    """Log suffix naming the active trace, empty outside a span.

    Example:
        >>> logger.error(f"relation lookup failed{trace_suffix()}")
        # relation lookup failed [trace_id=4bf92f3577b34da6a3ce929d0e0e4736]
    """
    trace_id = get_current_trace_context()["trace_id"]
    return f" [trace_id={trace_id}]" if trace_id else ""
