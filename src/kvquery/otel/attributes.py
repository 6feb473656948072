"""Span attribute management for namespace operations."""

from typing import Any

from loguru import logger
from opentelemetry import trace


def set_operation_attributes(collection: str, operation: str, **extra: Any) -> None:
    """Set query attributes on the current span.

    Span attributes apply only to the current span and its children.
    None values are skipped; other values are stringified unless they are
    already OTEL primitives.

    Args:
        collection: Collection the operation runs against
        operation: Operation name (create, find_many, ...)
        **extra: Additional attributes, prefixed with ``kvquery.``

    Example:
        >>> set_operation_attributes("users", "find_many", take=10)
    """
    try:
        current_span = trace.get_current_span()
        if not current_span.is_recording():
            return

        current_span.set_attribute("kvquery.collection", collection)
        current_span.set_attribute("kvquery.operation", operation)
        for key, value in extra.items():
            if value is None:
                continue
            if not isinstance(value, (str, bool, int, float)):
                value = str(value)
            current_span.set_attribute(f"kvquery.{key}", value)

    except Exception as e:
        logger.debug(f"Failed to set operation attributes: {e}")
