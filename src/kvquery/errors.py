"""Error taxonomy for the query layer.

- ValidationError: the model rejected input on create/update
- ConfigurationError: misuse (client not initialized, unknown collection, bad key)
- StoreError: failures raised by store adapters, propagated unchanged

Absence is never an error: point lookups return None.
"""

from typing import Any

from kvquery.otel.context import get_current_trace_context


class KVQueryError(Exception):
    """Base error carrying the collection and operation involved.

    Errors raised inside a namespace operation also record the ids of its
    ``kvquery.<collection>.<operation>`` span.
    """

    def __init__(
        self,
        message: str,
        collection: str | None = None,
        operation: str | None = None,
    ):
        self.message = message
        self.collection = collection
        self.operation = operation
        context = get_current_trace_context()
        self.trace_id = context["trace_id"]
        self.span_id = context["span_id"]
        super().__init__(self._format())

    def _format(self) -> str:
        if self.collection and self.operation:
            return f"{self.collection}.{self.operation}: {self.message}"
        if self.collection:
            return f"{self.collection}: {self.message}"
        return self.message


class ValidationError(KVQueryError):
    """Schema validation failed; nothing was written."""

    def __init__(
        self,
        message: str,
        collection: str | None = None,
        operation: str | None = None,
        errors: list[dict[str, Any]] | None = None,
    ):
        self.errors = errors or []
        super().__init__(message, collection=collection, operation=operation)


class ConfigurationError(KVQueryError):
    """Raised eagerly for usage errors: lifecycle, unknown names, invalid keys."""


class StoreError(KVQueryError):
    """Opaque failure from the underlying key-value store."""
