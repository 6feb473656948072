"""Query descriptors and result models."""

from enum import Enum
from typing import Any, Mapping, Optional

from pydantic import BaseModel, Field

from kvquery.errors import ConfigurationError

Record = dict[str, Any]


class Order(str, Enum):
    """Sort order."""

    ASC = "asc"
    DESC = "desc"


class OrderBy(BaseModel):
    """Sort order applied to a find_many page."""

    field: str = Field(description="Field to sort by")
    direction: Order = Field(default=Order.ASC, description="asc or desc")

    @classmethod
    def parse(cls, value: "OrderBy | Mapping[str, Any] | None") -> Optional["OrderBy"]:
        """Accept an OrderBy, ``{"field": ..., "direction": ...}`` or ``{field: "asc"}``."""
        if value is None or isinstance(value, OrderBy):
            return value
        try:
            if "field" in value:
                return cls.model_validate(value)
            if len(value) != 1:
                raise ConfigurationError(f"order_by takes exactly one field, got {list(value)}")
            field, direction = next(iter(value.items()))
            return cls(field=field, direction=Order(str(direction).lower()))
        except ValueError as e:
            # pydantic.ValidationError is a ValueError
            raise ConfigurationError(f"invalid order_by: {value!r}") from e


class FindManyResult(BaseModel):
    """Page of records from find_many."""

    data: list[Record] = Field(default_factory=list, description="Matched, shaped records")
    has_more: bool = Field(
        default=False,
        description="True when the page is full (take reached); more records may exist",
    )
    cursor: Optional[tuple[Any, ...]] = Field(
        default=None, description="Key of the last scanned entry; pass back to resume"
    )


class BatchResult(BaseModel):
    """Outcome of a bulk write."""

    count: int = Field(default=0, description="Number of records affected")


class ClientState(str, Enum):
    """Client connection lifecycle."""

    UNINITIALIZED = "uninitialized"
    INITIALIZING = "initializing"
    READY = "ready"
    CLOSED = "closed"
