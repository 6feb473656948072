"""Key codec: collection name + identifying values -> store key.

A store key is a tuple ``(collection, value, ...)``. Keys are write-only
addresses; the query layer never parses them back.
"""

from typing import Any, Mapping

from kvquery.errors import ConfigurationError

StoreKey = tuple[Any, ...]

# Types a key part may hold (bool is a subclass of int and is accepted through it)
KEY_PART_TYPES = (str, int, float, bytes)


def encode_key(collection: str, identifying_fields: Mapping[str, Any]) -> StoreKey:
    """Build the store key for a record.

    Values are appended in the order they appear in ``identifying_fields``.
    Every supplied value is used, so a ``where`` naming more than the primary
    key yields a different (longer) key.

    Args:
        collection: Collection name
        identifying_fields: Field -> value, normally just the primary key

    Returns:
        Store key tuple

    Raises:
        ConfigurationError: If no identifying value is given or a value is not
            a valid key part

    Example:
        >>> encode_key("users", {"id": "u1"})
        ('users', 'u1')
    """
    if not identifying_fields:
        raise ConfigurationError(
            "a unique lookup needs the primary key in 'where'", collection=collection
        )

    parts: list[Any] = [collection]
    for field, value in identifying_fields.items():
        if not isinstance(value, KEY_PART_TYPES):
            raise ConfigurationError(
                f"field '{field}' cannot address a record: "
                f"{type(value).__name__} is not a valid key part",
                collection=collection,
            )
        parts.append(value)
    return tuple(parts)


def encode_prefix(collection: str) -> StoreKey:
    """Key prefix enumerating every record of a collection."""
    return (collection,)


def primary_key_where(primary_key: str, value: Any) -> dict[str, Any]:
    """Where clause addressing exactly one record by primary key."""
    return {primary_key: value}
