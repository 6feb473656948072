"""Abstract ordered key-value store interface.

Defines the contract the query layer relies on, with multiple backend
implementations:
- MemoryStore: in-process sorted map (dev/testing)
- RocksStore: RocksDB via rocksdict (production)
"""

from abc import ABC, abstractmethod
from typing import Any, AsyncIterator, NamedTuple

from kvquery.keys import StoreKey


class StoreEntry(NamedTuple):
    """A key and its decoded value."""

    key: StoreKey
    value: dict[str, Any]


class KVStore(ABC):
    """Abstract interface for an ordered key-value store.

    Keys are tuples of key parts ordered lexicographically part by part.
    Values are JSON-compatible dicts.

    Storage pattern:
        (collection, primary_key) -> record
    """

    async def open(self) -> None:
        """Open the underlying connection. Default: nothing to open."""

    async def close(self) -> None:
        """Release the underlying connection. Default: nothing to release."""

    @abstractmethod
    async def get(self, key: StoreKey) -> StoreEntry | None:
        """Point lookup.

        Args:
            key: Store key

        Returns:
            Entry if found, None otherwise
        """
        pass

    @abstractmethod
    async def set(self, key: StoreKey, value: dict[str, Any]) -> None:
        """Store value at key, replacing any previous value.

        Args:
            key: Store key
            value: Record to store
        """
        pass

    @abstractmethod
    async def delete(self, key: StoreKey) -> None:
        """Delete key. Deleting a missing key is not an error.

        Args:
            key: Store key
        """
        pass

    @abstractmethod
    def list(
        self, prefix: StoreKey, *, start_after: StoreKey | None = None
    ) -> AsyncIterator[StoreEntry]:
        """Scan entries sharing a key prefix, ascending key order.

        Args:
            prefix: Key prefix (e.g. ``("users",)``)
            start_after: Resume strictly after this key

        Returns:
            Async iterator of entries
        """
        pass
