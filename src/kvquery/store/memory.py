"""In-memory ordered store.

Keeps packed keys in a sorted list and values as orjson bytes, so reads
always return fresh copies and ordering matches the RocksDB backend.
Suitable for development, testing, and single-process use.
"""

import bisect
from typing import Any, AsyncIterator

import orjson
from loguru import logger

from kvquery.errors import StoreError
from kvquery.keys import StoreKey
from kvquery.store.base import KVStore, StoreEntry
from kvquery.store.packing import pack_key


class MemoryStore(KVStore):
    """Sorted in-memory key-value store.

    Performance: O(log n) point reads, O(n) inserts/deletes (list shifting)
    Scans iterate over a snapshot of matching keys, so writes during a scan
    (e.g. delete_many) are safe.
    """

    def __init__(self):
        self._keys: list[bytes] = []
        self._entries: dict[bytes, tuple[StoreKey, bytes]] = {}
        self._closed = False

    async def open(self) -> None:
        self._closed = False
        logger.info("MemoryStore opened")

    async def close(self) -> None:
        self._closed = True
        logger.info(f"MemoryStore closed ({len(self._keys)} keys)")

    def _check_open(self) -> None:
        if self._closed:
            raise StoreError("memory store is closed")

    async def get(self, key: StoreKey) -> StoreEntry | None:
        self._check_open()
        item = self._entries.get(pack_key(key))
        if item is None:
            return None
        stored_key, payload = item
        return StoreEntry(stored_key, orjson.loads(payload))

    async def set(self, key: StoreKey, value: dict[str, Any]) -> None:
        self._check_open()
        packed = pack_key(key)
        if packed not in self._entries:
            bisect.insort(self._keys, packed)
        self._entries[packed] = (tuple(key), orjson.dumps(value))

    async def delete(self, key: StoreKey) -> None:
        self._check_open()
        packed = pack_key(key)
        if self._entries.pop(packed, None) is None:
            return
        index = bisect.bisect_left(self._keys, packed)
        if index < len(self._keys) and self._keys[index] == packed:
            del self._keys[index]

    async def list(
        self, prefix: StoreKey, *, start_after: StoreKey | None = None
    ) -> AsyncIterator[StoreEntry]:
        self._check_open()
        packed_prefix = pack_key(prefix)
        start = bisect.bisect_left(self._keys, packed_prefix)
        if start_after is not None:
            start = max(start, bisect.bisect_right(self._keys, pack_key(start_after)))

        snapshot = []
        for packed in self._keys[start:]:
            if not packed.startswith(packed_prefix):
                break
            snapshot.append(packed)

        for packed in snapshot:
            item = self._entries.get(packed)
            if item is None:
                # Deleted after the snapshot was taken
                continue
            stored_key, payload = item
            yield StoreEntry(stored_key, orjson.loads(payload))

    def __len__(self) -> int:
        return len(self._keys)
