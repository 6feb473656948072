"""RocksDB-backed ordered store via rocksdict (Rust bindings).

Keys are packed with the order-preserving tuple encoding and values are
orjson bytes. rocksdict calls are blocking, so every call is pushed to a
worker thread; prefix scans fetch entries in batches and resume by seeking
past the last key of the previous batch.
"""

import asyncio
from pathlib import Path
from typing import Any, AsyncIterator, Optional

import orjson
import rocksdict
from loguru import logger

from kvquery.errors import StoreError
from kvquery.keys import StoreKey
from kvquery.settings import settings
from kvquery.store.base import KVStore, StoreEntry
from kvquery.store.packing import pack_key, unpack_key


class RocksStore(KVStore):
    """RocksDB key-value store.

    Storage layout:
        {path}/  RocksDB directory, raw mode (bytes keys and values)

    Example:
        >>> store = RocksStore("./data/kvquery.db")
        >>> await store.open()
        >>> await store.set(("users", "u1"), {"id": "u1", "name": "Ada"})
    """

    def __init__(self, path: str | Path, scan_batch_size: int | None = None):
        """Initialize RocksDB store.

        Args:
            path: Database directory
            scan_batch_size: Entries fetched per thread hop during scans
        """
        self.path = Path(path).expanduser()
        self.scan_batch_size = scan_batch_size or settings.scan_batch_size
        self._db: Optional[rocksdict.Rdict] = None

    def _open_sync(self) -> rocksdict.Rdict:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        return rocksdict.Rdict(str(self.path), rocksdict.Options(raw_mode=True))

    async def open(self) -> None:
        if self._db is not None:
            return
        try:
            self._db = await asyncio.to_thread(self._open_sync)
        except Exception as e:
            logger.error(f"Failed to open RocksDB at {self.path}: {e}")
            raise StoreError(f"failed to open RocksDB at {self.path}: {e}") from e
        logger.info(f"RocksStore opened at {self.path}")

    async def close(self) -> None:
        if self._db is None:
            return
        db, self._db = self._db, None
        await asyncio.to_thread(db.close)
        logger.info(f"RocksStore closed at {self.path}")

    def _require_db(self) -> rocksdict.Rdict:
        if self._db is None:
            raise StoreError(f"RocksDB store at {self.path} is not open")
        return self._db

    async def get(self, key: StoreKey) -> StoreEntry | None:
        db = self._require_db()
        payload = await asyncio.to_thread(db.get, pack_key(key))
        if payload is None:
            return None
        return StoreEntry(tuple(key), orjson.loads(payload))

    async def set(self, key: StoreKey, value: dict[str, Any]) -> None:
        db = self._require_db()
        await asyncio.to_thread(db.put, pack_key(key), orjson.dumps(value))

    async def delete(self, key: StoreKey) -> None:
        db = self._require_db()
        await asyncio.to_thread(db.delete, pack_key(key))

    def _read_batch(
        self, packed_prefix: bytes, seek_to: bytes, exclusive: bool
    ) -> list[tuple[bytes, bytes]]:
        """Read up to scan_batch_size entries under prefix starting at seek_to."""
        db = self._require_db()
        it = db.iter()
        it.seek(seek_to)
        if exclusive and it.valid() and it.key() == seek_to:
            it.next()

        batch: list[tuple[bytes, bytes]] = []
        while it.valid() and len(batch) < self.scan_batch_size:
            packed = it.key()
            if not packed.startswith(packed_prefix):
                break
            batch.append((packed, it.value()))
            it.next()
        return batch

    async def list(
        self, prefix: StoreKey, *, start_after: StoreKey | None = None
    ) -> AsyncIterator[StoreEntry]:
        packed_prefix = pack_key(prefix)
        seek_to, exclusive = packed_prefix, False
        if start_after is not None:
            packed_after = pack_key(start_after)
            if packed_after >= packed_prefix:
                seek_to, exclusive = packed_after, True

        while True:
            batch = await asyncio.to_thread(self._read_batch, packed_prefix, seek_to, exclusive)
            for packed, payload in batch:
                yield StoreEntry(unpack_key(packed), orjson.loads(payload))
            if len(batch) < self.scan_batch_size:
                return
            seek_to, exclusive = batch[-1][0], True
