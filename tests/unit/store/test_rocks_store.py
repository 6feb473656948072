"""Test the RocksDB store adapter against a temporary database."""

import pytest

from kvquery.errors import ConfigurationError, StoreError
from kvquery.settings import Settings
from kvquery.store import MemoryStore, RocksStore, get_store


async def _collect(iterator):
    return [entry async for entry in iterator]


@pytest.mark.asyncio
async def test_point_operations(tmp_path):
    """Test set/get/delete round through RocksDB."""
    store = RocksStore(tmp_path / "db")
    await store.open()
    try:
        await store.set(("users", "u1"), {"id": "u1", "score": 1.5})
        entry = await store.get(("users", "u1"))
        assert entry.key == ("users", "u1")
        assert entry.value == {"id": "u1", "score": 1.5}

        await store.delete(("users", "u1"))
        assert await store.get(("users", "u1")) is None
    finally:
        await store.close()


@pytest.mark.asyncio
async def test_scan_spans_batches(tmp_path):
    """Test prefix scans resume correctly across batch boundaries."""
    store = RocksStore(tmp_path / "db", scan_batch_size=2)
    await store.open()
    try:
        for i in range(5):
            await store.set(("items", i), {"n": i})
        await store.set(("other", 0), {"n": -1})

        entries = await _collect(store.list(("items",)))
        assert [e.value["n"] for e in entries] == [0, 1, 2, 3, 4]
        assert entries[0].key == ("items", 0)

        resumed = await _collect(store.list(("items",), start_after=("items", 1)))
        assert [e.value["n"] for e in resumed] == [2, 3, 4]
    finally:
        await store.close()


@pytest.mark.asyncio
async def test_data_persists_across_reopen(tmp_path):
    """Test records survive close and reopen."""
    path = tmp_path / "db"
    store = RocksStore(path)
    await store.open()
    await store.set(("users", "u1"), {"id": "u1"})
    await store.close()

    reopened = RocksStore(path)
    await reopened.open()
    try:
        assert (await reopened.get(("users", "u1"))).value == {"id": "u1"}
    finally:
        await reopened.close()


@pytest.mark.asyncio
async def test_operations_before_open_raise(tmp_path):
    """Test using an unopened store raises StoreError."""
    store = RocksStore(tmp_path / "db")
    with pytest.raises(StoreError):
        await store.get(("users", "u1"))


def test_factory_selects_backend(tmp_path):
    """Test get_store honours the configured backend."""
    assert isinstance(get_store(Settings(store_backend="memory")), MemoryStore)

    rocks = get_store(Settings(store_backend="rocksdb", db_path=str(tmp_path / "db")))
    assert isinstance(rocks, RocksStore)
    assert rocks.path == tmp_path / "db"

    with pytest.raises(ConfigurationError):
        get_store(Settings(store_backend="postgres"))
