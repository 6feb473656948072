"""Ordered key-value store backends for kvquery."""

from kvquery.store.base import KVStore, StoreEntry
from kvquery.store.factory import get_store
from kvquery.store.memory import MemoryStore
from kvquery.store.packing import pack_key, unpack_key
from kvquery.store.rocks import RocksStore

__all__ = [
    "KVStore",
    "StoreEntry",
    "MemoryStore",
    "RocksStore",
    "get_store",
    "pack_key",
    "unpack_key",
]
