"""Factory for key-value store backends.

Creates the appropriate KVStore implementation based on configuration.
"""

from loguru import logger

from kvquery.errors import ConfigurationError
from kvquery.settings import Settings, settings as default_settings
from kvquery.store.base import KVStore
from kvquery.store.memory import MemoryStore
from kvquery.store.rocks import RocksStore


def get_store(config: Settings | None = None) -> KVStore:
    """Create a store from settings.

    Args:
        config: Settings to read (defaults to the module settings)

    Returns:
        KVStore implementation based on KVQUERY_STORE_BACKEND

    Raises:
        ConfigurationError: If the backend name is invalid
    """
    config = config or default_settings
    backend = config.store_backend.lower()

    if backend == "memory":
        logger.info("Initializing MemoryStore")
        return MemoryStore()
    if backend == "rocksdb":
        logger.info(f"Initializing RocksStore at {config.db_path}")
        return RocksStore(config.db_path, scan_batch_size=config.scan_batch_size)

    raise ConfigurationError(
        f"Invalid store backend: {backend}. Valid options: memory, rocksdb"
    )
