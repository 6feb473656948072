"""Client - store lifecycle and namespace registry.

One client wraps one store connection. Namespaces are materialized on first
access and cached; every namespace operation waits for initialization through
``Client.store()``, which fails fast once the client is closed.
"""

import asyncio
from typing import Optional

from loguru import logger

from kvquery.errors import ConfigurationError
from kvquery.models import ClientState
from kvquery.namespace import Namespace
from kvquery.otel import setup_instrumentation, trace_suffix
from kvquery.schema import SchemaRegistry
from kvquery.settings import Settings, settings as default_settings
from kvquery.shaping import Shaper
from kvquery.store.base import KVStore
from kvquery.store.factory import get_store


def _consume_init_failure(task: asyncio.Task) -> None:
    # Waiters may all be cancelled; the failure is already logged in _open
    if not task.cancelled():
        task.exception()


class Client:
    """Query client over an ordered key-value store.

    Example:
        >>> schema = create_schema().model({"users": {"schema": User}})
        >>> async with Client(schema) as client:
        ...     users = client.get_namespace("users")
        ...     await users.create(data={"name": "Ada"})
    """

    def __init__(
        self,
        schema: SchemaRegistry,
        store: KVStore | None = None,
        config: Settings | None = None,
    ):
        """Create a client. Nothing is opened until ``init()``.

        Args:
            schema: Registry of collections; frozen on init
            store: Store to use (defaults to the backend named in settings)
            config: Settings (defaults to the module settings)
        """
        self.schema = schema
        self._config = config or default_settings
        self._store = store
        self._state = ClientState.UNINITIALIZED
        self._init_task: Optional[asyncio.Task] = None
        self._namespaces: dict[str, Namespace] = {}
        self.shaper = Shaper(schema, self.get_namespace)

    @property
    def state(self) -> ClientState:
        return self._state

    @property
    def config(self) -> Settings:
        return self._config

    async def init(self) -> None:
        """Open the store. Concurrent callers share a single open.

        Raises:
            ConfigurationError: If the client was closed
            StoreError: If the store fails to open (the client stays usable
                for another ``init()``)
        """
        if self._state == ClientState.READY:
            return
        if self._state == ClientState.CLOSED:
            raise ConfigurationError("client is closed; create a new client")

        if self._init_task is None:
            self._state = ClientState.INITIALIZING
            self._init_task = asyncio.create_task(self._open())
            self._init_task.add_done_callback(_consume_init_failure)
        await asyncio.shield(self._init_task)

    async def _open(self) -> None:
        try:
            setup_instrumentation(self._config)
            store = self._store or get_store(self._config)
            await store.open()
        except Exception as e:
            logger.error(f"Failed to initialize kvquery client: {e}{trace_suffix()}")
            self._state = ClientState.UNINITIALIZED
            self._init_task = None
            raise

        self._store = store
        self.schema.freeze()
        self._state = ClientState.READY
        logger.info(
            f"kvquery client ready ({type(store).__name__}, "
            f"collections={self.schema.list_models()})"
        )

    async def store(self) -> KVStore:
        """Return the open store, waiting for an in-flight init.

        Raises:
            ConfigurationError: If the client is uninitialized or closed
        """
        if self._state == ClientState.READY:
            return self._store
        if self._state == ClientState.INITIALIZING and self._init_task is not None:
            await asyncio.shield(self._init_task)
            return await self.store()
        if self._state == ClientState.CLOSED:
            raise ConfigurationError("client is closed")
        raise ConfigurationError("client is not initialized; call 'await client.init()' first")

    async def close(self) -> None:
        """Close the store. Idempotent; the client cannot be reopened."""
        if self._state == ClientState.CLOSED:
            return

        if self._init_task is not None and not self._init_task.done():
            try:
                await asyncio.shield(self._init_task)
            except Exception as e:
                logger.debug(f"Closing client after failed init: {e}")

        was_ready = self._state == ClientState.READY
        self._state = ClientState.CLOSED
        self._init_task = None
        self._namespaces.clear()

        if was_ready and self._store is not None:
            await self._store.close()
        logger.info("kvquery client closed")

    def get_namespace(self, name: str) -> Namespace:
        """Get the namespace for a registered collection.

        Args:
            name: Collection name

        Returns:
            Cached Namespace

        Raises:
            ConfigurationError: If no collection with this name is registered
        """
        namespace = self._namespaces.get(name)
        if namespace is not None:
            return namespace

        if name not in self.schema:
            raise ConfigurationError(f"Schema for collection '{name}' not found", collection=name)

        namespace = Namespace(self, name)
        self._namespaces[name] = namespace
        return namespace

    async def __aenter__(self) -> "Client":
        await self.init()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()


async def create_client(
    schema: SchemaRegistry,
    store: KVStore | None = None,
    config: Settings | None = None,
) -> Client:
    """Create and initialize a client."""
    client = Client(schema, store=store, config=config)
    await client.init()
    return client
