"""Collection namespace - CRUD operations over one key space.

Every record of collection ``users`` lives at ``("users", <primary key>)``.
Point operations address that key directly; everything else is a prefix scan
over ``("users",)`` filtered in process by the where-clause predicates.

Cascades (nested create/upsert, delete of related records) are not
transactional: a failure partway leaves earlier steps committed.
"""

from contextlib import aclosing, contextmanager
from typing import TYPE_CHECKING, Any, Iterator, Mapping, Optional

import orjson
from loguru import logger
from opentelemetry import trace

from kvquery.errors import ConfigurationError
from kvquery.keys import StoreKey, encode_key, encode_prefix, primary_key_where
from kvquery.models import BatchResult, FindManyResult, Order, OrderBy, Record
from kvquery.otel import set_operation_attributes
from kvquery.predicates import compile_where
from kvquery.schema import Cardinality, ModelDefinition
from kvquery.settings import Settings
from kvquery.shaping import apply_select
from kvquery.utils import new_id, utc_timestamp

if TYPE_CHECKING:
    from kvquery.client import Client

tracer = trace.get_tracer("kvquery")


def _sort_key(value: Any) -> tuple:
    """Total order over record values: None sorts after everything else."""
    if value is None:
        return (1, 0, 0)
    if isinstance(value, bool):
        return (0, 2, value)
    if isinstance(value, (int, float)):
        return (0, 1, value)
    if isinstance(value, str):
        return (0, 3, value)
    return (0, 4, orjson.dumps(value, option=orjson.OPT_SORT_KEYS))


class Namespace:
    """CRUD façade for a single collection.

    Obtained from ``Client.get_namespace(name)``; holds a reference to the
    client, never its own store connection.

    Example:
        >>> users = client.get_namespace("users")
        >>> user = await users.create(data={"name": "Ada", "email": "ada@example.com"})
        >>> await users.find_unique(where={"id": user["id"]}, include={"orders": True})
    """

    def __init__(self, client: "Client", name: str):
        self._client = client
        self.name = name

    def __repr__(self) -> str:
        return f"Namespace({self.name!r})"

    @property
    def definition(self) -> ModelDefinition:
        definition = self._client.schema.get_definition(self.name)
        if definition is None:
            raise ConfigurationError(f"Schema for collection '{self.name}' not found", collection=self.name)
        return definition

    @property
    def primary_key(self) -> str:
        return self.definition.primary_key

    @property
    def config(self) -> Settings:
        """Settings of the owning client."""
        return self._client.config

    @contextmanager
    def _span(self, operation: str, **attributes: Any) -> Iterator[None]:
        with tracer.start_as_current_span(f"kvquery.{self.name}.{operation}"):
            set_operation_attributes(self.name, operation, **attributes)
            yield

    def _key(self, where: Mapping[str, Any], operation: str) -> StoreKey:
        try:
            return encode_key(self.name, where)
        except ConfigurationError as e:
            raise ConfigurationError(e.message, collection=self.name, operation=operation) from e

    def _split_relations(self, data: Mapping[str, Any]) -> tuple[dict[str, Any], dict[str, Any]]:
        """Separate model fields from nested relation payloads."""
        relations = self.definition.relations
        fields = {k: v for k, v in data.items() if k not in relations}
        nested = {k: v for k, v in data.items() if k in relations}
        return fields, nested

    async def _read(self, where: Mapping[str, Any], operation: str) -> tuple[StoreKey, Optional[Record]]:
        store = await self._client.store()
        key = self._key(where, operation)
        entry = await store.get(key)
        return key, (entry.value if entry else None)

    async def create(
        self,
        *,
        data: Mapping[str, Any],
        select: Optional[Mapping[str, bool]] = None,
        include: Optional[Mapping[str, bool]] = None,
    ) -> Record:
        """Validate and persist a new record.

        A missing primary key is synthesized (UUID4 string) and the creation
        timestamp is set when the model defines it. List values under a
        one-to-many relation name are created on the related collection with
        the foreign key injected, after the parent is written.

        Args:
            data: Record fields, optionally with nested relation lists
            select: Field allow-list for the returned record
            include: Relations to resolve on the returned record

        Returns:
            Shaped record

        Raises:
            ValidationError: If data doesn't match the model (nothing written)
        """
        with self._span("create"):
            store = await self._client.store()
            definition = self.definition
            fields, nested = self._split_relations(data)

            pk = definition.primary_key
            if fields.get(pk) is None:
                fields[pk] = new_id()
            created_at = self.config.created_at_field
            if definition.has_field(created_at) and fields.get(created_at) is None:
                fields[created_at] = utc_timestamp()

            record = definition.validate_data(fields, operation="create")
            if pk not in record:
                # Model does not declare its key field; keep the synthesized one
                record[pk] = fields[pk]

            key = self._key(primary_key_where(pk, record[pk]), "create")
            await store.set(key, record)
            logger.debug(f"Created {self.name} {record[pk]!r}")

            related = await self._create_nested(record, nested)
            return await self._client.shaper.shape({**record, **related}, self.name, select, include)

    async def _create_nested(self, record: Record, nested: Mapping[str, Any]) -> dict[str, list[Record]]:
        related: dict[str, list[Record]] = {}
        relations = self.definition.relations
        for name, items in nested.items():
            relation = relations[name]
            if relation.cardinality != Cardinality.MANY or not isinstance(items, list):
                logger.debug(f"Skipping nested '{self.name}.{name}' on create (not a list of records)")
                continue
            target = self._client.get_namespace(relation.target)
            local_value = record.get(relation.local_key)
            created = []
            for item in items:
                created.append(await target.create(data={**item, relation.foreign_key: local_value}))
            related[name] = created
            logger.debug(f"Created {len(created)} nested {relation.target} for {self.name}.{name}")
        return related

    async def find_unique(
        self,
        *,
        where: Mapping[str, Any],
        select: Optional[Mapping[str, bool]] = None,
        include: Optional[Mapping[str, bool]] = None,
    ) -> Optional[Record]:
        """Fetch one record by primary key.

        Args:
            where: Primary key clause, e.g. ``{"id": "u1"}``
            select: Field allow-list
            include: Relations to resolve

        Returns:
            Shaped record, or None when absent
        """
        with self._span("find_unique"):
            _, record = await self._read(where, "find_unique")
            if record is None:
                return None
            return await self._client.shaper.shape(record, self.name, select, include)

    async def find_many(
        self,
        *,
        where: Optional[Mapping[str, Any]] = None,
        select: Optional[Mapping[str, bool]] = None,
        include: Optional[Mapping[str, bool]] = None,
        take: Optional[int] = None,
        skip: int = 0,
        order_by: OrderBy | Mapping[str, Any] | None = None,
        cursor: Optional[StoreKey] = None,
    ) -> FindManyResult:
        """Scan the collection in key order and return a page of matches.

        ``skip`` counts matching records, not raw entries. ``order_by`` sorts
        the page after pagination. ``has_more`` is true whenever a non-empty
        page is full, so it can be true with nothing left to read.

        Args:
            where: Filter clause
            select: Field allow-list
            include: Relations to resolve
            take: Page size (None for all)
            skip: Matches to skip before collecting
            order_by: ``OrderBy`` or ``{field: "asc" | "desc"}``
            cursor: Resume strictly after this key (``FindManyResult.cursor``)

        Returns:
            FindManyResult
        """
        order = OrderBy.parse(order_by)
        if take is not None and take < 0:
            raise ConfigurationError(f"take must be >= 0, got {take}", collection=self.name, operation="find_many")
        if skip < 0:
            raise ConfigurationError(f"skip must be >= 0, got {skip}", collection=self.name, operation="find_many")

        with self._span("find_many", take=take, skip=skip):
            store = await self._client.store()
            predicate = compile_where(where)
            page: list[tuple[Record, Record]] = []
            matched = 0
            last_key: Optional[StoreKey] = None

            if take != 0:
                async with aclosing(store.list(encode_prefix(self.name), start_after=cursor)) as entries:
                    async for entry in entries:
                        last_key = entry.key
                        if not predicate.evaluate(entry.value):
                            continue
                        matched += 1
                        if matched <= skip:
                            continue
                        shaped = await self._client.shaper.shape(entry.value, self.name, select, include)
                        page.append((entry.value, shaped))
                        if take is not None and len(page) >= take:
                            break

            if order is not None:
                page.sort(
                    key=lambda pair: _sort_key(pair[0].get(order.field)),
                    reverse=order.direction == Order.DESC,
                )

            data = [shaped for _, shaped in page]
            logger.debug(f"find_many {self.name}: {len(data)} record(s), {matched} match(es) scanned")
            return FindManyResult(
                data=data,
                has_more=bool(take) and len(data) == take,
                cursor=last_key,
            )

    async def update(
        self,
        *,
        where: Mapping[str, Any],
        data: Mapping[str, Any],
        select: Optional[Mapping[str, bool]] = None,
        include: Optional[Mapping[str, bool]] = None,
    ) -> Optional[Record]:
        """Merge data over an existing record and persist it at the same key.

        The primary key never changes. List values under a one-to-many
        relation name are upserted on the related collection.

        Args:
            where: Primary key clause
            data: Fields to change, optionally with nested relation lists
            select: Field allow-list
            include: Relations to resolve

        Returns:
            Shaped merged record, or None when the record does not exist

        Raises:
            ValidationError: If the merged record doesn't match the model
        """
        with self._span("update"):
            key, existing = await self._read(where, "update")
            if existing is None:
                return None

            definition = self.definition
            fields, nested = self._split_relations(data)
            pk = definition.primary_key
            if pk in fields and fields[pk] != existing.get(pk):
                logger.warning(f"Ignoring primary key change on {self.name} {existing.get(pk)!r}")

            merged = {**existing, **fields, pk: existing.get(pk)}
            updated_at = self.config.updated_at_field
            if definition.has_field(updated_at):
                merged[updated_at] = utc_timestamp()

            record = definition.validate_data(merged, operation="update")
            if pk not in record:
                record[pk] = existing.get(pk)

            store = await self._client.store()
            await store.set(key, record)
            logger.debug(f"Updated {self.name} {record[pk]!r}")

            related = await self._upsert_nested(record, nested)
            return await self._client.shaper.shape({**record, **related}, self.name, select, include)

    async def _upsert_nested(self, record: Record, nested: Mapping[str, Any]) -> dict[str, list[Record]]:
        related: dict[str, list[Record]] = {}
        relations = self.definition.relations
        for name, items in nested.items():
            relation = relations[name]
            if relation.cardinality != Cardinality.MANY or not isinstance(items, list):
                logger.debug(f"Skipping nested '{self.name}.{name}' on update (not a list of records)")
                continue
            target = self._client.get_namespace(relation.target)
            target_pk = target.primary_key
            local_value = record.get(relation.local_key)
            results = []
            for item in items:
                create_data = {**item, relation.foreign_key: local_value}
                if item.get(target_pk) is None:
                    results.append(await target.create(data=create_data))
                else:
                    results.append(
                        await target.upsert(
                            where=primary_key_where(target_pk, item[target_pk]),
                            create=create_data,
                            update=item,
                        )
                    )
            related[name] = results
        return related

    async def delete(
        self,
        *,
        where: Mapping[str, Any],
        select: Optional[Mapping[str, bool]] = None,
    ) -> Optional[Record]:
        """Delete a record and every related record pointing at it.

        For each declared relation, records of the target collection whose
        foreign key equals this record's primary key are deleted (full scan
        per relation), then the record itself.

        Args:
            where: Primary key clause
            select: Field allow-list for the returned record

        Returns:
            The record as it was before deletion, or None when absent

        Raises:
            ConfigurationError: If a relation targets an unregistered collection
        """
        with self._span("delete"):
            key, existing = await self._read(where, "delete")
            if existing is None:
                return None

            pk_value = existing.get(self.primary_key)
            cascades = []
            for name, relation in self.definition.relations.items():
                try:
                    target = self._client.get_namespace(relation.target)
                except ConfigurationError as e:
                    raise ConfigurationError(
                        f"cannot cascade relation '{name}': {e.message}",
                        collection=self.name,
                        operation="delete",
                    ) from e
                cascades.append((name, target, relation.foreign_key))

            for name, target, foreign_key in cascades:
                removed = await target.delete_many(where={foreign_key: pk_value})
                if removed.count:
                    logger.debug(f"Cascade {self.name}.{name}: deleted {removed.count} {target.name}")

            store = await self._client.store()
            await store.delete(key)
            logger.debug(f"Deleted {self.name} {pk_value!r}")
            return apply_select(existing, select)

    async def delete_many(self, *, where: Optional[Mapping[str, Any]] = None) -> BatchResult:
        """Delete every record matching where (all records when empty).

        Related records are not cascaded.

        Returns:
            BatchResult with the number of deleted records
        """
        with self._span("delete_many"):
            store = await self._client.store()
            predicate = compile_where(where)
            count = 0
            async with aclosing(store.list(encode_prefix(self.name))) as entries:
                async for entry in entries:
                    if predicate.evaluate(entry.value):
                        await store.delete(entry.key)
                        count += 1
            logger.debug(f"delete_many {self.name}: {count} record(s)")
            return BatchResult(count=count)

    async def upsert(
        self,
        *,
        where: Mapping[str, Any],
        create: Mapping[str, Any],
        update: Mapping[str, Any],
        select: Optional[Mapping[str, bool]] = None,
        include: Optional[Mapping[str, bool]] = None,
    ) -> Record:
        """Update the record at where, or create it when absent.

        Args:
            where: Primary key clause
            create: Data for create when the record is absent
            update: Data for update when the record exists
            select: Field allow-list
            include: Relations to resolve

        Returns:
            Shaped record
        """
        with self._span("upsert"):
            _, existing = await self._read(where, "upsert")
            if existing is not None:
                return await self.update(where=where, data=update, select=select, include=include)
            return await self.create(data=create, select=select, include=include)

    async def count(self, *, where: Optional[Mapping[str, Any]] = None) -> int:
        """Count records matching where without shaping them."""
        with self._span("count"):
            store = await self._client.store()
            predicate = compile_where(where)
            total = 0
            async with aclosing(store.list(encode_prefix(self.name))) as entries:
                async for entry in entries:
                    if predicate.evaluate(entry.value):
                        total += 1
            return total
