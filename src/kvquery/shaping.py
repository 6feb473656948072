"""Result shaping: relation inclusion followed by field projection.

Order is fixed:
1. include - every requested relation is resolved concurrently and attached
   to a shallow copy of the record under the relation name
2. select  - the post-inclusion record is projected to the selected fields,
   so relation data survives only when its name is also selected
"""

import asyncio
from typing import TYPE_CHECKING, Any, Callable, Mapping, Optional

from loguru import logger

from kvquery.errors import ConfigurationError
from kvquery.models import Record
from kvquery.otel import trace_suffix
from kvquery.schema import Cardinality, Relation, SchemaRegistry

if TYPE_CHECKING:
    from kvquery.namespace import Namespace


def apply_select(record: Optional[Mapping[str, Any]], select: Optional[Mapping[str, bool]]) -> Optional[Record]:
    """Project a record to the fields flagged true in select.

    Args:
        record: Record to project (None passes through)
        select: Field -> include flag; empty or None keeps every field

    Returns:
        Projected record
    """
    if record is None:
        return None
    if not select:
        return dict(record)
    return {field: record[field] for field, included in select.items() if included and field in record}


class Shaper:
    """Applies include and select to records of any registered collection.

    Related collections are reached through ``get_namespace`` so relation
    lookups run through the same namespace operations callers use.
    """

    def __init__(self, registry: SchemaRegistry, get_namespace: Callable[[str], "Namespace"]):
        self.registry = registry
        self._get_namespace = get_namespace

    async def shape(
        self,
        record: Optional[Mapping[str, Any]],
        collection: str,
        select: Optional[Mapping[str, bool]] = None,
        include: Optional[Mapping[str, bool]] = None,
    ) -> Optional[Record]:
        """Shape a single record.

        Args:
            record: Raw record (None passes through)
            collection: Collection the record belongs to
            select: Field allow-list
            include: Relation name -> include flag

        Returns:
            Shaped record
        """
        if record is None:
            return None

        result = dict(record)

        if include:
            relations = self.registry.get_relations(collection)
            requested: list[tuple[str, Relation]] = []
            for name, included in include.items():
                if not included:
                    continue
                relation = relations.get(name)
                if relation is None:
                    logger.debug(f"Ignoring include of unknown relation '{collection}.{name}'")
                    continue
                requested.append((name, relation))

            if requested:
                outcomes = await asyncio.gather(
                    *(self._resolve(record, relation) for _, relation in requested),
                    return_exceptions=True,
                )
                failures = [outcome for outcome in outcomes if isinstance(outcome, BaseException)]
                if failures:
                    logger.error(
                        f"{len(failures)} of {len(requested)} relation(s) failed to resolve "
                        f"for '{collection}': {failures[0]}{trace_suffix()}"
                    )
                    raise failures[0]
                for (name, _), value in zip(requested, outcomes):
                    result[name] = value

        if select:
            result = apply_select(result, select)

        return result

    async def _resolve(self, record: Mapping[str, Any], relation: Relation) -> Any:
        """Fetch the records a relation points at."""
        many = relation.cardinality == Cardinality.MANY
        empty: Any = [] if many else None

        try:
            target = self._get_namespace(relation.target)
        except ConfigurationError:
            logger.warning(f"Relation target '{relation.target}' is not registered; resolving to {empty!r}")
            return empty

        local_value = record.get(relation.local_key)
        if local_value is None:
            return empty

        where = {relation.foreign_key: local_value}
        if many:
            page = await target.find_many(where=where)
            return page.data

        if relation.foreign_key == target.primary_key:
            return await target.find_unique(where=where)

        page = await target.find_many(where=where, take=1)
        return page.data[0] if page.data else None
