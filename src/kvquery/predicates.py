"""Where-clause predicates for filtering records.

A ``where`` mapping compiles into a tree of predicates:

    {"age": {"gt": 18, "lte": 65}, "role": "admin"}
    -> And([Gt("age", 18), Lte("age", 65), Eq("role", "admin")])

Plain values mean strict equality; mappings are operator objects whose
operators are ANDed. Unknown operators compile to ``Never`` so unrecognized
constraints never silently pass.
"""

import operator
from dataclasses import dataclass, field as dataclass_field
from typing import Any, Callable, Mapping

from loguru import logger

Record = Mapping[str, Any]


class _Missing:
    """Marker for a field absent from the record."""

    def __repr__(self) -> str:
        return "<missing>"


MISSING = _Missing()

_COLLECTION_TYPES = (list, tuple, set, frozenset)


def _get_field(record: Record, field: str) -> Any:
    return record.get(field, MISSING)


def _strict_eq(left: Any, right: Any) -> bool:
    """Equality without coercion: bools only equal bools, missing equals nothing."""
    if left is MISSING or right is MISSING:
        return False
    if isinstance(left, bool) or isinstance(right, bool):
        return type(left) is type(right) and left == right
    return left == right


def _compare(left: Any, right: Any, op: Callable[[Any, Any], bool]) -> bool:
    """Ordered comparison; incomparable or absent values never match."""
    if left is MISSING or left is None or right is None:
        return False
    if isinstance(left, bool) != isinstance(right, bool):
        return False
    try:
        return bool(op(left, right))
    except TypeError:
        return False


@dataclass
class Predicate:
    """Base predicate class."""

    def evaluate(self, record: Record) -> bool:
        """Evaluate predicate against a record."""
        raise NotImplementedError


@dataclass
class Eq(Predicate):
    """field == value"""

    field: str
    value: Any

    def evaluate(self, record: Record) -> bool:
        return _strict_eq(_get_field(record, self.field), self.value)


@dataclass
class Ne(Predicate):
    """field != value"""

    field: str
    value: Any

    def evaluate(self, record: Record) -> bool:
        return not _strict_eq(_get_field(record, self.field), self.value)


@dataclass
class Gt(Predicate):
    """field > value"""

    field: str
    value: Any

    def evaluate(self, record: Record) -> bool:
        return _compare(_get_field(record, self.field), self.value, operator.gt)


@dataclass
class Gte(Predicate):
    """field >= value"""

    field: str
    value: Any

    def evaluate(self, record: Record) -> bool:
        return _compare(_get_field(record, self.field), self.value, operator.ge)


@dataclass
class Lt(Predicate):
    """field < value"""

    field: str
    value: Any

    def evaluate(self, record: Record) -> bool:
        return _compare(_get_field(record, self.field), self.value, operator.lt)


@dataclass
class Lte(Predicate):
    """field <= value"""

    field: str
    value: Any

    def evaluate(self, record: Record) -> bool:
        return _compare(_get_field(record, self.field), self.value, operator.le)


@dataclass
class In(Predicate):
    """field IN [values]"""

    field: str
    values: Any

    def evaluate(self, record: Record) -> bool:
        if not isinstance(self.values, _COLLECTION_TYPES):
            return False
        val = _get_field(record, self.field)
        return any(_strict_eq(val, candidate) for candidate in self.values)


@dataclass
class NotIn(Predicate):
    """field NOT IN [values]"""

    field: str
    values: Any

    def evaluate(self, record: Record) -> bool:
        if not isinstance(self.values, _COLLECTION_TYPES):
            return False
        val = _get_field(record, self.field)
        return not any(_strict_eq(val, candidate) for candidate in self.values)


@dataclass
class Contains(Predicate):
    """field CONTAINS substring (or element, for list fields)"""

    field: str
    value: Any

    def evaluate(self, record: Record) -> bool:
        val = _get_field(record, self.field)
        if isinstance(val, str):
            return isinstance(self.value, str) and self.value in val
        if isinstance(val, list):
            return any(_strict_eq(item, self.value) for item in val)
        return False


@dataclass
class StartsWith(Predicate):
    """field STARTS WITH prefix"""

    field: str
    prefix: Any

    def evaluate(self, record: Record) -> bool:
        val = _get_field(record, self.field)
        return isinstance(val, str) and isinstance(self.prefix, str) and val.startswith(self.prefix)


@dataclass
class EndsWith(Predicate):
    """field ENDS WITH suffix"""

    field: str
    suffix: Any

    def evaluate(self, record: Record) -> bool:
        val = _get_field(record, self.field)
        return isinstance(val, str) and isinstance(self.suffix, str) and val.endswith(self.suffix)


@dataclass
class And(Predicate):
    """pred1 AND pred2 AND ..."""

    predicates: list[Predicate] = dataclass_field(default_factory=list)

    def evaluate(self, record: Record) -> bool:
        return all(p.evaluate(record) for p in self.predicates)


@dataclass
class All(Predicate):
    """Always true"""

    def evaluate(self, record: Record) -> bool:
        return True


@dataclass
class Never(Predicate):
    """Always false (unrecognized constraint)"""

    reason: str = ""

    def evaluate(self, record: Record) -> bool:
        return False


OPERATORS: dict[str, Callable[[str, Any], Predicate]] = {
    "equals": Eq,
    "not": Ne,
    "in": In,
    "notIn": NotIn,
    "not_in": NotIn,
    "lt": Lt,
    "lte": Lte,
    "gt": Gt,
    "gte": Gte,
    "contains": Contains,
    "startsWith": StartsWith,
    "starts_with": StartsWith,
    "endsWith": EndsWith,
    "ends_with": EndsWith,
}


def compile_where(where: Mapping[str, Any] | None) -> Predicate:
    """Compile a where clause into a predicate.

    Args:
        where: Field -> literal or operator mapping

    Returns:
        Predicate (All for an empty clause)

    Example:
        >>> compile_where({"age": {"gt": 18}})
        Gt(field='age', value=18)
    """
    if not where:
        return All()

    predicates: list[Predicate] = []
    for field, constraint in where.items():
        if isinstance(constraint, Mapping):
            for op, argument in constraint.items():
                factory = OPERATORS.get(op)
                if factory is None:
                    logger.debug(f"Unknown where operator '{op}' on field '{field}'")
                    predicates.append(Never(reason=f"unknown operator '{op}'"))
                else:
                    predicates.append(factory(field, argument))
        else:
            predicates.append(Eq(field, constraint))

    if not predicates:
        return All()
    if len(predicates) == 1:
        return predicates[0]
    return And(predicates)


def matches(record: Record, where: Mapping[str, Any] | None) -> bool:
    """Check whether a record satisfies a where clause."""
    return compile_where(where).evaluate(record)
