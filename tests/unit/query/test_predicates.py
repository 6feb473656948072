"""Test where-clause compilation and matching."""

import pytest

from kvquery.predicates import All, And, Eq, Gt, Never, compile_where, matches


RECORD = {
    "id": "u1",
    "name": "Ada Lovelace",
    "age": 36,
    "active": True,
    "score": None,
    "tags": ["math", "poetry"],
}


# =================================================================
# Compilation
# =================================================================


def test_empty_where_matches_everything():
    """Test empty and missing clauses compile to All."""
    assert isinstance(compile_where(None), All)
    assert isinstance(compile_where({}), All)
    assert matches(RECORD, None)


def test_single_constraint_is_unwrapped():
    """Test a lone constraint compiles to its predicate."""
    assert compile_where({"age": {"gt": 18}}) == Gt("age", 18)
    assert compile_where({"id": "u1"}) == Eq("id", "u1")


def test_constraints_are_anded():
    """Test several fields and operators combine with AND."""
    predicate = compile_where({"age": {"gt": 18, "lte": 65}, "active": True})
    assert isinstance(predicate, And)
    assert len(predicate.predicates) == 3


def test_unknown_operator_never_matches():
    """Test an unrecognized operator rejects every record."""
    predicate = compile_where({"age": {"between": [1, 99]}})
    assert isinstance(predicate, Never)
    assert not predicate.evaluate(RECORD)

    assert not matches(RECORD, {"id": "u1", "age": {"between": [1, 99]}})


# =================================================================
# Equality
# =================================================================


def test_literal_equality_is_strict():
    """Test literals match only equal values of a compatible type."""
    assert matches(RECORD, {"id": "u1"})
    assert not matches(RECORD, {"id": "u2"})
    assert not matches(RECORD, {"age": "36"})
    assert not matches({"flag": 1}, {"flag": True})
    assert not matches({"flag": True}, {"flag": 1})
    assert matches({"flag": False}, {"flag": False})


def test_missing_field_never_equals():
    """Test absent fields do not equal anything, including None."""
    assert not matches(RECORD, {"nickname": None})
    assert matches(RECORD, {"score": None})


def test_equals_and_not_operators():
    """Test explicit equals and not."""
    assert matches(RECORD, {"age": {"equals": 36}})
    assert matches(RECORD, {"age": {"not": 40}})
    assert not matches(RECORD, {"age": {"not": 36}})
    assert matches(RECORD, {"nickname": {"not": "x"}})


# =================================================================
# Ordering
# =================================================================


@pytest.mark.parametrize(
    "where,expected",
    [
        ({"age": {"gt": 35}}, True),
        ({"age": {"gt": 36}}, False),
        ({"age": {"gte": 36}}, True),
        ({"age": {"lt": 37}}, True),
        ({"age": {"lte": 35}}, False),
        ({"name": {"gt": "Ab"}}, True),
    ],
)
def test_comparisons(where, expected):
    """Test ordered comparisons."""
    assert matches(RECORD, where) is expected


def test_incomparable_values_do_not_match():
    """Test type mismatches and missing values fail comparisons."""
    assert not matches(RECORD, {"age": {"gt": "10"}})
    assert not matches(RECORD, {"score": {"gt": 0}})
    assert not matches(RECORD, {"missing": {"lt": 0}})
    assert not matches(RECORD, {"active": {"gt": 0}})


# =================================================================
# Membership and text
# =================================================================


def test_in_and_not_in():
    """Test membership operators with both spellings."""
    assert matches(RECORD, {"id": {"in": ["u1", "u2"]}})
    assert not matches(RECORD, {"id": {"in": ["u3"]}})
    assert matches(RECORD, {"id": {"not_in": ["u3"]}})
    assert not matches(RECORD, {"id": {"notIn": ["u1"]}})


def test_in_requires_a_collection():
    """Test non-collection operands never match."""
    assert not matches(RECORD, {"id": {"in": "u1"}})
    assert not matches(RECORD, {"id": {"not_in": "zzz"}})


def test_contains():
    """Test substring and list element containment."""
    assert matches(RECORD, {"name": {"contains": "Love"}})
    assert not matches(RECORD, {"name": {"contains": "love"}})
    assert matches(RECORD, {"tags": {"contains": "poetry"}})
    assert not matches(RECORD, {"age": {"contains": "3"}})


def test_starts_and_ends_with():
    """Test prefix and suffix operators with both spellings."""
    assert matches(RECORD, {"name": {"starts_with": "Ada"}})
    assert matches(RECORD, {"name": {"startsWith": "Ada"}})
    assert matches(RECORD, {"name": {"ends_with": "lace"}})
    assert matches(RECORD, {"name": {"endsWith": "lace"}})
    assert not matches(RECORD, {"age": {"starts_with": "3"}})
