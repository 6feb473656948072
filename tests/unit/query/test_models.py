"""Test query descriptors and result models."""

import pytest

from kvquery.errors import ConfigurationError
from kvquery.models import FindManyResult, Order, OrderBy


def test_order_by_parse_forms():
    """Test the accepted order_by spellings."""
    assert OrderBy.parse(None) is None
    assert OrderBy.parse({"age": "desc"}) == OrderBy(field="age", direction=Order.DESC)
    assert OrderBy.parse({"age": "ASC"}) == OrderBy(field="age", direction=Order.ASC)
    assert OrderBy.parse({"field": "name"}) == OrderBy(field="name")

    explicit = OrderBy(field="name", direction=Order.DESC)
    assert OrderBy.parse(explicit) is explicit


@pytest.mark.parametrize(
    "value",
    [
        {"age": "sideways"},
        {"age": "asc", "name": "desc"},
        {"field": "age", "direction": "up"},
    ],
)
def test_order_by_parse_rejects_invalid(value):
    """Test malformed order_by raises ConfigurationError."""
    with pytest.raises(ConfigurationError):
        OrderBy.parse(value)


def test_find_many_result_defaults():
    """Test an empty page."""
    result = FindManyResult()
    assert result.data == []
    assert result.has_more is False
    assert result.cursor is None
