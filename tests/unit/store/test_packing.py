"""Test order-preserving key packing."""

import pytest

from kvquery.errors import StoreError
from kvquery.store.packing import pack_key, unpack_key


def test_unpack_restores_mixed_key():
    """Test packed keys decode to the original tuple."""
    key = ("users", "u1", 0, 42, -7, 1.5, b"\x00raw", True, False)
    assert unpack_key(pack_key(key)) == key


def test_strings_with_nul_bytes_survive():
    """Test NUL bytes inside strings are escaped, not treated as terminators."""
    key = ("a\x00b", "c")
    assert unpack_key(pack_key(key)) == key


@pytest.mark.parametrize(
    "smaller,larger",
    [
        (("users", "a"), ("users", "b")),
        (("users", "a"), ("users", "a\x00")),
        (("users", "ab"), ("users", "b")),
        (("users", -10), ("users", -1)),
        (("users", -1), ("users", 0)),
        (("users", 0), ("users", 1)),
        (("users", 2), ("users", 10)),
        (("users", -2.5), ("users", -0.5)),
        (("users", 0.5), ("users", 2.25)),
        (("users", "z"), ("users", 1)),
        (("users",), ("users", "a")),
        (("orders", "z"), ("users", "a")),
    ],
)
def test_byte_order_matches_tuple_order(smaller, larger):
    """Test byte comparison of packed keys follows key-part order."""
    assert pack_key(smaller) < pack_key(larger)


def test_prefix_is_byte_prefix():
    """Test a packed prefix is a byte prefix of every key extending it."""
    prefix = pack_key(("users",))
    assert pack_key(("users", "u1")).startswith(prefix)
    assert not pack_key(("users_archive", "u1")).startswith(prefix)


def test_unsupported_part_raises():
    """Test unsupported key part types are rejected."""
    with pytest.raises(StoreError):
        pack_key(("users", None))

    with pytest.raises(StoreError):
        pack_key(("users", {"id": 1}))


def test_integer_out_of_range_raises():
    """Test integers beyond 64 bits are rejected."""
    with pytest.raises(StoreError):
        pack_key(("users", 1 << 70))


def test_truncated_key_raises():
    """Test a string part without terminator fails to decode."""
    with pytest.raises(StoreError):
        unpack_key(b"\x02users")
