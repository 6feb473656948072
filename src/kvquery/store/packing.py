"""Order-preserving bytes encoding for store keys.

Store adapters persist tuple keys as bytes. The encoding keeps byte order
equal to key-part order so that a lexicographic byte scan enumerates keys in
tuple order, and the packed form of a prefix tuple is a byte prefix of every
key extending it.

Type order: bytes < str < negative int < 0 < positive int < float < False < True
"""

import struct
from typing import Any

from kvquery.errors import StoreError

_BYTE_BYTES = 0x01
_BYTE_STRING = 0x02
_BYTE_INT_NEG = 0x13
_BYTE_INT_ZERO = 0x14
_BYTE_INT_POS = 0x15
_BYTE_FLOAT = 0x21
_BYTE_FALSE = 0x26
_BYTE_TRUE = 0x27

_INT_LIMIT = (1 << 64) - 1


def _escape(raw: bytes) -> bytes:
    return raw.replace(b"\x00", b"\x00\xff") + b"\x00"


def _pack_one(value: Any) -> bytes:
    """Encode a single key part."""
    if isinstance(value, bool):
        return bytes([_BYTE_TRUE if value else _BYTE_FALSE])
    if isinstance(value, bytes):
        return bytes([_BYTE_BYTES]) + _escape(value)
    if isinstance(value, str):
        return bytes([_BYTE_STRING]) + _escape(value.encode("utf-8"))
    if isinstance(value, int):
        if value == 0:
            return bytes([_BYTE_INT_ZERO])
        if abs(value) >= _INT_LIMIT:
            raise StoreError(f"integer key part out of range: {value}")
        if value > 0:
            return bytes([_BYTE_INT_POS]) + struct.pack(">Q", value)
        return bytes([_BYTE_INT_NEG]) + struct.pack(">Q", _INT_LIMIT + value)
    if isinstance(value, float):
        bits = struct.pack(">d", value)
        # Flip sign bit, or flip all bits if negative
        if bits[0] & 0x80:
            bits = bytes(b ^ 0xFF for b in bits)
        else:
            bits = bytes([bits[0] ^ 0x80]) + bits[1:]
        return bytes([_BYTE_FLOAT]) + bits
    raise StoreError(f"unsupported key part type: {type(value).__name__}")


def _read_escaped(data: bytes, pos: int) -> tuple[bytes, int]:
    """Read a NUL-terminated escaped run starting at pos."""
    out = bytearray()
    while pos < len(data):
        byte = data[pos]
        if byte == 0x00:
            if pos + 1 < len(data) and data[pos + 1] == 0xFF:
                out.append(0x00)
                pos += 2
                continue
            return bytes(out), pos + 1
        out.append(byte)
        pos += 1
    raise StoreError("truncated key: missing terminator")


def _unpack_one(data: bytes, pos: int) -> tuple[Any, int]:
    """Decode a single key part starting at pos."""
    code = data[pos]
    if code == _BYTE_BYTES:
        return _read_escaped(data, pos + 1)
    if code == _BYTE_STRING:
        raw, end = _read_escaped(data, pos + 1)
        return raw.decode("utf-8"), end
    if code == _BYTE_INT_ZERO:
        return 0, pos + 1
    if code == _BYTE_INT_POS:
        return struct.unpack(">Q", data[pos + 1 : pos + 9])[0], pos + 9
    if code == _BYTE_INT_NEG:
        return struct.unpack(">Q", data[pos + 1 : pos + 9])[0] - _INT_LIMIT, pos + 9
    if code == _BYTE_FLOAT:
        bits = bytearray(data[pos + 1 : pos + 9])
        if bits[0] & 0x80:
            bits[0] ^= 0x80
        else:
            bits = bytearray(b ^ 0xFF for b in bits)
        return struct.unpack(">d", bytes(bits))[0], pos + 9
    if code == _BYTE_FALSE:
        return False, pos + 1
    if code == _BYTE_TRUE:
        return True, pos + 1
    raise StoreError(f"unknown key type code: {code:#x}")


def pack_key(key: tuple[Any, ...]) -> bytes:
    """Encode a key tuple to order-preserving bytes."""
    return b"".join(_pack_one(part) for part in key)


def unpack_key(data: bytes) -> tuple[Any, ...]:
    """Decode packed bytes back to a key tuple."""
    parts = []
    pos = 0
    while pos < len(data):
        value, pos = _unpack_one(data, pos)
        parts.append(value)
    return tuple(parts)
