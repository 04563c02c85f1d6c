"""Binary value-exchange format shared with the Nickel evaluator.

Each value is a one-byte type tag followed by a tag-specific payload. All
multi-byte integers are fixed-width little-endian; lengths and counts are
u32. There is no outer length prefix: the buffer's own length bounds it.

    0x00 Null    (no payload)
    0x01 Bool    u8, 0 = false, nonzero = true
    0x02 Int     i64
    0x03 Float   f64
    0x04 String  u32 byte length + UTF-8 bytes
    0x05 Array   u32 count + values
    0x06 Record  u32 count + (u32 key length + key bytes + value) pairs
    0x07 Enum    u32 tag length + tag bytes + u8 has-arg + [value]

The evaluator owns encoding; :func:`encode` reproduces it so fixtures and
in-process backends produce byte-identical buffers.
"""

from __future__ import annotations

import math
import struct

from .values import INT64_MAX, INT64_MIN, NickelEnum, ValueKind, kind_of

TYPE_NULL = 0x00
TYPE_BOOL = 0x01
TYPE_INT = 0x02
TYPE_FLOAT = 0x03
TYPE_STRING = 0x04
TYPE_ARRAY = 0x05
TYPE_RECORD = 0x06
TYPE_ENUM = 0x07

VALID_TAGS = frozenset(kind.value for kind in ValueKind)

STRUCT_U8 = struct.Struct('<B')
STRUCT_U32 = struct.Struct('<I')
STRUCT_I64 = struct.Struct('<q')
STRUCT_F64 = struct.Struct('<d')

U32_MAX = 0xFFFFFFFF


def encode(value) -> bytes:
    """Encode a value tree into wire bytes.

    Numbers are bucketed the way the evaluator does it: whole floats inside
    the i64 range are written as Int, everything else numeric as Float.
    """
    out = bytearray()
    _encode_value(out, value)
    return bytes(out)


def _pack_length(out: bytearray, n: int, what: str) -> None:
    if n > U32_MAX:
        raise ValueError(f"{what} too long for wire format: {n}")
    out += STRUCT_U32.pack(n)


def _pack_text(out: bytearray, text: str, what: str) -> None:
    data = text.encode('utf-8')
    _pack_length(out, len(data), what)
    out += data


def _encode_number(out: bytearray, number) -> None:
    if isinstance(number, int):
        if not INT64_MIN <= number <= INT64_MAX:
            raise ValueError(f"integer out of i64 range: {number}")
        out.append(TYPE_INT)
        out += STRUCT_I64.pack(number)
        return
    # 2**63 itself rounds into range as a float but not as an i64
    if math.isfinite(number) and number == math.floor(number) \
            and INT64_MIN <= number < 2.0 ** 63:
        out.append(TYPE_INT)
        out += STRUCT_I64.pack(int(number))
    else:
        out.append(TYPE_FLOAT)
        out += STRUCT_F64.pack(number)


def _encode_value(out: bytearray, value) -> None:
    kind = kind_of(value)

    if kind is ValueKind.NULL:
        out.append(TYPE_NULL)
    elif kind is ValueKind.BOOL:
        out.append(TYPE_BOOL)
        out.append(1 if value else 0)
    elif kind in (ValueKind.INT, ValueKind.FLOAT):
        _encode_number(out, value)
    elif kind is ValueKind.STRING:
        out.append(TYPE_STRING)
        _pack_text(out, value, 'string')
    elif kind is ValueKind.ARRAY:
        out.append(TYPE_ARRAY)
        _pack_length(out, len(value), 'array')
        for item in value:
            _encode_value(out, item)
    elif kind is ValueKind.RECORD:
        out.append(TYPE_RECORD)
        _pack_length(out, len(value), 'record')
        for key, item in value.items():
            if not isinstance(key, str):
                raise TypeError(f"record keys must be str, got {type(key).__name__}")
            _pack_text(out, key, 'record key')
            _encode_value(out, item)
    elif kind is ValueKind.ENUM:
        out.append(TYPE_ENUM)
        _pack_text(out, value.tag, 'enum tag')
        out.append(1 if value.has_arg else 0)
        if value.has_arg:
            _encode_value(out, value.arg)


__all__ = [
    'TYPE_NULL', 'TYPE_BOOL', 'TYPE_INT', 'TYPE_FLOAT', 'TYPE_STRING',
    'TYPE_ARRAY', 'TYPE_RECORD', 'TYPE_ENUM', 'VALID_TAGS',
    'STRUCT_U8', 'STRUCT_U32', 'STRUCT_I64', 'STRUCT_F64',
    'encode', 'NickelEnum',
]
