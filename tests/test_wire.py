"""
Tests for the wire encoder (nickeleval.wire).

Byte layouts are checked directly; the decoder tests cover reading them back.
"""

import math
import struct

import pytest

from nickeleval.values import NickelEnum
from nickeleval.wire import (
    encode,
    TYPE_NULL, TYPE_BOOL, TYPE_INT, TYPE_FLOAT, TYPE_STRING,
    TYPE_ARRAY, TYPE_RECORD, TYPE_ENUM, VALID_TAGS,
)


class TestScalars:

    def test_null(self):
        assert encode(None) == b'\x00'

    def test_bool(self):
        assert encode(True) == bytes([TYPE_BOOL, 1])
        assert encode(False) == bytes([TYPE_BOOL, 0])

    def test_int_little_endian(self):
        data = encode(42)
        assert data[0] == TYPE_INT
        assert len(data) == 9
        assert struct.unpack('<q', data[1:])[0] == 42

    def test_negative_int(self):
        assert struct.unpack('<q', encode(-42)[1:])[0] == -42

    def test_int_out_of_range(self):
        with pytest.raises(ValueError):
            encode(1 << 63)

    def test_string_length_in_bytes(self):
        data = encode("hello 世界")
        assert data[0] == TYPE_STRING
        length = struct.unpack('<I', data[1:5])[0]
        assert length == len("hello 世界".encode('utf-8'))
        assert length == 12
        assert data[5:].decode('utf-8') == "hello 世界"

    def test_tags_are_closed_set(self):
        assert VALID_TAGS == frozenset(range(8))


class TestNumericBucketing:
    """Whole numbers go out as Int, fractional ones as Float."""

    def test_whole_float_is_int(self):
        assert encode(42.0) == encode(42)

    def test_fraction_is_float(self):
        data = encode(42.5)
        assert data[0] == TYPE_FLOAT
        assert struct.unpack('<d', data[1:])[0] == 42.5

    def test_negative_zero_is_int(self):
        assert encode(-0.0) == encode(0)

    def test_huge_float_stays_float(self):
        assert encode(1e300)[0] == TYPE_FLOAT
        assert encode(2.0 ** 63)[0] == TYPE_FLOAT

    def test_non_finite_stays_float(self):
        assert encode(math.inf)[0] == TYPE_FLOAT
        assert encode(math.nan)[0] == TYPE_FLOAT


class TestContainers:

    def test_empty_array(self):
        assert encode([]) == bytes([TYPE_ARRAY]) + struct.pack('<I', 0)

    def test_array(self):
        data = encode([1, True])
        assert data[0] == TYPE_ARRAY
        assert struct.unpack('<I', data[1:5])[0] == 2
        assert data[5:] == encode(1) + encode(True)

    def test_record_key_has_no_tag(self):
        data = encode({"x": None})
        expected = (bytes([TYPE_RECORD]) + struct.pack('<I', 1)
                    + struct.pack('<I', 1) + b'x' + bytes([TYPE_NULL]))
        assert data == expected

    def test_record_rejects_non_string_key(self):
        with pytest.raises(TypeError):
            encode({1: 2})

    def test_tagless_enum(self):
        data = encode(NickelEnum("Foo"))
        assert data == bytes([TYPE_ENUM]) + struct.pack('<I', 3) + b'Foo' + b'\x00'

    def test_enum_with_payload(self):
        data = encode(NickelEnum("Count", 42))
        assert data == (bytes([TYPE_ENUM]) + struct.pack('<I', 5) + b'Count' + b'\x01'
                        + encode(42))

    def test_enum_with_null_payload(self):
        data = encode(NickelEnum("Some", None, has_arg=True))
        assert data.endswith(b'\x01\x00')

    def test_rejects_unknown_type(self):
        with pytest.raises(TypeError):
            encode({"a": {1, 2}})
