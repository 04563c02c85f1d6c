"""
Tests for the value model (nickeleval.values).
"""

import pytest

from nickeleval.values import (
    NickelEnum, ValueKind, kind_of, is_value, to_plain, enum_val,
    INT64_MAX, INT64_MIN,
)


class TestKindOf:
    """Test classification into the eight variants."""

    def test_primitives(self):
        assert kind_of(None) is ValueKind.NULL
        assert kind_of(True) is ValueKind.BOOL
        assert kind_of(42) is ValueKind.INT
        assert kind_of(42.0) is ValueKind.FLOAT
        assert kind_of("x") is ValueKind.STRING

    def test_bool_is_not_int(self):
        """bool subclasses int but is its own variant."""
        assert kind_of(False) is ValueKind.BOOL

    def test_containers(self):
        assert kind_of([1, 2]) is ValueKind.ARRAY
        assert kind_of({"a": 1}) is ValueKind.RECORD
        assert kind_of(NickelEnum("Foo")) is ValueKind.ENUM

    def test_kind_values_are_wire_tags(self):
        assert [k.value for k in ValueKind] == list(range(8))

    def test_rejects_foreign_types(self):
        with pytest.raises(TypeError):
            kind_of(object())
        with pytest.raises(TypeError):
            kind_of(b"bytes")


class TestNickelEnum:
    """Test the enum variant wrapper."""

    def test_tagless(self):
        e = NickelEnum("Foo")
        assert e.tag == "Foo"
        assert e.arg is None
        assert e.has_arg is False

    def test_with_payload_sets_flag(self):
        e = NickelEnum("Count", 42)
        assert e.has_arg is True
        assert e.arg == 42

    def test_null_payload_differs_from_tagless(self):
        """'Some null and 'Some are different values."""
        assert NickelEnum("Some", None, has_arg=True) != NickelEnum("Some")

    def test_equality(self):
        assert NickelEnum("Ok", {"v": 1}) == NickelEnum("Ok", {"v": 1})
        assert NickelEnum("Ok", 1) != NickelEnum("Err", 1)

    def test_tag_must_be_str(self):
        with pytest.raises(TypeError):
            NickelEnum(42)

    def test_enum_val_arity(self):
        assert enum_val("Foo") == NickelEnum("Foo")
        assert enum_val("Some", None).has_arg is True
        with pytest.raises(ValueError):
            enum_val("Pair", 1, 2)

    def test_hashable_with_scalar_payload(self):
        assert len({NickelEnum("Foo"), NickelEnum("Foo"), NickelEnum("Count", 1)}) == 2

    def test_unhashable_with_container_payload(self):
        with pytest.raises(TypeError):
            hash(NickelEnum("Items", [1, 2]))

    def test_repr(self):
        assert repr(NickelEnum("Foo")) == "NickelEnum('Foo')"
        assert repr(NickelEnum("Count", 3)) == "NickelEnum('Count', 3)"


class TestIsValue:
    """Test whole-tree validation."""

    def test_valid_tree(self):
        assert is_value({"a": [1, 2.5, None, NickelEnum("X", {"y": "z"})]})

    def test_int_range(self):
        assert is_value(INT64_MAX)
        assert is_value(INT64_MIN)
        assert not is_value(INT64_MAX + 1)

    def test_non_string_key(self):
        assert not is_value({1: "a"})

    def test_nested_foreign_object(self):
        assert not is_value([1, object()])


class TestToPlain:
    """Test conversion to JSON-compatible data."""

    def test_enum_as_record(self):
        assert to_plain(NickelEnum("Foo")) == {"_tag": "Foo"}
        assert to_plain(NickelEnum("Some", 42)) == {"_tag": "Some", "_value": 42}

    def test_nested(self):
        value = {"data": [NickelEnum("Ok", {"value": 123}), 1.5]}
        assert to_plain(value) == {"data": [{"_tag": "Ok", "_value": {"value": 123}}, 1.5]}

    def test_primitives_pass_through(self):
        for v in (None, True, 3, 2.5, "s"):
            assert to_plain(v) == v
