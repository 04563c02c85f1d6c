"""
Value model for evaluated Nickel results.

A decoded value is a tree of plain Python objects drawn from a closed set of
eight variants. Every variant except enums maps onto a builtin type; enums
are wrapped in `NickelEnum` so the variant name survives the boundary.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Union

INT64_MIN = -(1 << 63)
INT64_MAX = (1 << 63) - 1


class ValueKind(Enum):
    """The eight value variants, keyed by their wire tag."""
    NULL = 0x00
    BOOL = 0x01
    INT = 0x02
    FLOAT = 0x03
    STRING = 0x04
    ARRAY = 0x05
    RECORD = 0x06
    ENUM = 0x07


@dataclass(frozen=True)
class NickelEnum:
    """
    A Nickel enum variant: a tag with zero or one payload.

    `has_arg` separates a tagless variant (`'Foo`) from a variant whose
    payload happens to be null (`'Foo null`). It is set automatically when
    `arg` is not None.

    Instances hash like tuples: an enum is hashable only when its payload is,
    so `NickelEnum('Items', [1, 2])` compares by value but cannot go in a set.
    """
    tag: str
    arg: Any = None
    has_arg: bool = False

    def __post_init__(self):
        if not isinstance(self.tag, str):
            raise TypeError(f"enum tag must be str, got {type(self.tag).__name__}")
        if self.arg is not None and not self.has_arg:
            object.__setattr__(self, "has_arg", True)

    def __repr__(self) -> str:
        if self.has_arg:
            return f"NickelEnum({self.tag!r}, {self.arg!r})"
        return f"NickelEnum({self.tag!r})"


Value = Union[None, bool, int, float, str, List[Any], Dict[str, Any], NickelEnum]


def kind_of(value: Any) -> ValueKind:
    """Classify a Python object as one of the eight value variants."""
    if value is None:
        return ValueKind.NULL
    # bool is a subclass of int
    if isinstance(value, bool):
        return ValueKind.BOOL
    if isinstance(value, int):
        return ValueKind.INT
    if isinstance(value, float):
        return ValueKind.FLOAT
    if isinstance(value, str):
        return ValueKind.STRING
    if isinstance(value, (list, tuple)):
        return ValueKind.ARRAY
    if isinstance(value, dict):
        return ValueKind.RECORD
    if isinstance(value, NickelEnum):
        return ValueKind.ENUM
    raise TypeError(f"not a Nickel value: {type(value).__name__}")


def is_value(value: Any) -> bool:
    """Check that `value` is a well-formed value tree."""
    try:
        kind = kind_of(value)
    except TypeError:
        return False
    if kind is ValueKind.INT:
        return INT64_MIN <= value <= INT64_MAX
    if kind is ValueKind.ARRAY:
        return all(is_value(v) for v in value)
    if kind is ValueKind.RECORD:
        return all(isinstance(k, str) and is_value(v) for k, v in value.items())
    if kind is ValueKind.ENUM:
        return not value.has_arg or is_value(value.arg)
    return True


def to_plain(value: Any) -> Any:
    """
    Convert a value tree into JSON-compatible data.

    Enums become records: `{"_tag": "Foo"}` or `{"_tag": "Foo", "_value": ...}`.
    """
    kind = kind_of(value)
    if kind is ValueKind.ARRAY:
        return [to_plain(v) for v in value]
    if kind is ValueKind.RECORD:
        return {k: to_plain(v) for k, v in value.items()}
    if kind is ValueKind.ENUM:
        plain = {"_tag": value.tag}
        if value.has_arg:
            plain["_value"] = to_plain(value.arg)
        return plain
    return value


def enum_val(tag: str, *args: Any) -> NickelEnum:
    """Create an enum value; at most one payload is allowed."""
    if len(args) > 1:
        raise ValueError(f"enum '{tag}' takes at most one payload, got {len(args)}")
    if args:
        return NickelEnum(tag, args[0], has_arg=True)
    return NickelEnum(tag)
