"""Stack-based decoder for the binary value-exchange format."""

from __future__ import annotations

import logging
import struct
from typing import Any, List, Optional, Union

from .errors import (
    error_duplicate_key,
    error_empty_buffer,
    error_invalid_utf8,
    error_too_deep,
    error_trailing_bytes,
    error_truncated,
    error_unknown_tag,
)
from .values import NickelEnum
from .wire import (
    STRUCT_F64,
    STRUCT_I64,
    STRUCT_U32,
    TYPE_ARRAY,
    TYPE_BOOL,
    TYPE_ENUM,
    TYPE_FLOAT,
    TYPE_INT,
    TYPE_NULL,
    TYPE_RECORD,
    TYPE_STRING,
)

logger = logging.getLogger(__name__)

DEFAULT_MAX_DEPTH = 256

BytesLike = Union[bytes, bytearray, memoryview]


class _Frame:
    """An open array, record or enum payload on the decode stack."""
    __slots__ = ('kind', 'container', 'remaining', 'key')

    def __init__(self, kind: int, container: Any, remaining: int):
        self.kind = kind
        self.container = container
        self.remaining = remaining
        self.key: Optional[str] = None


class Decoder:
    """Cursor over one wire buffer.

    The input is snapshotted into an immutable ``bytes`` object up front so
    decoded values never share memory with the caller's buffer.
    """

    def __init__(self, data: BytesLike, *, max_depth: int = DEFAULT_MAX_DEPTH):
        self.data = bytes(data)
        self.offset = 0
        self.max_depth = max_depth

    @property
    def remaining(self) -> int:
        return len(self.data) - self.offset

    def _take(self, n: int, what: str) -> bytes:
        if n > self.remaining:
            raise error_truncated(what, n, self.remaining, self.offset)
        start = self.offset
        self.offset += n
        return self.data[start:self.offset]

    def _unpack(self, fmt: struct.Struct, what: str):
        return fmt.unpack(self._take(fmt.size, what))[0]

    def _read_text(self, what: str) -> str:
        start = self.offset
        length = self._unpack(STRUCT_U32, f"{what} length")
        raw = self._take(length, what)
        try:
            return raw.decode('utf-8')
        except UnicodeDecodeError:
            raise error_invalid_utf8(what, start) from None

    def _read_count(self, what: str) -> int:
        count = self._unpack(STRUCT_U32, f"{what} count")
        # every element takes at least one byte
        if count > self.remaining:
            raise error_truncated(what, count, self.remaining, self.offset)
        return count

    def _open(self) -> Any:
        """Read one tag and its fixed payload.

        Scalars come back as values. Non-empty containers and enums with a
        payload come back as a `_Frame` still waiting for children.
        """
        tag_offset = self.offset
        tag = self._take(1, 'type tag')[0]

        if tag == TYPE_NULL:
            return None
        elif tag == TYPE_BOOL:
            return self._take(1, 'bool')[0] != 0
        elif tag == TYPE_INT:
            return self._unpack(STRUCT_I64, 'int')
        elif tag == TYPE_FLOAT:
            return self._unpack(STRUCT_F64, 'float')
        elif tag == TYPE_STRING:
            return self._read_text('string')
        elif tag == TYPE_ARRAY:
            count = self._read_count('array')
            return _Frame(TYPE_ARRAY, [], count) if count else []
        elif tag == TYPE_RECORD:
            count = self._read_count('record')
            return _Frame(TYPE_RECORD, {}, count) if count else {}
        elif tag == TYPE_ENUM:
            name = self._read_text('enum tag')
            has_arg = self._take(1, 'enum arg flag')[0] != 0
            if has_arg:
                return _Frame(TYPE_ENUM, name, 1)
            return NickelEnum(name)
        else:
            raise error_unknown_tag(tag, tag_offset)

    def read_value(self) -> Any:
        """Read one value starting at the cursor.

        Nesting is tracked on an explicit stack, so the depth bound is the
        only limit on how deep a buffer may nest.
        """
        stack: List[_Frame] = []
        while True:
            if stack and stack[-1].kind == TYPE_RECORD:
                frame = stack[-1]
                key_offset = self.offset
                frame.key = self._read_text('record key')
                if frame.key in frame.container:
                    raise error_duplicate_key(frame.key, key_offset)

            if len(stack) > self.max_depth:
                raise error_too_deep(self.max_depth, self.offset)

            value = self._open()
            if isinstance(value, _Frame):
                stack.append(value)
                continue

            # hand the finished value to its parents, closing every frame it completes
            while stack:
                frame = stack[-1]
                if frame.kind == TYPE_ENUM:
                    stack.pop()
                    value = NickelEnum(frame.container, value, has_arg=True)
                    continue
                if frame.kind == TYPE_ARRAY:
                    frame.container.append(value)
                else:
                    frame.container[frame.key] = value
                frame.remaining -= 1
                if frame.remaining:
                    break
                stack.pop()
                value = frame.container
            else:
                return value

    def finish(self, strict: bool = True) -> None:
        """Check that the whole buffer was consumed."""
        if self.remaining == 0:
            return
        if strict:
            raise error_trailing_bytes(self.remaining, self.offset)
        logger.warning("ignoring %d trailing byte(s) after value at offset %d",
                       self.remaining, self.offset)


def decode(data: BytesLike, *, strict: bool = True,
           max_depth: int = DEFAULT_MAX_DEPTH) -> Any:
    """Decode one wire buffer into a value tree.

    Raises :class:`~nickeleval.errors.ProtocolError` on truncated input,
    unknown tags, invalid UTF-8, duplicate record keys or excessive nesting.
    Leftover bytes after the root value are an error when ``strict`` is set
    and a logged warning otherwise.
    """
    if len(data) == 0:
        raise error_empty_buffer()
    decoder = Decoder(data, max_depth=max_depth)
    value = decoder.read_value()
    decoder.finish(strict)
    return value


__all__ = ['Decoder', 'decode', 'DEFAULT_MAX_DEPTH']
