"""
Ownership of evaluator-allocated memory.

The native evaluator allocates every result buffer and is the only party
allowed to free it. A caller gets a descriptor (address + length), copies
the bytes into Python-owned memory, then hands the descriptor back to the
evaluator's release function exactly once. Nothing here keeps a pointer
into foreign memory past that copy.
"""

import ctypes
import logging
from typing import Callable, Optional

from .errors import error_double_release, error_null_buffer, error_use_after_release

logger = logging.getLogger(__name__)


class NativeBuffer(ctypes.Structure):
    """C layout of the evaluator's result descriptor."""
    _fields_ = [
        ("data", ctypes.POINTER(ctypes.c_uint8)),
        ("len", ctypes.c_size_t),
    ]

    def __repr__(self) -> str:
        return f"NativeBuffer(data=0x{address_of(self):x}, len={self.len})"


def address_of(descriptor: NativeBuffer) -> int:
    """Raw address held by a descriptor (0 for null)."""
    return ctypes.cast(descriptor.data, ctypes.c_void_p).value or 0


def is_null(descriptor: NativeBuffer) -> bool:
    """A null address means evaluation failed; it is never an empty success."""
    return not descriptor.data


class ForeignBuffer:
    """
    Scoped owner of one evaluator buffer.

    Use as a context manager; the buffer is released when the block exits,
    whether or not an exception is propagating:

        with ForeignBuffer(descriptor, lib.nickel_free_buffer) as buf:
            data = buf.copy()
        value = decode(data)
    """

    def __init__(self, descriptor: NativeBuffer, release: Callable[[NativeBuffer], None]):
        if is_null(descriptor):
            raise error_null_buffer()
        self._descriptor = descriptor
        self._release = release
        self._released = False

    @property
    def released(self) -> bool:
        return self._released

    def __len__(self) -> int:
        return self._descriptor.len

    def copy(self) -> bytes:
        """Copy the whole allocation into a Python-owned bytes object."""
        if self._released:
            raise error_use_after_release()
        return ctypes.string_at(self._descriptor.data, self._descriptor.len)

    def release(self) -> None:
        """Return the allocation to the evaluator. Allowed exactly once."""
        if self._released:
            raise error_double_release()
        self._released = True
        logger.debug("releasing %r", self._descriptor)
        self._release(self._descriptor)

    def __enter__(self) -> "ForeignBuffer":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        if not self._released:
            self.release()


class ForeignString:
    """Same discipline for the NUL-terminated strings of the JSON path."""

    def __init__(self, address: Optional[int], release: Callable[[int], None]):
        if not address:
            raise error_null_buffer()
        self._address = address
        self._release = release
        self._released = False

    def copy(self) -> str:
        if self._released:
            raise error_use_after_release()
        return ctypes.string_at(self._address).decode('utf-8')

    def release(self) -> None:
        if self._released:
            raise error_double_release()
        self._released = True
        self._release(self._address)

    def __enter__(self) -> "ForeignString":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        if not self._released:
            self.release()


def take_bytes(descriptor: NativeBuffer, release: Callable[[NativeBuffer], None]) -> bytes:
    """Copy a non-null buffer out and release it."""
    with ForeignBuffer(descriptor, release) as buf:
        return buf.copy()


def take_string(address: Optional[int], release: Callable[[int], None]) -> str:
    """Copy a non-null C string out and release it."""
    with ForeignString(address, release) as text:
        return text.copy()
