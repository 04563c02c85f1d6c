"""ctypes bindings for the embedded Nickel evaluator.

The native library exports:

    NativeBuffer nickel_eval_native(const char *code);
    NativeBuffer nickel_eval_file_native(const char *path);
    void         nickel_free_buffer(NativeBuffer buffer);
    const char  *nickel_get_error(void);
    char        *nickel_eval_string(const char *code);     /* JSON text */
    void         nickel_free_string(char *ptr);

A null ``data`` pointer (or null string) means the evaluation failed and the
message sits in the library's last-error slot until the next call.
"""

from __future__ import annotations

import ctypes
import ctypes.util
import logging
import sys
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from .buffers import NativeBuffer, is_null, take_bytes, take_string
from .config import Settings, get_settings
from .errors import (
    BackendUnavailableError,
    error_evaluation_failed,
    error_library_load_failed,
    error_library_not_found,
    error_unreadable_output,
)

logger = logging.getLogger(__name__)

LIB_BASENAME = "nickel_eval"
BUNDLED_LIB_DIR = Path(__file__).resolve().parent / "_lib"

_REQUIRED_SYMBOLS = (
    "nickel_eval_native",
    "nickel_eval_file_native",
    "nickel_free_buffer",
    "nickel_get_error",
)
_JSON_SYMBOLS = ("nickel_eval_string", "nickel_free_string")


def library_name() -> str:
    """Platform file name of the native library."""
    if sys.platform == "win32":
        return f"{LIB_BASENAME}.dll"
    if sys.platform == "darwin":
        return f"lib{LIB_BASENAME}.dylib"
    return f"lib{LIB_BASENAME}.so"


def find_library(settings: Optional[Settings] = None) -> Path:
    """Locate the native library.

    Search order: ``NICKELEVAL_LIBRARY``, the package's ``_lib`` directory,
    then the system loader path.
    """
    settings = settings or get_settings()
    # an explicit path that does not exist is not silently replaced
    if settings.library_path is not None:
        if settings.library_path.is_file():
            return settings.library_path
        raise error_library_not_found([settings.library_path])

    bundled = BUNDLED_LIB_DIR / library_name()
    if bundled.is_file():
        return bundled
    system = ctypes.util.find_library(LIB_BASENAME)
    if system:
        return Path(system)
    raise error_library_not_found([bundled, f"system:{LIB_BASENAME}"])


def ffi_available(settings: Optional[Settings] = None) -> bool:
    """True when a native library can be located."""
    try:
        find_library(settings)
    except BackendUnavailableError:
        return False
    return True


def bind_signatures(handle) -> bool:
    """Declare argument and return types on a loaded library.

    Returns True when the optional JSON entry points are present.
    """
    handle.nickel_eval_native.argtypes = [ctypes.c_char_p]
    handle.nickel_eval_native.restype = NativeBuffer
    handle.nickel_eval_file_native.argtypes = [ctypes.c_char_p]
    handle.nickel_eval_file_native.restype = NativeBuffer
    handle.nickel_free_buffer.argtypes = [NativeBuffer]
    handle.nickel_free_buffer.restype = None
    handle.nickel_get_error.argtypes = []
    handle.nickel_get_error.restype = ctypes.c_char_p

    if not all(hasattr(handle, name) for name in _JSON_SYMBOLS):
        return False
    # c_void_p keeps the raw address so the string can be freed afterwards
    handle.nickel_eval_string.argtypes = [ctypes.c_char_p]
    handle.nickel_eval_string.restype = ctypes.c_void_p
    handle.nickel_free_string.argtypes = [ctypes.c_void_p]
    handle.nickel_free_string.restype = None
    return True


def load_library(path: Optional[Path] = None,
                 settings: Optional[Settings] = None) -> "NativeLibrary":
    """Load and bind the native library."""
    path = Path(path) if path is not None else find_library(settings)
    try:
        handle = ctypes.CDLL(str(path))
    except OSError as e:
        raise error_library_load_failed(path, str(e)) from e

    missing = [name for name in _REQUIRED_SYMBOLS if not hasattr(handle, name)]
    if missing:
        raise error_library_load_failed(path, f"missing symbol(s): {', '.join(missing)}")

    has_json = bind_signatures(handle)
    logger.info("loaded Nickel native library %s", path)
    return NativeLibrary(handle, path=path, has_json=has_json)


@dataclass
class NativeOutcome:
    """
    Result of one native call: copied bytes/text, or the error message.

    The error is read inside the same critical section as the call, so it
    always belongs to this call.
    """
    data: Optional[bytes] = None
    text: Optional[str] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None


def _c_arg(text: str, what: str) -> bytes:
    if "\0" in text:
        raise error_evaluation_failed(f"{what} contains a NUL byte")
    return text.encode("utf-8")


class NativeLibrary:
    """A bound native evaluator.

    ``handle`` is a ``ctypes.CDLL`` whose signatures were declared with
    :func:`bind_signatures`, or any object exposing the same callables.
    Calls on one instance are serialized because the library keeps a single
    last-error slot.
    """

    def __init__(self, handle, path: Optional[Path] = None, has_json: bool = True):
        self._handle = handle
        self.path = path
        self.has_json = has_json
        self._lock = threading.Lock()

    def __repr__(self) -> str:
        return f"NativeLibrary({str(self.path) if self.path else '<in-process>'})"

    def _last_error(self) -> str:
        raw = self._handle.nickel_get_error()
        if not raw:
            return "Nickel evaluation failed with unknown error"
        return raw.decode("utf-8", errors="replace")

    def _call_buffer(self, fn, arg: bytes) -> NativeOutcome:
        with self._lock:
            descriptor = fn(arg)
            if is_null(descriptor):
                return NativeOutcome(error=self._last_error())
            data = take_bytes(descriptor, self._handle.nickel_free_buffer)
        return NativeOutcome(data=data)

    def eval_native(self, code: str) -> NativeOutcome:
        """Evaluate source text, returning the wire-encoded result."""
        return self._call_buffer(self._handle.nickel_eval_native, _c_arg(code, "source"))

    def eval_file_native(self, path) -> NativeOutcome:
        """Evaluate a file; imports resolve relative to each importing file."""
        return self._call_buffer(self._handle.nickel_eval_file_native,
                                 _c_arg(str(path), "path"))

    def eval_json(self, code: str) -> NativeOutcome:
        """Evaluate source text, returning the result serialized as JSON."""
        if not self.has_json:
            raise error_library_load_failed(self.path, "JSON entry points not exported")
        arg = _c_arg(code, "source")
        with self._lock:
            address = self._handle.nickel_eval_string(arg)
            if not address:
                return NativeOutcome(error=self._last_error())
            try:
                text = take_string(address, self._handle.nickel_free_string)
            except UnicodeDecodeError as e:
                raise error_unreadable_output("json", str(e)) from e
        return NativeOutcome(text=text)
