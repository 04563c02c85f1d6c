"""
nickeleval: evaluate Nickel configuration code from Python.

This package provides:
- Gateway: evaluate source text or files through the embedded native
  library (binary protocol) or the ``nickel`` CLI (JSON/YAML/TOML export)
- Decoder: reads the binary value-exchange format into Python values
- Buffer ownership: copies evaluator-owned memory out and frees it once
- Errors: evaluation, protocol and backend failures as distinct exceptions

Usage:
    from nickeleval import evaluate, evaluate_native, NickelEnum

    evaluate('{ port = 8080 }')            # via nickel CLI, JSON
    evaluate_native('42.0')                # 42 (int), via native library
    evaluate_native("'Count 42")           # NickelEnum('Count', 42)
"""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("nickeleval")
except PackageNotFoundError:  # pragma: no cover - handled when package not installed
    __version__ = "unknown"

from .values import (
    Value,
    ValueKind,
    NickelEnum,
    kind_of,
    is_value,
    to_plain,
    enum_val,
)

from .wire import encode

from .decoder import (
    Decoder,
    decode,
    DEFAULT_MAX_DEPTH,
)

from .buffers import (
    NativeBuffer,
    ForeignBuffer,
    ForeignString,
    take_bytes,
    take_string,
)

from .errors import (
    NickelError,
    EvaluationError,
    ProtocolError,
    BackendUnavailableError,
    UnsupportedFormatError,
    BufferLifecycleError,
)

from .config import (
    Settings,
    get_settings,
    reset_settings,
)

from .formats import (
    ExportFormat,
    parse_format,
    parse_export,
)

from .native import (
    NativeLibrary,
    NativeOutcome,
    load_library,
    find_library,
    ffi_available,
)

from .process import (
    find_executable,
    executable_available,
)

from .gateway import (
    CallState,
    EvaluationCall,
    Evaluator,
    default_evaluator,
    evaluate,
    evaluate_file,
    evaluate_native,
    evaluate_file_native,
    evaluate_json_native,
    export,
    export_file,
    to_json,
    to_yaml,
    to_toml,
    ncl,
)

__all__ = [
    # Values
    'Value', 'ValueKind', 'NickelEnum', 'kind_of', 'is_value', 'to_plain', 'enum_val',
    # Wire
    'encode', 'Decoder', 'decode', 'DEFAULT_MAX_DEPTH',
    # Buffers
    'NativeBuffer', 'ForeignBuffer', 'ForeignString', 'take_bytes', 'take_string',
    # Errors
    'NickelError', 'EvaluationError', 'ProtocolError', 'BackendUnavailableError',
    'UnsupportedFormatError', 'BufferLifecycleError',
    # Config
    'Settings', 'get_settings', 'reset_settings',
    # Formats
    'ExportFormat', 'parse_format', 'parse_export',
    # Backends
    'NativeLibrary', 'NativeOutcome', 'load_library', 'find_library', 'ffi_available',
    'find_executable', 'executable_available',
    # Gateway
    'CallState', 'EvaluationCall', 'Evaluator', 'default_evaluator',
    'evaluate', 'evaluate_file', 'evaluate_native', 'evaluate_file_native',
    'evaluate_json_native', 'export', 'export_file', 'to_json', 'to_yaml', 'to_toml', 'ncl',
]
