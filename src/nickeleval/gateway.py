"""
Evaluation gateway.

Routes source text or files to a backend and turns the result into a value:

- Native (embedded library, binary protocol): `evaluate_native`,
  `evaluate_file_native`. Int/Float distinction and enums are preserved.
- Process (``nickel export``, textual): `evaluate`, `evaluate_file`,
  `export`. Numbers go through a JSON/YAML/TOML parser, so this path is
  lossy by construction; it exists for interoperability.

Each call is one-shot. There is no retry inside the gateway.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import replace
from enum import Enum
from functools import lru_cache
from pathlib import Path
from typing import Any, Callable, Optional, Union

from . import process
from .config import Settings, get_settings
from .decoder import decode
from .errors import ProtocolError, error_evaluation_failed, error_file_not_found
from .formats import ExportFormat, parse_export, parse_format
from .native import NativeLibrary, NativeOutcome, load_library

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]


class CallState(Enum):
    """Lifecycle of a single evaluation call."""
    IDLE = "idle"
    INVOKED = "invoked"
    BUFFER_READY = "buffer_ready"
    FAILED = "failed"
    DECODING = "decoding"
    DECODED = "decoded"
    PROTOCOL_ERROR = "protocol_error"


_TRANSITIONS = {
    CallState.IDLE: {CallState.INVOKED},
    CallState.INVOKED: {CallState.BUFFER_READY, CallState.FAILED},
    CallState.BUFFER_READY: {CallState.DECODING},
    CallState.DECODING: {CallState.DECODED, CallState.PROTOCOL_ERROR},
    CallState.FAILED: set(),
    CallState.DECODED: set(),
    CallState.PROTOCOL_ERROR: set(),
}

TERMINAL_STATES = frozenset(s for s, nxt in _TRANSITIONS.items() if not nxt)


class EvaluationCall:
    """Tracks the state of one call through the gateway."""

    def __init__(self, label: str):
        self.label = label
        self.state = CallState.IDLE
        self.history = [CallState.IDLE]

    def advance(self, new_state: CallState) -> None:
        if new_state not in _TRANSITIONS[self.state]:
            raise RuntimeError(f"invalid call transition {self.state.value} -> {new_state.value}")
        logger.debug("%s: %s -> %s", self.label, self.state.value, new_state.value)
        self.state = new_state
        self.history.append(new_state)

    @property
    def finished(self) -> bool:
        return self.state in TERMINAL_STATES


def _existing_file(path: PathLike) -> Path:
    """Resolve a source path, failing before any backend is invoked."""
    path = Path(path).expanduser()
    if not path.is_file():
        raise error_file_not_found(path)
    return path.resolve()


class Evaluator:
    """Evaluates Nickel code through the native library or the CLI.

    Backends are located lazily: a missing library only matters to the
    native methods, a missing executable only to the process methods.
    """

    def __init__(self, settings: Optional[Settings] = None, *,
                 library: Optional[NativeLibrary] = None,
                 executable: Optional[PathLike] = None):
        settings = settings or get_settings()
        if executable is not None:
            settings = replace(settings, executable=Path(executable))
        self.settings = settings
        self._library = library
        self._library_lock = threading.Lock()

    @property
    def library(self) -> NativeLibrary:
        with self._library_lock:
            if self._library is None:
                self._library = load_library(settings=self.settings)
            return self._library

    # --- native, binary protocol ---

    def _invoke(self, call: EvaluationCall, invoke: Callable[[], NativeOutcome]) -> bytes:
        call.advance(CallState.INVOKED)
        outcome = invoke()
        if not outcome.ok:
            call.advance(CallState.FAILED)
            raise error_evaluation_failed(outcome.error)
        call.advance(CallState.BUFFER_READY)
        return outcome.data

    def _decode(self, call: EvaluationCall, data: bytes) -> Any:
        call.advance(CallState.DECODING)
        try:
            value = decode(data, strict=self.settings.strict,
                           max_depth=self.settings.max_depth)
        except ProtocolError:
            call.advance(CallState.PROTOCOL_ERROR)
            raise
        call.advance(CallState.DECODED)
        return value

    def export_binary(self, code: str) -> bytes:
        """Evaluate source text and return the raw wire buffer (copied)."""
        library = self.library
        call = EvaluationCall("export_binary")
        # raw export stops at BUFFER_READY: the bytes are handed over undecoded
        return self._invoke(call, lambda: library.eval_native(code))

    def export_file_binary(self, path: PathLike) -> bytes:
        source = _existing_file(path)
        library = self.library
        call = EvaluationCall(f"export_file_binary({source.name})")
        return self._invoke(call, lambda: library.eval_file_native(source))

    def evaluate_native(self, code: str) -> Any:
        """Evaluate source text and decode the binary result.

        Integers stay ``int``, decimals stay ``float``, enums come back as
        :class:`~nickeleval.values.NickelEnum`.
        """
        library = self.library
        call = EvaluationCall("evaluate_native")
        data = self._invoke(call, lambda: library.eval_native(code))
        return self._decode(call, data)

    def evaluate_file_native(self, path: PathLike) -> Any:
        """Evaluate a file; imports resolve relative to each importing file."""
        source = _existing_file(path)
        library = self.library
        call = EvaluationCall(f"evaluate_file_native({source.name})")
        data = self._invoke(call, lambda: library.eval_file_native(source))
        return self._decode(call, data)

    def evaluate_json_native(self, code: str) -> Any:
        """Evaluate through the library's JSON entry point (lossy numbers)."""
        outcome = self.library.eval_json(code)
        if not outcome.ok:
            raise error_evaluation_failed(outcome.error)
        return parse_export(outcome.text, ExportFormat.JSON)

    # --- process, textual ---

    def export(self, code: str, format: Union[str, ExportFormat] = ExportFormat.JSON):
        """Export source text; ``binary`` returns wire bytes, others text."""
        fmt = parse_format(format)
        if fmt is ExportFormat.BINARY:
            return self.export_binary(code)
        return process.export_source(code, fmt, self.settings)

    def export_file(self, path: PathLike, format: Union[str, ExportFormat] = ExportFormat.JSON):
        fmt = parse_format(format)
        if fmt is ExportFormat.BINARY:
            return self.export_file_binary(path)
        return process.export_path(_existing_file(path), fmt, self.settings)

    def evaluate(self, code: str) -> Any:
        """Evaluate source text with the CLI and parse its JSON export."""
        return parse_export(self.export(code, ExportFormat.JSON), ExportFormat.JSON)

    def evaluate_file(self, path: PathLike) -> Any:
        """Evaluate a file with the CLI and parse its JSON export."""
        return parse_export(self.export_file(path, ExportFormat.JSON), ExportFormat.JSON)

    def to_json(self, code: str) -> str:
        return self.export(code, ExportFormat.JSON)

    def to_yaml(self, code: str) -> str:
        return self.export(code, ExportFormat.YAML)

    def to_toml(self, code: str) -> str:
        return self.export(code, ExportFormat.TOML)


@lru_cache(maxsize=None)
def default_evaluator() -> Evaluator:
    """Shared evaluator built from environment settings."""
    return Evaluator()


def evaluate(code: str) -> Any:
    return default_evaluator().evaluate(code)


def evaluate_file(path: PathLike) -> Any:
    return default_evaluator().evaluate_file(path)


def evaluate_native(code: str) -> Any:
    return default_evaluator().evaluate_native(code)


def evaluate_file_native(path: PathLike) -> Any:
    return default_evaluator().evaluate_file_native(path)


def evaluate_json_native(code: str) -> Any:
    return default_evaluator().evaluate_json_native(code)


def export(code: str, format: Union[str, ExportFormat] = ExportFormat.JSON):
    return default_evaluator().export(code, format)


def export_file(path: PathLike, format: Union[str, ExportFormat] = ExportFormat.JSON):
    return default_evaluator().export_file(path, format)


def to_json(code: str) -> str:
    return default_evaluator().to_json(code)


def to_yaml(code: str) -> str:
    return default_evaluator().to_yaml(code)


def to_toml(code: str) -> str:
    return default_evaluator().to_toml(code)


ncl = evaluate
