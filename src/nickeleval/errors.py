"""
Exceptions raised across the evaluator boundary.

Error code ranges:
- E1xx: Evaluation errors (the Nickel program itself is invalid)
- E2xx: Protocol errors (the binary buffer is malformed)
- E3xx: Backend errors (evaluator process or library unavailable)
- E4xx: Configuration errors (bad output format selector)
- E5xx: Buffer ownership errors
"""

from typing import Optional


class NickelError(Exception):
    """Base exception for every failure surfaced by nickeleval."""

    code = "E000"

    def __init__(self, message: str, code: Optional[str] = None):
        self.message = message
        if code is not None:
            self.code = code
        super().__init__(message)

    def __str__(self) -> str:
        return f"[{self.code}] {self.message}"


class EvaluationError(NickelError):
    """The source program is invalid (E1xx)."""

    code = "E100"


class ProtocolError(NickelError):
    """The binary buffer disagrees with the wire format (E2xx)."""

    code = "E200"

    def __init__(self, message: str, offset: int = 0, code: Optional[str] = None):
        self.offset = offset
        super().__init__(message, code)

    def __str__(self) -> str:
        return f"[{self.code}] {self.message} (at byte {self.offset})"


class BackendUnavailableError(NickelError):
    """The evaluator process or native library cannot be used (E3xx)."""

    code = "E300"

    def __init__(self, message: str, hint: Optional[str] = None, code: Optional[str] = None):
        self.hint = hint
        super().__init__(message, code)

    def __str__(self) -> str:
        text = super().__str__()
        if self.hint:
            text += f"\n    = hint: {self.hint}"
        return text


class UnsupportedFormatError(NickelError, ValueError):
    """Unknown output format selector (E4xx)."""

    code = "E400"


class BufferLifecycleError(NickelError, RuntimeError):
    """A foreign buffer was used outside its ownership window (E5xx)."""

    code = "E500"


# --- Evaluation error codes ---

def error_evaluation_failed(message: str) -> EvaluationError:
    """E101: Evaluator reported a failure."""
    return EvaluationError(message or "Nickel evaluation failed with unknown error", "E101")


def error_file_not_found(path) -> EvaluationError:
    """E102: Source file for file-mode evaluation does not exist."""
    return EvaluationError(f"File not found: {path}", "E102")


def error_timeout(seconds: float) -> EvaluationError:
    """E103: Subprocess evaluation exceeded its time limit."""
    return EvaluationError(f"Nickel evaluation timed out after {seconds:g}s", "E103")


def error_unreadable_output(fmt: str, detail: str) -> EvaluationError:
    """E104: Evaluator output could not be decoded or parsed as the requested format."""
    return EvaluationError(f"Unreadable {fmt} output from Nickel: {detail}", "E104")


# --- Protocol error codes ---

def error_truncated(what: str, needed: int, remaining: int, offset: int) -> ProtocolError:
    """E201: Buffer ends before a payload is complete."""
    return ProtocolError(
        f"truncated {what}: need {needed} byte(s), {remaining} remaining",
        offset, "E201",
    )


def error_unknown_tag(tag: int, offset: int) -> ProtocolError:
    """E202: Type tag outside 0x00-0x07."""
    return ProtocolError(f"unknown type tag 0x{tag:02x}", offset, "E202")


def error_invalid_utf8(what: str, offset: int) -> ProtocolError:
    """E203: String bytes are not valid UTF-8."""
    return ProtocolError(f"invalid UTF-8 in {what}", offset, "E203")


def error_trailing_bytes(count: int, offset: int) -> ProtocolError:
    """E204: Bytes left over after the root value."""
    return ProtocolError(f"{count} trailing byte(s) after value", offset, "E204")


def error_too_deep(limit: int, offset: int) -> ProtocolError:
    """E205: Nesting exceeds the decoder depth bound."""
    return ProtocolError(f"nesting deeper than {limit} levels", offset, "E205")


def error_duplicate_key(key: str, offset: int) -> ProtocolError:
    """E206: Record repeats a field name."""
    return ProtocolError(f"duplicate record key '{key}'", offset, "E206")


def error_empty_buffer() -> ProtocolError:
    """E207: Zero-length buffer where a value was expected."""
    return ProtocolError("empty buffer", 0, "E207")


# --- Backend error codes ---

def error_executable_not_found() -> BackendUnavailableError:
    """E301: nickel CLI is not on PATH."""
    return BackendUnavailableError(
        "Nickel executable not found in PATH",
        hint="install Nickel from https://nickel-lang.org/ or set NICKELEVAL_EXECUTABLE",
        code="E301",
    )


def error_library_not_found(searched) -> BackendUnavailableError:
    """E302: Native library could not be located."""
    where = ", ".join(str(p) for p in searched) or "<nowhere>"
    return BackendUnavailableError(
        f"Nickel native library not found (searched: {where})",
        hint="build it with `python -m nickeleval build <crate-dir>` "
             "(requires cargo) or set NICKELEVAL_LIBRARY",
        code="E302",
    )


def error_library_load_failed(path, reason: str) -> BackendUnavailableError:
    """E303: Native library exists but cannot be loaded or lacks symbols."""
    return BackendUnavailableError(
        f"cannot load Nickel native library {path}: {reason}",
        hint="rebuild the library against the current nickeleval release",
        code="E303",
    )


def error_launch_failed(executable, reason: str) -> BackendUnavailableError:
    """E304: nickel CLI could not be started."""
    return BackendUnavailableError(
        f"cannot run {executable}: {reason}",
        hint="check that the Nickel executable is installed and runnable",
        code="E304",
    )


# --- Configuration error codes ---

def error_unsupported_format(name, valid) -> UnsupportedFormatError:
    """E401: Output format selector not recognized."""
    return UnsupportedFormatError(
        f"Unsupported format: {name}. Valid formats: {', '.join(valid)}", "E401",
    )


def error_format_needs_native(name: str) -> UnsupportedFormatError:
    """E402: Format only produced by the embedded evaluator."""
    return UnsupportedFormatError(
        f"format '{name}' is only available from the native backend", "E402",
    )


# --- Buffer ownership error codes ---

def error_double_release() -> BufferLifecycleError:
    """E501: Release requested twice for one buffer."""
    return BufferLifecycleError("buffer already released", "E501")


def error_use_after_release() -> BufferLifecycleError:
    """E502: Copy requested after release."""
    return BufferLifecycleError("buffer used after release", "E502")


def error_null_buffer() -> BufferLifecycleError:
    """E503: A null descriptor cannot be owned."""
    return BufferLifecycleError("null buffer descriptor carries no allocation", "E503")
