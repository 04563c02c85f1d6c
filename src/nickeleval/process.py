"""Subprocess backend: run the ``nickel`` CLI and capture its export."""

from __future__ import annotations

import logging
import shutil
import subprocess
import sys
import tempfile
from pathlib import Path
from typing import Optional, Union

from .config import Settings, get_settings
from .errors import (
    BackendUnavailableError,
    error_evaluation_failed,
    error_executable_not_found,
    error_format_needs_native,
    error_launch_failed,
    error_timeout,
    error_unreadable_output,
)
from .formats import ExportFormat, parse_format

logger = logging.getLogger(__name__)

SOURCE_FILENAME = "input.ncl"


def find_executable(settings: Optional[Settings] = None) -> Path:
    """Locate the Nickel CLI (``NICKELEVAL_EXECUTABLE`` or PATH)."""
    settings = settings or get_settings()
    if settings.executable is not None:
        if settings.executable.is_file():
            return settings.executable
        raise error_executable_not_found()
    found = shutil.which("nickel.exe" if sys.platform == "win32" else "nickel")
    if found is None:
        raise error_executable_not_found()
    return Path(found)


def executable_available(settings: Optional[Settings] = None) -> bool:
    try:
        find_executable(settings)
    except BackendUnavailableError:
        return False
    return True


def _failure_message(stderr: bytes, stdout: bytes) -> str:
    message = stderr.decode("utf-8", errors="replace").strip()
    if not message:
        message = stdout.decode("utf-8", errors="replace").strip()
    return message


def _run_export(executable: Path, source: Path, fmt: ExportFormat,
                timeout: Optional[float]) -> str:
    cmd = [str(executable), "export", f"--format={fmt.value}", str(source)]
    logger.debug("running %s", " ".join(cmd))
    try:
        result = subprocess.run(cmd, capture_output=True, check=True, timeout=timeout)
    except subprocess.CalledProcessError as e:
        raise error_evaluation_failed(_failure_message(e.stderr or b"", e.stdout or b"")) from None
    except subprocess.TimeoutExpired:
        raise error_timeout(timeout) from None
    except OSError as e:
        raise error_launch_failed(executable, str(e)) from e
    try:
        return result.stdout.decode("utf-8")
    except UnicodeDecodeError as e:
        raise error_unreadable_output(fmt.value, str(e)) from e


def _textual(fmt: Union[str, ExportFormat]) -> ExportFormat:
    fmt = parse_format(fmt)
    if not fmt.is_textual:
        raise error_format_needs_native(fmt.value)
    return fmt


def export_source(code: str, fmt: Union[str, ExportFormat] = ExportFormat.JSON,
                  settings: Optional[Settings] = None) -> str:
    """Evaluate source text with the CLI and return its textual export.

    The source is written to a temporary directory that is removed on every
    exit path, including evaluation failure.
    """
    fmt = _textual(fmt)
    settings = settings or get_settings()
    executable = find_executable(settings)

    with tempfile.TemporaryDirectory(prefix="nickeleval-") as tmpdir:
        source = Path(tmpdir) / SOURCE_FILENAME
        source.write_text(code, encoding="utf-8")
        return _run_export(executable, source, fmt, settings.timeout)


def export_path(path: Union[str, Path], fmt: Union[str, ExportFormat] = ExportFormat.JSON,
                settings: Optional[Settings] = None) -> str:
    """Evaluate an existing file with the CLI and return its textual export."""
    fmt = _textual(fmt)
    settings = settings or get_settings()
    executable = find_executable(settings)
    return _run_export(executable, Path(path), fmt, settings.timeout)
