"""
Tests for the subprocess backend (nickeleval.process).
"""

import subprocess
from pathlib import Path
from unittest.mock import patch

import pytest

from nickeleval import (
    BackendUnavailableError, EvaluationError, UnsupportedFormatError, Settings,
)
from nickeleval.process import (
    SOURCE_FILENAME, executable_available, export_path, export_source, find_executable,
)


@pytest.fixture
def settings(tmp_path):
    exe = tmp_path / "nickel"
    exe.write_text("#!/bin/sh\n")
    return Settings(executable=exe)


def _fail(stderr=b"", stdout=b"", code=1):
    return subprocess.CalledProcessError(code, ["nickel"], output=stdout, stderr=stderr)


class TestFindExecutable:

    def test_configured_path(self, settings):
        assert find_executable(settings) == settings.executable
        assert executable_available(settings)

    def test_configured_path_missing(self, tmp_path):
        with pytest.raises(BackendUnavailableError) as exc:
            find_executable(Settings(executable=tmp_path / "missing"))
        assert exc.value.code == "E301"
        assert "nickel-lang.org" in exc.value.hint

    def test_path_lookup(self):
        with patch("nickeleval.process.shutil.which", return_value="/usr/bin/nickel"):
            assert find_executable(Settings()) == Path("/usr/bin/nickel")

    def test_not_on_path(self):
        with patch("nickeleval.process.shutil.which", return_value=None):
            assert not executable_available(Settings())


class TestExportSource:

    def test_writes_source_and_cleans_up(self, settings):
        seen = {}

        def fake_run(cmd, **kwargs):
            source = Path(cmd[-1])
            seen["path"] = source
            seen["text"] = source.read_text(encoding="utf-8")
            return subprocess.CompletedProcess(cmd, 0, stdout=b"3\n", stderr=b"")

        with patch("nickeleval.process.subprocess.run", side_effect=fake_run):
            assert export_source("1 + 2", "json", settings) == "3\n"
        assert seen["text"] == "1 + 2"
        assert seen["path"].name == SOURCE_FILENAME
        assert not seen["path"].exists()
        assert not seen["path"].parent.exists()

    def test_cleans_up_on_failure(self, settings):
        seen = {}

        def fake_run(cmd, **kwargs):
            seen["path"] = Path(cmd[-1])
            raise _fail(stderr=b"error: unbound identifier `x`\n")

        with patch("nickeleval.process.subprocess.run", side_effect=fake_run):
            with pytest.raises(EvaluationError):
                export_source("x", "json", settings)
        assert not seen["path"].parent.exists()

    def test_stderr_message(self, settings):
        with patch("nickeleval.process.subprocess.run",
                   side_effect=_fail(stderr=b"  error: bad  \n", stdout=b"ignored")):
            with pytest.raises(EvaluationError) as exc:
                export_source("bad", "json", settings)
        assert exc.value.message == "error: bad"

    def test_stdout_fallback(self, settings):
        with patch("nickeleval.process.subprocess.run",
                   side_effect=_fail(stdout=b"error on stdout\n")):
            with pytest.raises(EvaluationError) as exc:
                export_source("bad", "json", settings)
        assert exc.value.message == "error on stdout"

    def test_generic_fallback(self, settings):
        with patch("nickeleval.process.subprocess.run", side_effect=_fail()):
            with pytest.raises(EvaluationError) as exc:
                export_source("bad", "json", settings)
        assert exc.value.message == "Nickel evaluation failed with unknown error"

    def test_launch_failure(self, settings):
        with patch("nickeleval.process.subprocess.run",
                   side_effect=PermissionError("permission denied")):
            with pytest.raises(BackendUnavailableError) as exc:
                export_source("1", "json", settings)
        assert exc.value.code == "E304"

    def test_timeout(self, tmp_path, settings):
        timed = Settings(executable=settings.executable, timeout=2.5)
        with patch("nickeleval.process.subprocess.run",
                   side_effect=subprocess.TimeoutExpired(["nickel"], 2.5)) as run:
            with pytest.raises(EvaluationError) as exc:
                export_source("1", "json", timed)
        assert "2.5s" in exc.value.message
        assert run.call_args.kwargs["timeout"] == 2.5

    def test_undecodable_stdout(self, settings):
        with patch("nickeleval.process.subprocess.run",
                   return_value=subprocess.CompletedProcess([], 0, b"\xff\xfe", b"")):
            with pytest.raises(EvaluationError) as exc:
                export_source("1", "raw", settings)
        assert exc.value.code == "E104"

    def test_binary_needs_native(self, settings):
        with patch("nickeleval.process.subprocess.run") as run:
            with pytest.raises(UnsupportedFormatError) as exc:
                export_source("1", "binary", settings)
        assert exc.value.code == "E402"
        run.assert_not_called()

    def test_raw_format_flag(self, settings):
        with patch("nickeleval.process.subprocess.run",
                   return_value=subprocess.CompletedProcess([], 0, b"hello", b"")) as run:
            assert export_source('"hello"', "raw", settings) == "hello"
        assert "--format=raw" in run.call_args[0][0]


class TestExportPath:

    def test_uses_file_in_place(self, settings, tmp_path):
        source = tmp_path / "config.ncl"
        source.write_text("{ a = 1 }")
        with patch("nickeleval.process.subprocess.run",
                   return_value=subprocess.CompletedProcess([], 0, b'{"a": 1}', b"")) as run:
            assert export_path(source, "json", settings) == '{"a": 1}'
        assert run.call_args[0][0][-1] == str(source)
