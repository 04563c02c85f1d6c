"""
Tests for format selection and textual parsing (nickeleval.formats).
"""

import pytest

from nickeleval import EvaluationError, UnsupportedFormatError
from nickeleval.formats import ExportFormat, VALID_FORMATS, parse_export, parse_format


class TestParseFormat:

    def test_known_formats(self):
        assert VALID_FORMATS == ("json", "yaml", "toml", "raw", "binary")
        for name in VALID_FORMATS:
            assert parse_format(name).value == name

    def test_case_insensitive(self):
        assert parse_format("JSON") is ExportFormat.JSON

    def test_enum_passthrough(self):
        assert parse_format(ExportFormat.TOML) is ExportFormat.TOML

    def test_rejects_unknown(self):
        with pytest.raises(UnsupportedFormatError) as exc:
            parse_format("invalid")
        assert "Valid formats: json, yaml, toml, raw, binary" in exc.value.message

    def test_textual(self):
        assert ExportFormat.JSON.is_textual
        assert not ExportFormat.BINARY.is_textual


class TestParseExport:
    """Textual exports merge ints and floats; these tests pin what comes back."""

    def test_json(self):
        assert parse_export('{"a": 1, "b": [true, null]}', "json") == {"a": 1, "b": [True, None]}

    def test_yaml(self):
        assert parse_export("name: myapp\nport: 8080\n", "yaml") == {"name": "myapp", "port": 8080}

    def test_toml(self):
        assert parse_export('name = "myapp"\nport = 8080\n', "toml") == {"name": "myapp", "port": 8080}

    def test_raw(self):
        assert parse_export("hello", "raw") == "hello"

    def test_binary_is_not_text(self):
        with pytest.raises(UnsupportedFormatError):
            parse_export("", "binary")

    @pytest.mark.parametrize("fmt,text", [
        ("json", "{not json"),
        ("yaml", "a: [1, 2"),
        ("toml", "a = = 1"),
    ])
    def test_malformed_output(self, fmt, text):
        with pytest.raises(EvaluationError) as exc:
            parse_export(text, fmt)
        assert exc.value.code == "E104"
        assert fmt in exc.value.message
