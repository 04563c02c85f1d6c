"""Output format selection and parsing of textual exports.

Textual exports (json, yaml, toml) go through generic structured-data
parsers and therefore lose the Int/Float distinction the binary format
keeps: ``42.0`` and ``42`` come back as whatever the parser decides. Use
the binary path when numeric fidelity matters.
"""

from __future__ import annotations

import json
import tomllib
from enum import Enum
from typing import Any, Union

import yaml

from .errors import error_unreadable_output, error_unsupported_format


class ExportFormat(Enum):
    JSON = "json"
    YAML = "yaml"
    TOML = "toml"
    RAW = "raw"
    BINARY = "binary"

    @property
    def is_textual(self) -> bool:
        return self is not ExportFormat.BINARY


VALID_FORMATS = tuple(f.value for f in ExportFormat)


def parse_format(name: Union[str, ExportFormat]) -> ExportFormat:
    """Resolve a format selector, rejecting unknown names."""
    if isinstance(name, ExportFormat):
        return name
    try:
        return ExportFormat(str(name).strip().lower())
    except ValueError:
        raise error_unsupported_format(name, VALID_FORMATS) from None


def parse_export(text: str, fmt: Union[str, ExportFormat]) -> Any:
    """Parse evaluator text output into Python data."""
    fmt = parse_format(fmt)
    if fmt is ExportFormat.RAW:
        return text
    try:
        if fmt is ExportFormat.JSON:
            return json.loads(text)
        if fmt is ExportFormat.YAML:
            return yaml.safe_load(text)
        if fmt is ExportFormat.TOML:
            return tomllib.loads(text)
    except (ValueError, yaml.YAMLError) as e:
        raise error_unreadable_output(fmt.value, str(e)) from e
    raise error_unsupported_format(fmt.value, [f for f in VALID_FORMATS if f != 'binary'])
