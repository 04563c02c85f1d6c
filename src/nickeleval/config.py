"""Environment-driven settings for nickeleval.

Variables:
    NICKELEVAL_LIBRARY      path to the native evaluator library
    NICKELEVAL_EXECUTABLE   path to the ``nickel`` command-line tool
    NICKELEVAL_MAX_DEPTH    decoder nesting bound (default 256)
    NICKELEVAL_STRICT       reject trailing bytes after a value (default true)
    NICKELEVAL_TIMEOUT      subprocess timeout in seconds (default: none)
    NICKELEVAL_BUILD_FFI    allow ``build`` to invoke cargo (default false)
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import Mapping, Optional

from .decoder import DEFAULT_MAX_DEPTH

_TRUE = ('1', 'true', 'yes', 'on')
_FALSE = ('0', 'false', 'no', 'off', '')


def _parse_bool(name: str, raw: str) -> bool:
    value = raw.strip().lower()
    if value in _TRUE:
        return True
    if value in _FALSE:
        return False
    raise ValueError(f"{name} must be a boolean, got {raw!r}")


def _parse_path(raw: Optional[str]) -> Optional[Path]:
    if raw is None or not raw.strip():
        return None
    return Path(raw.strip()).expanduser()


@dataclass(frozen=True)
class Settings:
    """Resolved configuration for evaluator backends and the decoder."""
    library_path: Optional[Path] = None
    executable: Optional[Path] = None
    max_depth: int = DEFAULT_MAX_DEPTH
    strict: bool = True
    timeout: Optional[float] = None
    build_ffi: bool = False

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "Settings":
        env = os.environ if environ is None else environ

        max_depth = DEFAULT_MAX_DEPTH
        raw = env.get('NICKELEVAL_MAX_DEPTH')
        if raw:
            try:
                max_depth = int(raw)
            except ValueError:
                raise ValueError(f"NICKELEVAL_MAX_DEPTH must be an integer, got {raw!r}") from None
            if max_depth < 1:
                raise ValueError(f"NICKELEVAL_MAX_DEPTH must be positive, got {max_depth}")

        timeout = None
        raw = env.get('NICKELEVAL_TIMEOUT')
        if raw:
            try:
                timeout = float(raw)
            except ValueError:
                raise ValueError(f"NICKELEVAL_TIMEOUT must be a number, got {raw!r}") from None
            if timeout <= 0:
                raise ValueError(f"NICKELEVAL_TIMEOUT must be positive, got {timeout}")

        return cls(
            library_path=_parse_path(env.get('NICKELEVAL_LIBRARY')),
            executable=_parse_path(env.get('NICKELEVAL_EXECUTABLE')),
            max_depth=max_depth,
            strict=_parse_bool('NICKELEVAL_STRICT', env.get('NICKELEVAL_STRICT', 'true')),
            timeout=timeout,
            build_ffi=_parse_bool('NICKELEVAL_BUILD_FFI', env.get('NICKELEVAL_BUILD_FFI', 'false')),
        )


@lru_cache(maxsize=None)
def get_settings() -> Settings:
    """Settings from the process environment, read once."""
    return Settings.from_env()


def reset_settings() -> None:
    """Forget cached settings so the environment is read again."""
    get_settings.cache_clear()
