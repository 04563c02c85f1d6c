"""Build the native evaluator library from its Rust crate with cargo."""

from __future__ import annotations

import logging
import shutil
import subprocess
from pathlib import Path
from typing import Optional, Union

from .native import BUNDLED_LIB_DIR, library_name

logger = logging.getLogger(__name__)


def build_native_library(crate_dir: Union[str, Path],
                         dest_dir: Optional[Union[str, Path]] = None) -> Optional[Path]:
    """Run ``cargo build --release`` and copy the library next to the package.

    Returns the installed library path, or None when the crate or cargo is
    missing or the build fails (the reason is logged).
    """
    crate_dir = Path(crate_dir).expanduser()
    dest_dir = Path(dest_dir) if dest_dir is not None else BUNDLED_LIB_DIR

    if not (crate_dir / "Cargo.toml").is_file():
        logger.warning("Rust crate not found at %s, skipping native build", crate_dir)
        return None

    cargo = shutil.which("cargo")
    if cargo is None:
        logger.warning("cargo not found in PATH, skipping native build. "
                       "Install Rust: https://rustup.rs/")
        return None

    logger.info("building native library in %s", crate_dir)
    try:
        subprocess.run([cargo, "build", "--release"], cwd=crate_dir,
                       capture_output=True, check=True)
    except subprocess.CalledProcessError as e:
        logger.warning("cargo build failed:\n%s",
                       (e.stderr or b"").decode("utf-8", errors="replace").strip())
        return None

    built = crate_dir / "target" / "release" / library_name()
    if not built.is_file():
        logger.warning("built library not found at %s", built)
        return None

    dest_dir.mkdir(parents=True, exist_ok=True)
    target = dest_dir / library_name()
    shutil.copy2(built, target)
    logger.info("native library installed at %s", target)
    return target
