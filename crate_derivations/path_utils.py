"""
Shared path helpers.
"""

from __future__ import annotations

import os
from pathlib import Path, PurePath, PurePosixPath
from typing import Optional

from .errors import PathResolutionFailure


SELF_REFERENCE = "./."
SAME_ROOT_PREFIX = "./"


def canonicalize(path: Path) -> Path:
    """Return the absolute, symlink-free form of an existing path."""
    try:
        return Path(path).resolve(strict=True)
    except OSError as e:
        raise PathResolutionFailure(f"Could not canonicalize {path}: {e}", Path(path)) from e


def diff_paths(path: PurePath, base: PurePath) -> PurePosixPath:
    """Lexical relative path leading from `base` to `path`."""
    return PurePosixPath(Path(os.path.relpath(path, base)).as_posix())


def strip_prefix(path: PurePath, prefix: PurePath) -> Optional[str]:
    """Return `path` relative to `prefix`, or None if it is not beneath it."""
    try:
        return PurePath(path).relative_to(prefix).as_posix()
    except ValueError:
        return None


def relative_source_directory(package_dir: Path, root: Path) -> str:
    """Express a package directory relative to the configured root.

    Packages outside the root keep their ``../`` prefix so that consumers can
    tell them apart from plain subdirectories, which get a ``./`` prefix.
    """
    if package_dir == root:
        return SELF_REFERENCE
    relative = diff_paths(package_dir, root)
    if relative.parts and relative.parts[0] == "..":
        return str(relative)
    return SAME_ROOT_PREFIX + str(relative)
