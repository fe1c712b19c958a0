"""
Configuration for one generation run.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from .path_utils import canonicalize


@dataclass(frozen=True)
class GenerateConfig:
    """Settings shared by every package resolved in a run."""

    cargo_toml: Path = Path("./Cargo.toml")
    output: Path = Path("./crate-derivations.json")
    crate_hashes: Optional[Path] = None
    locked: bool = True
    skip_failed: bool = False

    def root_directory(self) -> Path:
        """Canonical directory containing the root manifest."""
        return canonicalize(self.cargo_toml).parent
