"""
Load the resolved dependency graph reported by `cargo metadata`.
"""

from __future__ import annotations

import json
import logging
import subprocess
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional, Tuple

from .errors import MetadataError
from .models import Node, Package, PackageId


logger = logging.getLogger(__name__)

CARGO_METADATA_TIMEOUT = 300


@dataclass(frozen=True)
class IndexedMetadata:
    """Packages and resolve nodes of one metadata document, keyed by id."""

    root: Optional[PackageId] = None
    workspace_members: Tuple[PackageId, ...] = ()
    pkgs_by_id: Dict[PackageId, Package] = field(default_factory=dict)
    nodes_by_id: Dict[PackageId, Node] = field(default_factory=dict)

    @classmethod
    def from_json(cls, data: Dict) -> "IndexedMetadata":
        resolve = data.get("resolve")
        if not resolve:
            raise MetadataError(
                "Metadata has no resolve section; was it produced with --no-deps?"
            )

        pkgs_by_id: Dict[PackageId, Package] = {}
        for raw in data.get("packages", []):
            try:
                package = Package.from_dict(raw)
            except KeyError as e:
                raise MetadataError(f"Package entry is missing field {e}") from e
            if package.id in pkgs_by_id:
                raise MetadataError(f"Duplicate package id {package.id}")
            pkgs_by_id[package.id] = package

        nodes_by_id: Dict[PackageId, Node] = {}
        for raw in resolve.get("nodes", []):
            try:
                node = Node.from_dict(raw)
            except KeyError as e:
                raise MetadataError(f"Resolve node is missing field {e}") from e
            nodes_by_id[node.id] = node

        root = resolve.get("root")
        logger.debug(
            "Indexed %s packages and %s nodes", len(pkgs_by_id), len(nodes_by_id)
        )
        return cls(
            root=PackageId(root) if root else None,
            workspace_members=tuple(
                PackageId(member) for member in data.get("workspace_members", [])
            ),
            pkgs_by_id=pkgs_by_id,
            nodes_by_id=nodes_by_id,
        )

    def packages(self) -> List[Package]:
        """All packages, ordered by package id."""
        return [self.pkgs_by_id[pkg_id] for pkg_id in sorted(self.pkgs_by_id)]


def load_metadata_json(path: Path) -> IndexedMetadata:
    """Index a metadata document previously saved to disk."""
    try:
        with open(path, encoding="utf-8") as f:
            data = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        raise MetadataError(f"Could not read metadata from {path}: {e}") from e
    return IndexedMetadata.from_json(data)


def run_cargo_metadata(
    cargo_toml: Path, locked: bool = True, timeout: int = CARGO_METADATA_TIMEOUT
) -> IndexedMetadata:
    """Run `cargo metadata` for a manifest and index its output."""
    cmd = [
        'cargo', 'metadata',
        '--format-version', '1',
        '--manifest-path', str(cargo_toml),
    ]
    if locked:
        cmd.append('--locked')

    logger.info("Running %s", " ".join(cmd))
    try:
        result = subprocess.run(
            cmd,
            capture_output=True,
            text=True,
            timeout=timeout
        )
    except (subprocess.TimeoutExpired, FileNotFoundError) as e:
        raise MetadataError(f"cargo metadata failed for {cargo_toml}: {e}") from e

    if result.returncode != 0:
        raise MetadataError(
            f"cargo metadata exited with {result.returncode} for {cargo_toml}:\n"
            f"{result.stderr.strip()}"
        )

    try:
        data = json.loads(result.stdout)
    except json.JSONDecodeError as e:
        raise MetadataError(f"cargo metadata printed invalid JSON: {e}") from e
    return IndexedMetadata.from_json(data)
