"""
Resolve dependencies and other data for crate derivations.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Dict, Iterable, List, Mapping, Optional, Tuple

from .config import GenerateConfig
from .errors import DerivationError, GraphInconsistency
from .interfaces import IndexedGraph
from .models import (
    DEPENDENCY_KIND_BUILD,
    DEPENDENCY_KIND_NORMAL,
    DEPENDENCY_KIND_UNKNOWN,
    CrateDerivation,
    Dependency,
    Node,
    Package,
    ResolvedDependency,
)
from .path_utils import relative_source_directory, strip_prefix


logger = logging.getLogger(__name__)

DependencyFilter = Callable[[Dependency], bool]


def normalize_package_name(package_name: str) -> str:
    """Normalize a package name the way cargo does."""
    return package_name.replace("-", "_")


def is_normal(dependency: Dependency) -> bool:
    return dependency.kind in (DEPENDENCY_KIND_NORMAL, DEPENDENCY_KIND_UNKNOWN)


def is_build(dependency: Dependency) -> bool:
    return dependency.kind == DEPENDENCY_KIND_BUILD


def _to_json(record) -> str:
    return json.dumps(record.to_dict(), indent=2)


@dataclass(frozen=True)
class ResolvedDependencies:
    """The resolved dependencies of one package."""

    node: Node
    # Packages of the node's edges, ordered by package id.
    packages: Tuple[Package, ...]
    dependencies: Tuple[Dependency, ...]

    @classmethod
    def new(cls, metadata: IndexedGraph, package: Package) -> "ResolvedDependencies":
        node = metadata.nodes_by_id.get(package.id)
        if node is None:
            raise GraphInconsistency(
                f"Could not find node for {package.id}.\n-- Package\n{_to_json(package)}",
                package_id=package.id,
            )

        packages = []
        for dep in node.deps:
            dep_package = metadata.pkgs_by_id.get(dep.pkg)
            if dep_package is None:
                raise GraphInconsistency(
                    f"No matching package for dependency with package id {dep.pkg} "
                    f"in {package.id}.\n-- Package\n{_to_json(package)}"
                    f"\n-- Node\n{_to_json(node)}",
                    package_id=package.id,
                    missing_id=dep.pkg,
                )
            packages.append(dep_package)
        packages.sort(key=lambda p: p.id)

        return cls(node=node, packages=tuple(packages), dependencies=package.dependencies)

    def filtered_dependencies(
        self, dependency_filter: DependencyFilter
    ) -> List[ResolvedDependency]:
        """Match resolved edges against declared dependencies passing the filter.

        Declared dependencies that normalize to the same name are all kept: an
        edge yields one entry per distinct platform condition, and a single
        unconditional entry when any of them is unconditional.
        """
        conditions_by_name: Dict[str, set] = {}
        for dependency in self.dependencies:
            if not dependency_filter(dependency):
                continue
            name = normalize_package_name(dependency.name)
            conditions_by_name.setdefault(name, set()).add(dependency.target)

        resolved = []
        for package in self.packages:
            conditions = conditions_by_name.get(normalize_package_name(package.name))
            if conditions is None:
                continue
            if None in conditions:
                resolved.append(ResolvedDependency(package_id=package.id, target=None))
                continue
            for target in sorted(conditions):
                resolved.append(ResolvedDependency(package_id=package.id, target=target))
        resolved.sort(key=ResolvedDependency.sort_key)
        return resolved


def _first_target_path(package: Package, kind: str) -> Optional[str]:
    for target in package.targets:
        if target.has_kind(kind):
            return strip_prefix(target.src_path, package.manifest_dir)
    return None


def _has_target(package: Package, kind: str) -> bool:
    return any(target.has_kind(kind) for target in package.targets)


def resolve_derivation(
    root: Path, metadata: IndexedGraph, package: Package
) -> CrateDerivation:
    """Build the derivation of one package.

    Args:
        root: Canonical directory that source directories are relative to
        metadata: Indexed dependency graph
        package: Package to describe

    Returns:
        The derivation, with ``sha256`` left unset
    """
    resolved_dependencies = ResolvedDependencies.new(metadata, package)

    build_dependencies = resolved_dependencies.filtered_dependencies(is_build)
    dependencies = resolved_dependencies.filtered_dependencies(is_normal)

    package_dir = package.manifest_dir.resolve()
    source_directory = relative_source_directory(package_dir, root)

    members = list(metadata.workspace_members)
    if metadata.root is not None:
        members.append(metadata.root)

    logger.debug(
        "Resolved %s: %s dependencies, %s build dependencies",
        package.id, len(dependencies), len(build_dependencies),
    )
    return CrateDerivation(
        package_id=package.id,
        crate_name=package.name,
        edition=package.edition,
        authors=package.authors,
        version=package.version,
        source_directory=source_directory,
        # Filled later from the crate hashes, never computed here.
        sha256=None,
        dependencies=tuple(dependencies),
        build_dependencies=tuple(build_dependencies),
        features=resolved_dependencies.node.features,
        build=_first_target_path(package, "custom-build"),
        lib_path=_first_target_path(package, "lib"),
        has_bin=_has_target(package, "bin"),
        proc_macro=_has_target(package, "proc-macro"),
        is_root_or_workspace_member=package.id in members,
    )


def resolve_all(config: GenerateConfig, metadata: IndexedGraph) -> List[CrateDerivation]:
    """Resolve every package of the graph, ordered by package id."""
    root = config.root_directory()
    derivations = []
    for package_id in sorted(metadata.pkgs_by_id):
        package = metadata.pkgs_by_id[package_id]
        try:
            derivations.append(resolve_derivation(root, metadata, package))
        except DerivationError as e:
            if not config.skip_failed:
                raise
            logger.warning("Skipping %s: %s", package_id, e)
    logger.info("Resolved %s of %s packages", len(derivations), len(metadata.pkgs_by_id))
    return derivations


def apply_crate_hashes(
    derivations: Iterable[CrateDerivation], hashes: Mapping[str, str]
) -> List[CrateDerivation]:
    """Return the derivations with sha256 set from a package id -> hash mapping."""
    filled = []
    for derivation in derivations:
        sha256 = hashes.get(str(derivation.package_id))
        if sha256 is None:
            filled.append(derivation)
        else:
            filled.append(derivation.with_sha256(sha256))
    return filled


def load_crate_hashes(path: Path) -> Dict[str, str]:
    """Read a JSON object mapping package ids to sha256 digests."""
    try:
        with open(path, encoding="utf-8") as f:
            hashes = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        raise DerivationError(f"Could not read crate hashes from {path}: {e}") from e
    if not isinstance(hashes, dict):
        raise DerivationError(f"Expected a JSON object in {path}")
    return hashes
