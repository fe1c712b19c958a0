"""
Core data models for crate derivations.
"""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional, Tuple


DEPENDENCY_KIND_NORMAL = "normal"
DEPENDENCY_KIND_BUILD = "build"
DEPENDENCY_KIND_DEV = "dev"
DEPENDENCY_KIND_UNKNOWN = "unknown"

_KNOWN_KINDS = {DEPENDENCY_KIND_NORMAL, DEPENDENCY_KIND_BUILD, DEPENDENCY_KIND_DEV}


def parse_dependency_kind(value: Optional[str]) -> str:
    """Map a `cargo metadata` dependency kind to one of the known kinds."""
    if value is None:
        return DEPENDENCY_KIND_NORMAL
    if value in _KNOWN_KINDS:
        return value
    return DEPENDENCY_KIND_UNKNOWN


@dataclass(frozen=True, order=True)
class PackageId:
    """Opaque identifier of one resolved package (name, version and source)."""

    value: str

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class Target:
    """One build artifact of a package."""

    name: str
    kind: Tuple[str, ...]
    src_path: Path

    def has_kind(self, kind: str) -> bool:
        return kind in self.kind

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Target":
        return cls(
            name=data.get("name", ""),
            kind=tuple(data.get("kind", [])),
            src_path=Path(data["src_path"]),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {"name": self.name, "kind": list(self.kind), "src_path": str(self.src_path)}


@dataclass(frozen=True)
class Dependency:
    """Dependency as declared in a package manifest."""

    name: str
    kind: str = DEPENDENCY_KIND_NORMAL
    target: Optional[str] = None
    req: str = "*"
    rename: Optional[str] = None
    optional: bool = False

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Dependency":
        return cls(
            name=data["name"],
            kind=parse_dependency_kind(data.get("kind")),
            target=data.get("target"),
            req=data.get("req") or "*",
            rename=data.get("rename"),
            optional=bool(data.get("optional", False)),
        )

    def to_dict(self) -> Dict[str, Any]:
        # `cargo metadata` spells the normal kind as null.
        kind = None if self.kind == DEPENDENCY_KIND_NORMAL else self.kind
        return {
            "name": self.name,
            "kind": kind,
            "target": self.target,
            "req": self.req,
            "rename": self.rename,
            "optional": self.optional,
        }


@dataclass(frozen=True)
class Package:
    """Resolved manifest facts for one package."""

    id: PackageId
    name: str
    version: str
    edition: str
    authors: Tuple[str, ...]
    manifest_path: Path
    targets: Tuple[Target, ...] = ()
    dependencies: Tuple[Dependency, ...] = ()
    source: Optional[str] = None

    @property
    def manifest_dir(self) -> Path:
        return self.manifest_path.parent

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Package":
        return cls(
            id=PackageId(data["id"]),
            name=data["name"],
            version=data["version"],
            edition=data.get("edition", "2015"),
            authors=tuple(data.get("authors") or []),
            manifest_path=Path(data["manifest_path"]),
            targets=tuple(Target.from_dict(t) for t in data.get("targets", [])),
            dependencies=tuple(
                Dependency.from_dict(d) for d in data.get("dependencies", [])
            ),
            source=data.get("source"),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": str(self.id),
            "name": self.name,
            "version": self.version,
            "edition": self.edition,
            "authors": list(self.authors),
            "manifest_path": str(self.manifest_path),
            "targets": [t.to_dict() for t in self.targets],
            "dependencies": [d.to_dict() for d in self.dependencies],
            "source": self.source,
        }


@dataclass(frozen=True)
class NodeDep:
    """A resolved dependency edge of a node."""

    name: str
    pkg: PackageId

    def to_dict(self) -> Dict[str, Any]:
        return {"name": self.name, "pkg": str(self.pkg)}


@dataclass(frozen=True)
class Node:
    """Resolved-graph adjacency record for one package."""

    id: PackageId
    deps: Tuple[NodeDep, ...] = ()
    features: Tuple[str, ...] = ()

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Node":
        if "deps" in data:
            deps = tuple(
                NodeDep(name=d.get("name", ""), pkg=PackageId(d["pkg"]))
                for d in data["deps"]
            )
        else:
            # Older cargo versions only report the bare id list.
            deps = tuple(
                NodeDep(name="", pkg=PackageId(pkg))
                for pkg in data.get("dependencies", [])
            )
        return cls(
            id=PackageId(data["id"]),
            deps=deps,
            features=tuple(data.get("features", [])),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": str(self.id),
            "deps": [d.to_dict() for d in self.deps],
            "features": list(self.features),
        }


@dataclass(frozen=True)
class ResolvedDependency:
    """A dependency edge kept for a derivation."""

    package_id: PackageId
    # cfg expression or target triple gating the dependency, if any.
    target: Optional[str] = None

    def sort_key(self) -> Tuple[PackageId, bool, str]:
        return (self.package_id, self.target is not None, self.target or "")

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ResolvedDependency":
        return cls(package_id=PackageId(data["package_id"]), target=data.get("target"))

    def to_dict(self) -> Dict[str, Any]:
        return {"package_id": str(self.package_id), "target": self.target}


@dataclass(frozen=True)
class CrateDerivation:
    """All data needed to describe the build of one crate."""

    package_id: PackageId
    crate_name: str
    edition: str
    authors: Tuple[str, ...]
    version: str
    source_directory: str
    sha256: Optional[str]
    dependencies: Tuple[ResolvedDependency, ...]
    build_dependencies: Tuple[ResolvedDependency, ...]
    features: Tuple[str, ...]
    # Relative path to the build script.
    build: Optional[str]
    lib_path: Optional[str]
    has_bin: bool
    proc_macro: bool
    # Built from local source rather than treated as an external crate.
    is_root_or_workspace_member: bool

    def with_sha256(self, sha256: Optional[str]) -> "CrateDerivation":
        return dataclasses.replace(self, sha256=sha256)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CrateDerivation":
        return cls(
            package_id=PackageId(data["package_id"]),
            crate_name=data["crate_name"],
            edition=data["edition"],
            authors=tuple(data.get("authors", [])),
            version=data["version"],
            source_directory=data["source_directory"],
            sha256=data.get("sha256"),
            dependencies=tuple(
                ResolvedDependency.from_dict(d) for d in data.get("dependencies", [])
            ),
            build_dependencies=tuple(
                ResolvedDependency.from_dict(d)
                for d in data.get("build_dependencies", [])
            ),
            features=tuple(data.get("features", [])),
            build=data.get("build"),
            lib_path=data.get("lib_path"),
            has_bin=bool(data.get("has_bin", False)),
            proc_macro=bool(data.get("proc_macro", False)),
            is_root_or_workspace_member=bool(
                data.get("is_root_or_workspace_member", False)
            ),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "package_id": str(self.package_id),
            "crate_name": self.crate_name,
            "edition": self.edition,
            "authors": list(self.authors),
            "version": self.version,
            "source_directory": self.source_directory,
            "sha256": self.sha256,
            "dependencies": [d.to_dict() for d in self.dependencies],
            "build_dependencies": [d.to_dict() for d in self.build_dependencies],
            "features": list(self.features),
            "build": self.build,
            "lib_path": self.lib_path,
            "has_bin": self.has_bin,
            "proc_macro": self.proc_macro,
            "is_root_or_workspace_member": self.is_root_or_workspace_member,
        }
