"""
Interfaces for the resolved dependency graph.
"""

from __future__ import annotations

from typing import Mapping, Optional, Protocol, Tuple

from .models import Node, Package, PackageId


class IndexedGraph(Protocol):
    """Read-only, id-indexed view of a resolved dependency graph."""

    root: Optional[PackageId]
    workspace_members: Tuple[PackageId, ...]
    pkgs_by_id: Mapping[PackageId, Package]
    nodes_by_id: Mapping[PackageId, Node]
