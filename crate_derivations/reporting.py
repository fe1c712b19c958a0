"""
Reporting and export utilities.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Dict, Iterable, List

import pandas as pd

from .interfaces import IndexedGraph
from .models import CrateDerivation


logger = logging.getLogger(__name__)

SUMMARY_COLUMNS = [
    "package_id",
    "crate_name",
    "version",
    "edition",
    "source_directory",
    "num_dependencies",
    "num_build_dependencies",
    "num_features",
    "has_bin",
    "proc_macro",
    "is_root_or_workspace_member",
    "sha256",
]


def build_info(metadata: IndexedGraph, derivations: Iterable[CrateDerivation]) -> Dict:
    """Top-level document handed to the build-description generator."""
    workspace_members = {}
    for member in metadata.workspace_members:
        package = metadata.pkgs_by_id.get(member)
        if package is not None:
            workspace_members[package.name] = str(member)
    return {
        "root_package_id": str(metadata.root) if metadata.root is not None else None,
        "workspace_members": workspace_members,
        "crates": [d.to_dict() for d in derivations],
    }


def print_summary(info: Dict) -> None:
    crates = info["crates"]
    logger.info("=" * 60)
    logger.info("CRATE DERIVATIONS")
    logger.info("=" * 60)
    logger.info("Root package: %s", info["root_package_id"])
    logger.info("Workspace members: %s", len(info["workspace_members"]))
    logger.info("Crates: %s", len(crates))
    logger.info(
        "Local crates: %s",
        sum(1 for c in crates if c["is_root_or_workspace_member"]),
    )
    logger.info("Crates with hash: %s", sum(1 for c in crates if c["sha256"]))
    logger.info("=" * 60)


def save_build_info_json(info: Dict, output: Path) -> Path:
    output.parent.mkdir(parents=True, exist_ok=True)
    with open(output, 'w', encoding="utf-8") as f:
        json.dump(info, f, indent=2)
        f.write("\n")
    return output


def load_derivations_json(path: Path) -> List[CrateDerivation]:
    with open(path, encoding="utf-8") as f:
        info = json.load(f)
    return [CrateDerivation.from_dict(crate) for crate in info.get("crates", [])]


def derivations_frame(derivations: Iterable[CrateDerivation]) -> pd.DataFrame:
    rows = []
    for d in derivations:
        rows.append({
            "package_id": str(d.package_id),
            "crate_name": d.crate_name,
            "version": d.version,
            "edition": d.edition,
            "source_directory": d.source_directory,
            "num_dependencies": len(d.dependencies),
            "num_build_dependencies": len(d.build_dependencies),
            "num_features": len(d.features),
            "has_bin": d.has_bin,
            "proc_macro": d.proc_macro,
            "is_root_or_workspace_member": d.is_root_or_workspace_member,
            "sha256": d.sha256,
        })
    return pd.DataFrame(rows, columns=SUMMARY_COLUMNS)


def dependency_edges_frame(derivations: Iterable[CrateDerivation]) -> pd.DataFrame:
    rows = []
    for d in derivations:
        for kind, edges in (("normal", d.dependencies), ("build", d.build_dependencies)):
            for edge in edges:
                rows.append({
                    "package_id": str(d.package_id),
                    "kind": kind,
                    "dependency_id": str(edge.package_id),
                    "target": edge.target,
                })
    return pd.DataFrame(rows, columns=["package_id", "kind", "dependency_id", "target"])


def export_summary_csv(
    derivations: Iterable[CrateDerivation], output_dir: Path, stem: str
) -> Path:
    output_dir.mkdir(parents=True, exist_ok=True)
    summary_file = output_dir / f"{stem}_summary.csv"
    derivations_frame(derivations).to_csv(summary_file, index=False)
    return summary_file


def export_worksheets(
    derivations: Iterable[CrateDerivation], output_dir: Path, stem: str
) -> Path:
    derivations = list(derivations)
    output_dir.mkdir(parents=True, exist_ok=True)
    excel_file = output_dir / f"{stem}_worksheets.xlsx"
    with pd.ExcelWriter(excel_file, engine='openpyxl') as writer:
        derivations_frame(derivations).to_excel(writer, sheet_name="crates", index=False)
        dependency_edges_frame(derivations).to_excel(
            writer, sheet_name="dependencies", index=False
        )
    return excel_file
