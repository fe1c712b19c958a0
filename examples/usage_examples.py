#!/usr/bin/env python3
"""
Example script showing how to use the crate-derivations library.
"""

from pathlib import Path

from crate_derivations.config import GenerateConfig
from crate_derivations.metadata import load_metadata_json, run_cargo_metadata
from crate_derivations.reporting import build_info, save_build_info_json
from crate_derivations.resolve import resolve_all, resolve_derivation


def example_whole_workspace():
    """Example: Describe every crate of a workspace."""
    print("="*60)
    print("Example 1: Whole workspace")
    print("="*60)

    config = GenerateConfig(cargo_toml=Path("./Cargo.toml"))
    metadata = run_cargo_metadata(config.cargo_toml)
    derivations = resolve_all(config, metadata)

    info = build_info(metadata, derivations)
    output = save_build_info_json(info, Path("./output/crate-derivations.json"))

    print(f"\nCrates: {len(derivations)}")
    print(f"Saved to: {output}")


def example_single_crate():
    """Example: Inspect one crate from saved metadata."""
    print("\n" + "="*60)
    print("Example 2: Single crate")
    print("="*60)

    config = GenerateConfig(cargo_toml=Path("./Cargo.toml"))
    metadata = load_metadata_json(Path("./metadata.json"))
    root = config.root_directory()

    package = metadata.pkgs_by_id[metadata.root]
    derivation = resolve_derivation(root, metadata, package)

    print(f"\nCrate: {derivation.crate_name} {derivation.version}")
    print(f"Source directory: {derivation.source_directory}")
    for dep in derivation.dependencies:
        condition = f" if {dep.target}" if dep.target else ""
        print(f"  depends on {dep.package_id}{condition}")
    for dep in derivation.build_dependencies:
        print(f"  build-depends on {dep.package_id}")


if __name__ == "__main__":
    example_whole_workspace()
    example_single_crate()
