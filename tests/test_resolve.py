from pathlib import Path

import pytest

from crate_derivations.config import GenerateConfig
from crate_derivations.errors import GraphInconsistency
from crate_derivations.metadata import IndexedMetadata
from crate_derivations.models import PackageId, ResolvedDependency
from crate_derivations.resolve import (
    ResolvedDependencies,
    apply_crate_hashes,
    is_build,
    is_normal,
    resolve_all,
    resolve_derivation,
)


REGISTRY = "registry+https://github.com/rust-lang/crates.io-index"


def registry_package(name, version, deps=(), targets=None, directory=Path("/registry")):
    manifest_dir = directory / f"{name}-{version}"
    if targets is None:
        targets = [{"name": name, "kind": ["lib"], "src_path": str(manifest_dir / "src/lib.rs")}]
    return {
        "id": f"{name} {version} ({REGISTRY})",
        "name": name,
        "version": version,
        "edition": "2018",
        "authors": [],
        "manifest_path": str(manifest_dir / "Cargo.toml"),
        "targets": targets,
        "dependencies": list(deps),
        "source": REGISTRY,
    }


def declared(name, kind=None, target=None):
    return {"name": name, "kind": kind, "target": target, "req": "*"}


def node(package, dep_packages=(), features=()):
    return {
        "id": package["id"],
        "deps": [{"name": p["name"].replace("-", "_"), "pkg": p["id"]} for p in dep_packages],
        "features": list(features),
    }


def metadata(packages, nodes, root=None, members=()):
    return IndexedMetadata.from_json({
        "packages": packages,
        "workspace_members": list(members),
        "resolve": {"root": root, "nodes": nodes},
    })


@pytest.fixture
def workspace(tmp_path):
    root = tmp_path / "workspace"
    (root / "src").mkdir(parents=True)
    (root / "Cargo.toml").write_text("[package]\nname = \"left-pad\"\n", encoding="utf-8")
    return root


def left_pad(root, deps=(), targets=None):
    if targets is None:
        targets = [{"name": "left-pad", "kind": ["lib"], "src_path": str(root / "src/lib.rs")}]
    return {
        "id": f"left-pad 1.2.3 (path+file://{root})",
        "name": "left-pad",
        "version": "1.2.3",
        "edition": "2018",
        "authors": ["Jane Doe <jane@example.com>"],
        "manifest_path": str(root / "Cargo.toml"),
        "targets": targets,
        "dependencies": list(deps),
    }


def test_end_to_end_left_pad(workspace):
    once_cell = registry_package("once_cell", "1.4.0")
    pkg = left_pad(workspace, deps=[declared("once-cell")])
    meta = metadata(
        [pkg, once_cell],
        [node(pkg, [once_cell]), node(once_cell)],
        root=pkg["id"],
    )

    derivation = resolve_derivation(
        workspace.resolve(), meta, meta.pkgs_by_id[PackageId(pkg["id"])]
    )

    assert derivation.dependencies == (
        ResolvedDependency(package_id=PackageId(once_cell["id"]), target=None),
    )
    assert derivation.build_dependencies == ()
    assert derivation.source_directory == "./."
    assert derivation.crate_name == "left-pad"
    assert derivation.version == "1.2.3"
    assert derivation.edition == "2018"
    assert derivation.sha256 is None
    assert derivation.lib_path == "src/lib.rs"
    assert derivation.build is None
    assert derivation.is_root_or_workspace_member is True


def test_missing_node_reports_requesting_package(workspace):
    pkg = left_pad(workspace)
    meta = metadata([pkg], [])

    with pytest.raises(GraphInconsistency) as excinfo:
        ResolvedDependencies.new(meta, meta.pkgs_by_id[PackageId(pkg["id"])])

    assert excinfo.value.package_id == PackageId(pkg["id"])
    assert "Could not find node" in str(excinfo.value)


def test_dangling_edge_is_reported(workspace):
    pkg = left_pad(workspace, deps=[declared("ghost")])
    ghost = registry_package("ghost", "0.1.0")
    meta = metadata([pkg], [node(pkg, [ghost])])

    with pytest.raises(GraphInconsistency) as excinfo:
        ResolvedDependencies.new(meta, meta.pkgs_by_id[PackageId(pkg["id"])])

    assert excinfo.value.package_id == PackageId(pkg["id"])
    assert excinfo.value.missing_id == PackageId(ghost["id"])


def test_edge_packages_sorted_by_id(workspace):
    zeta = registry_package("zeta", "1.0.0")
    alpha = registry_package("alpha", "1.0.0")
    pkg = left_pad(workspace, deps=[declared("zeta"), declared("alpha")])
    meta = metadata([pkg, zeta, alpha], [node(pkg, [zeta, alpha])])

    resolved = ResolvedDependencies.new(meta, meta.pkgs_by_id[PackageId(pkg["id"])])

    assert [p.name for p in resolved.packages] == ["alpha", "zeta"]
    assert [d.package_id for d in resolved.filtered_dependencies(is_normal)] == [
        PackageId(alpha["id"]),
        PackageId(zeta["id"]),
    ]


def test_edges_split_by_declared_kind(workspace):
    serde = registry_package("serde", "1.0.0")
    cc = registry_package("cc", "1.0.50")
    proptest = registry_package("proptest", "0.9.0")
    pkg = left_pad(
        workspace,
        deps=[
            declared("serde"),
            declared("cc", kind="build"),
            declared("proptest", kind="dev"),
        ],
    )
    meta = metadata(
        [pkg, serde, cc, proptest],
        [node(pkg, [serde, cc, proptest])],
    )
    resolved = ResolvedDependencies.new(meta, meta.pkgs_by_id[PackageId(pkg["id"])])

    normal = resolved.filtered_dependencies(is_normal)
    build = resolved.filtered_dependencies(is_build)

    assert [d.package_id for d in normal] == [PackageId(serde["id"])]
    assert [d.package_id for d in build] == [PackageId(cc["id"])]
    edge_ids = {p.id for p in resolved.packages}
    assert {d.package_id for d in normal} <= edge_ids
    assert {d.package_id for d in build} <= edge_ids


def test_unknown_kind_counts_as_normal(workspace):
    serde = registry_package("serde", "1.0.0")
    pkg = left_pad(workspace, deps=[declared("serde", kind="future-kind")])
    meta = metadata([pkg, serde], [node(pkg, [serde])])
    resolved = ResolvedDependencies.new(meta, meta.pkgs_by_id[PackageId(pkg["id"])])

    assert [d.package_id for d in resolved.filtered_dependencies(is_normal)] == [
        PackageId(serde["id"])
    ]


def test_platform_condition_is_carried_over(workspace):
    winapi = registry_package("winapi", "0.3.8")
    pkg = left_pad(workspace, deps=[declared("winapi", target="cfg(windows)")])
    meta = metadata([pkg, winapi], [node(pkg, [winapi])])
    resolved = ResolvedDependencies.new(meta, meta.pkgs_by_id[PackageId(pkg["id"])])

    assert resolved.filtered_dependencies(is_normal) == [
        ResolvedDependency(package_id=PackageId(winapi["id"]), target="cfg(windows)")
    ]


def test_duplicate_conditional_declarations_are_all_kept(workspace):
    libc = registry_package("libc", "0.2.66")
    pkg = left_pad(
        workspace,
        deps=[
            declared("libc", target="cfg(unix)"),
            declared("libc", target="cfg(target_os = \"redox\")"),
            declared("libc", target="cfg(unix)"),
        ],
    )
    meta = metadata([pkg, libc], [node(pkg, [libc])])
    resolved = ResolvedDependencies.new(meta, meta.pkgs_by_id[PackageId(pkg["id"])])

    assert resolved.filtered_dependencies(is_normal) == [
        ResolvedDependency(PackageId(libc["id"]), "cfg(target_os = \"redox\")"),
        ResolvedDependency(PackageId(libc["id"]), "cfg(unix)"),
    ]


def test_unconditional_declaration_subsumes_conditional(workspace):
    log = registry_package("log", "0.4.8")
    pkg = left_pad(
        workspace,
        deps=[declared("log", target="cfg(unix)"), declared("log")],
    )
    meta = metadata([pkg, log], [node(pkg, [log])])
    resolved = ResolvedDependencies.new(meta, meta.pkgs_by_id[PackageId(pkg["id"])])

    assert resolved.filtered_dependencies(is_normal) == [
        ResolvedDependency(PackageId(log["id"]), None)
    ]


def test_target_classification(workspace):
    (workspace / "build.rs").write_text("fn main() {}\n", encoding="utf-8")
    targets = [
        {"name": "left-pad", "kind": ["bin"], "src_path": str(workspace / "src/main.rs")},
        {"name": "left-pad", "kind": ["lib"], "src_path": str(workspace / "src/lib.rs")},
        {"name": "build-script-build", "kind": ["custom-build"],
         "src_path": str(workspace / "build.rs")},
        {"name": "other", "kind": ["lib"], "src_path": "/elsewhere/lib.rs"},
    ]
    pkg = left_pad(workspace, targets=targets)
    meta = metadata([pkg], [node(pkg)])

    derivation = resolve_derivation(
        workspace.resolve(), meta, meta.pkgs_by_id[PackageId(pkg["id"])]
    )

    assert derivation.has_bin is True
    assert derivation.proc_macro is False
    assert derivation.lib_path == "src/lib.rs"
    assert derivation.build == "build.rs"


def test_unrelatable_target_path_is_absent(workspace):
    targets = [{"name": "left-pad", "kind": ["lib"], "src_path": "/elsewhere/lib.rs"}]
    pkg = left_pad(workspace, targets=targets)
    meta = metadata([pkg], [node(pkg)])

    derivation = resolve_derivation(
        workspace.resolve(), meta, meta.pkgs_by_id[PackageId(pkg["id"])]
    )

    assert derivation.lib_path is None


def test_proc_macro_flag(workspace):
    targets = [{"name": "derive", "kind": ["proc-macro"], "src_path": str(workspace / "src/lib.rs")}]
    pkg = left_pad(workspace, targets=targets)
    meta = metadata([pkg], [node(pkg)])

    derivation = resolve_derivation(
        workspace.resolve(), meta, meta.pkgs_by_id[PackageId(pkg["id"])]
    )

    assert derivation.proc_macro is True
    assert derivation.has_bin is False


def test_features_keep_node_order(workspace):
    pkg = left_pad(workspace)
    meta = metadata([pkg], [node(pkg, features=["std", "default", "alloc"])])

    derivation = resolve_derivation(
        workspace.resolve(), meta, meta.pkgs_by_id[PackageId(pkg["id"])]
    )

    assert derivation.features == ("std", "default", "alloc")


def test_membership_flag(workspace):
    member_dir = workspace / "member"
    member_dir.mkdir()
    member = {
        **left_pad(member_dir),
        "id": f"member 0.1.0 (path+file://{member_dir})",
        "name": "member",
    }
    serde = registry_package("serde", "1.0.0")
    pkg = left_pad(workspace)
    meta = metadata(
        [pkg, member, serde],
        [node(pkg), node(member), node(serde)],
        root=pkg["id"],
        members=[member["id"]],
    )
    root = workspace.resolve()

    flags = {
        pkg_id: resolve_derivation(root, meta, package).is_root_or_workspace_member
        for pkg_id, package in meta.pkgs_by_id.items()
    }

    assert flags[PackageId(pkg["id"])] is True
    assert flags[PackageId(member["id"])] is True
    assert flags[PackageId(serde["id"])] is False


def test_source_directories(workspace, tmp_path):
    member_dir = workspace / "crates" / "member"
    member_dir.mkdir(parents=True)
    member = {
        **left_pad(member_dir),
        "id": f"member 0.1.0 (path+file://{member_dir})",
        "name": "member",
    }
    vendored = registry_package("serde", "1.0.0", directory=tmp_path / "vendor")
    pkg = left_pad(workspace)
    meta = metadata([pkg, member, vendored], [node(pkg), node(member), node(vendored)])
    root = workspace.resolve()

    def source_dir(raw):
        return resolve_derivation(root, meta, meta.pkgs_by_id[PackageId(raw["id"])]).source_directory

    assert source_dir(pkg) == "./."
    assert source_dir(member) == "./crates/member"
    assert source_dir(vendored) == "../vendor/serde-1.0.0"


def test_resolution_is_deterministic(workspace):
    a = registry_package("a", "1.0.0")
    b = registry_package("b", "1.0.0")
    pkg = left_pad(workspace, deps=[declared("a"), declared("b", kind="build")])
    forward = metadata([pkg, a, b], [node(pkg, [a, b])])
    backward = metadata([pkg, b, a], [node(pkg, [b, a])])
    root = workspace.resolve()
    package_id = PackageId(pkg["id"])

    first = resolve_derivation(root, forward, forward.pkgs_by_id[package_id])
    second = resolve_derivation(root, forward, forward.pkgs_by_id[package_id])
    reordered = resolve_derivation(root, backward, backward.pkgs_by_id[package_id])

    assert first == second == reordered


def test_resolve_all_propagates_or_skips(workspace):
    serde = registry_package("serde", "1.0.0")
    pkg = left_pad(workspace)
    # serde has no node.
    meta = metadata([pkg, serde], [node(pkg)])
    cargo_toml = workspace / "Cargo.toml"

    with pytest.raises(GraphInconsistency):
        resolve_all(GenerateConfig(cargo_toml=cargo_toml), meta)

    derivations = resolve_all(GenerateConfig(cargo_toml=cargo_toml, skip_failed=True), meta)
    assert [d.package_id for d in derivations] == [PackageId(pkg["id"])]


def test_apply_crate_hashes(workspace):
    serde = registry_package("serde", "1.0.0")
    pkg = left_pad(workspace)
    meta = metadata([pkg, serde], [node(pkg), node(serde)])
    derivations = resolve_all(GenerateConfig(cargo_toml=workspace / "Cargo.toml"), meta)

    filled = apply_crate_hashes(derivations, {serde["id"]: "0" * 52})

    by_name = {d.crate_name: d for d in filled}
    assert by_name["serde"].sha256 == "0" * 52
    assert by_name["left-pad"].sha256 is None
    assert all(d.sha256 is None for d in derivations)
