"""
Command-line interface for the crate derivations tool.
"""

import argparse
import logging
import sys
from pathlib import Path

from .config import GenerateConfig
from .errors import DerivationError
from .metadata import load_metadata_json, run_cargo_metadata
from .reporting import (
    build_info,
    export_summary_csv,
    export_worksheets,
    print_summary,
    save_build_info_json,
)
from .resolve import apply_crate_hashes, load_crate_hashes, resolve_all


logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Describe every crate of a resolved cargo dependency graph"
    )

    parser.add_argument(
        "--cargo-toml",
        default="./Cargo.toml",
        help="Root manifest; its directory is the source root. Default: ./Cargo.toml"
    )

    parser.add_argument(
        "--metadata-json",
        default=None,
        help="Read saved `cargo metadata` output instead of running cargo"
    )

    parser.add_argument(
        "--output",
        default="./crate-derivations.json",
        help="Output JSON file. Default: ./crate-derivations.json"
    )

    parser.add_argument(
        "--crate-hashes",
        default=None,
        help="JSON file mapping package ids to sha256 digests"
    )

    parser.add_argument(
        "--no-locked",
        action="store_true",
        help="Do not pass --locked to cargo metadata"
    )

    parser.add_argument(
        "--skip-failed",
        action="store_true",
        help="Skip packages that cannot be resolved instead of aborting"
    )

    parser.add_argument(
        "--summary-csv",
        action="store_true",
        help="Also write a per-crate summary CSV next to the output"
    )

    parser.add_argument(
        "--worksheets",
        action="store_true",
        help="Also write crates and dependency edges to an Excel file"
    )

    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Log per-package details"
    )
    return parser


def main(argv=None):
    """Main entry point for the CLI."""
    args = build_parser().parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(levelname)s %(name)s: %(message)s",
    )

    config = GenerateConfig(
        cargo_toml=Path(args.cargo_toml),
        output=Path(args.output),
        crate_hashes=Path(args.crate_hashes) if args.crate_hashes else None,
        locked=not args.no_locked,
        skip_failed=args.skip_failed,
    )

    try:
        if args.metadata_json:
            metadata = load_metadata_json(Path(args.metadata_json))
        else:
            metadata = run_cargo_metadata(config.cargo_toml, locked=config.locked)

        derivations = resolve_all(config, metadata)
        if config.crate_hashes is not None:
            derivations = apply_crate_hashes(
                derivations, load_crate_hashes(config.crate_hashes)
            )
    except DerivationError as e:
        logger.error("Generation failed: %s", e)
        sys.exit(1)

    info = build_info(metadata, derivations)
    print_summary(info)

    output_file = save_build_info_json(info, config.output)
    logger.info("Derivations saved to: %s", output_file)

    output_dir = config.output.parent
    if args.summary_csv:
        csv_file = export_summary_csv(derivations, output_dir, config.output.stem)
        logger.info("Summary saved to: %s", csv_file)

    if args.worksheets:
        excel_file = export_worksheets(derivations, output_dir, config.output.stem)
        logger.info("Worksheets saved to: %s", excel_file)


if __name__ == "__main__":
    main()
