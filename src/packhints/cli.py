#!/usr/bin/env python3

from __future__ import annotations

import argparse
from pathlib import Path

from packhints.catalog import PlatformCatalogs, discover_platforms, split_skip_list
from packhints.commands import (
    DEFAULT_WORKERS,
    AssetListsInput,
    level_hint_path,
    merge_hint_files,
    parse_seed_arg,
    read_level_roots,
    read_seed_groups,
    run_asset_lists,
    run_bundles,
    update_seed_hints,
)
from packhints.errors import InputValidationError
from packhints.platforms import parse_platforms
from packhints.records import DEFAULT_PACK_ID
from packhints.report import Reporter


DEFAULT_CATALOG_ROOT = Path("Cache")
DEFAULT_PROJECT_ROOT = Path(".")


def add_shared_args(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--platform", action="append", default=[], help="Target platform, repeat or comma separate")
    parser.add_argument("--verbose", action="store_true")


def add_catalog_args(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--catalog-root", type=Path, default=DEFAULT_CATALOG_ROOT, help="Directory holding <platform>/assetcatalog.tsv")
    parser.add_argument("--catalog-file", type=Path, default=None, help="Use this catalog for every platform")


def add_pack_id_arg(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--pack-id", type=int, default=None, help="Force this pack id onto every record written")


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Assign pack ids to assets and build profiling logs for packed bundles")
    subparsers = parser.add_subparsers(dest="command", required=True)

    seeds_parser = subparsers.add_parser("seeds", help="Add or remove seeds in a seed asset hints file")
    add_shared_args(seeds_parser)
    add_catalog_args(seeds_parser)
    add_pack_id_arg(seeds_parser)
    seeds_parser.add_argument("--seed-list-file", type=Path, required=True)
    seeds_parser.add_argument("--add-seed", action="append", default=[], help="Seed path with an optional [packId] suffix")
    seeds_parser.add_argument("--remove-seed", action="append", default=[])

    lists_parser = subparsers.add_parser("asset-lists", help="Cascade seed pack ids over dependencies per platform")
    add_shared_args(lists_parser)
    add_catalog_args(lists_parser)
    add_pack_id_arg(lists_parser)
    lists_parser.add_argument("--seed-list-file", type=Path, action="append", default=[])
    lists_parser.add_argument("--add-seed", action="append", default=[])
    lists_parser.add_argument("--skip", action="append", default=[], help="Asset path or wildcard pattern to exclude")
    lists_parser.add_argument("--asset-list-file", type=Path, default=None)
    lists_parser.add_argument("--project-root", type=Path, default=DEFAULT_PROJECT_ROOT)
    lists_parser.add_argument("--print", dest="print_only", action="store_true")
    lists_parser.add_argument("--allow-overwrites", action="store_true")
    lists_parser.add_argument("--workers", type=int, default=DEFAULT_WORKERS)

    bundles_parser = subparsers.add_parser("bundles", help="Index packed containers and write profiling logs")
    add_shared_args(bundles_parser)
    bundles_parser.add_argument("--catalog-root", type=Path, default=DEFAULT_CATALOG_ROOT)
    bundles_parser.add_argument("--asset-list-file", type=Path, required=True)
    bundles_parser.add_argument("--output-bundle-path", type=Path, required=True)
    bundles_parser.add_argument("--allow-overwrites", action="store_true")
    bundles_parser.add_argument("--workers", type=int, default=DEFAULT_WORKERS)

    merge_parser = subparsers.add_parser("merge-hints", help="Merge asset hints files into one sampling log")
    merge_parser.add_argument("--asset-hints-file", type=Path, action="append", default=[], required=True)
    merge_parser.add_argument("--output-sampling-log", type=Path, required=True)
    merge_parser.add_argument("--allow-overwrites", action="store_true")
    merge_parser.add_argument("--verbose", action="store_true")
    add_pack_id_arg(merge_parser)

    return parser.parse_args(argv)


def pack_id_override(args: argparse.Namespace) -> int:
    if args.pack_id is None:
        return DEFAULT_PACK_ID
    if args.pack_id < 0:
        raise InputValidationError("--pack-id must be unsigned")
    return args.pack_id


def resolve_platforms(args: argparse.Namespace, reporter: Reporter) -> list[str]:
    platforms = parse_platforms(args.platform)
    if platforms:
        return platforms
    platforms = discover_platforms(args.catalog_root)
    if not platforms:
        raise InputValidationError(f"no --platform given and no platform catalogs found under {args.catalog_root}")
    reporter.info(f"no platform specified, defaulting to platforms ( {', '.join(platforms)} )")
    return platforms


def load_catalogs(args: argparse.Namespace, platforms: list[str], reporter: Reporter) -> PlatformCatalogs:
    return PlatformCatalogs.load(args.catalog_root, platforms, args.catalog_file, reporter)


def run_seeds(args: argparse.Namespace, reporter: Reporter) -> int:
    platforms = resolve_platforms(args, reporter)
    catalogs = load_catalogs(args, platforms, reporter)
    catalogs.check_loaded()
    update_seed_hints(
        args.seed_list_file,
        [parse_seed_arg(value, reporter) for value in args.add_seed],
        args.remove_seed,
        catalogs,
        platforms,
        pack_id_override(args),
        reporter,
    )
    return 0


def run_lists(args: argparse.Namespace, reporter: Reporter) -> int:
    platforms = resolve_platforms(args, reporter)
    catalogs = load_catalogs(args, platforms, reporter)
    add_seeds = [parse_seed_arg(value, reporter) for value in args.add_seed]

    level_files = [
        path
        for path in (level_hint_path(seed.relative_path, args.project_root) for seed in add_seeds)
        if path is not None
    ]
    exclusions, wildcards = split_skip_list(args.skip, catalogs, platforms)
    inputs = AssetListsInput(
        seed_groups=read_seed_groups(args.seed_list_file, add_seeds, catalogs, platforms),
        level_roots=read_level_roots(level_files, catalogs, platforms, reporter),
        exclusions=exclusions,
        wildcard_exclusions=wildcards,
        pack_id_override=pack_id_override(args),
    )
    failures = run_asset_lists(
        platforms,
        catalogs,
        inputs,
        args.asset_list_file,
        print_only=args.print_only,
        allow_overwrites=args.allow_overwrites,
        workers=args.workers,
        reporter=reporter,
    )
    return 1 if failures else 0


def run_bundle_logs(args: argparse.Namespace, reporter: Reporter) -> int:
    platforms = resolve_platforms(args, reporter)
    failures = run_bundles(
        platforms,
        args.asset_list_file,
        args.output_bundle_path,
        allow_overwrites=args.allow_overwrites,
        workers=args.workers,
        reporter=reporter,
    )
    return 1 if failures else 0


def run_merge_hints(args: argparse.Namespace, reporter: Reporter) -> int:
    merge_hint_files(
        args.asset_hints_file,
        args.output_sampling_log,
        allow_overwrites=args.allow_overwrites,
        pack_id_override=pack_id_override(args),
        reporter=reporter,
    )
    return 0


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)
    reporter = Reporter(verbose=args.verbose)
    try:
        if args.command == "seeds":
            return run_seeds(args, reporter)
        if args.command == "asset-lists":
            return run_lists(args, reporter)
        if args.command == "bundles":
            return run_bundle_logs(args, reporter)
        if args.command == "merge-hints":
            return run_merge_hints(args, reporter)
    except (ValueError, OSError) as exc:
        raise SystemExit(f"error: {exc}") from exc
    raise SystemExit(f"error: unknown command {args.command}")


if __name__ == "__main__":
    raise SystemExit(main())
