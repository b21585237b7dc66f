from __future__ import annotations

import fnmatch
import glob
import os
import threading
from collections.abc import Callable, Iterable
from concurrent.futures import Future
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from pathlib import Path

from packhints.archive import ArchiveReader, index_containers
from packhints.catalog import AssetCatalog, PlatformCatalogs
from packhints.errors import InputValidationError
from packhints.fileio import check_overwrite
from packhints.hints import (
    ASSET_HINTS_EXTENSION,
    PAK_ASSET_HINTS_EXTENSION,
    SEED_ASSET_HINTS_EXTENSION,
    read_hint_file,
    write_hint_file,
)
from packhints.logs import (
    PROFILING_LOG_EXTENSION,
    merge_header_records,
    promote_header_records,
    write_profiling_log,
    write_sampling_log,
)
from packhints.merge import apply_pack_override, combine, combine_by_path, group_by_pack
from packhints.platforms import add_platform_identifier, replace_extension
from packhints.records import DEFAULT_PACK_ID, AssetId, AssetRecord, AssetRecordStore, normalize_asset_path
from packhints.report import DEFAULT_REPORTER, Reporter
from packhints.walker import cascade_assignments, collect_dependencies


DEFAULT_WORKERS = max(1, min(8, (os.cpu_count() or 1)))
PACK_ID_FIRST_MARKER = "["
PACK_ID_SECOND_MARKER = "]"
LEVELS_PATH_PATTERN = "*levels/*/*.*"


@dataclass(frozen=True)
class SeedSpec:
    relative_path: str
    pack_id: int = 0


def parse_seed_arg(value: str, reporter: Reporter = DEFAULT_REPORTER) -> SeedSpec:
    asset_hint = value
    pack_id = 0
    first = value.find(PACK_ID_FIRST_MARKER)
    if first != -1:
        asset_hint = value[:first]
        second = value.find(PACK_ID_SECOND_MARKER, first + 1)
        if second == -1:
            reporter.warning(f"expected a second marker ( {PACK_ID_SECOND_MARKER} ) in seed ( {value} )")
            second = len(value)
        pack_text = value[first + 1 : second].strip()
        try:
            pack_id = int(pack_text, 10)
        except ValueError as exc:
            raise InputValidationError(f"invalid pack id ( {pack_text} ) in seed ( {value} )") from exc
        if pack_id < 0:
            raise InputValidationError(f"pack id must be unsigned in seed ( {value} )")

    relative_path = normalize_asset_path(asset_hint)
    if not relative_path:
        raise InputValidationError(f"seed ( {value} ) has no asset path")
    return SeedSpec(relative_path, pack_id)


def level_hint_path(seed_path: str, project_root: Path) -> Path | None:
    if not fnmatch.fnmatchcase(seed_path, LEVELS_PATH_PATTERN):
        return None
    return replace_extension(project_root / seed_path, ASSET_HINTS_EXTENSION)


class FailureCounter:
    def __init__(self) -> None:
        self._lock = threading.Lock()
        self.value = 0

    def increment(self) -> None:
        with self._lock:
            self.value += 1


def run_per_platform(
    platforms: Iterable[str],
    task: Callable[[str], object],
    workers: int = DEFAULT_WORKERS,
    reporter: Reporter = DEFAULT_REPORTER,
) -> int:
    failures = FailureCounter()
    platform_list = list(platforms)
    if not platform_list:
        return 0

    with ThreadPoolExecutor(max_workers=max(1, min(workers, len(platform_list)))) as executor:
        pending: dict[str, Future[object]] = {
            platform: executor.submit(task, platform) for platform in platform_list
        }
        for platform, future in pending.items():
            try:
                future.result()
            except (OSError, ValueError) as exc:
                reporter.error(f"[{platform}] {exc}")
                failures.increment()

    return failures.value


def update_seed_hints(
    seed_list_file: Path,
    add_seeds: list[SeedSpec],
    remove_seeds: list[str],
    catalogs: PlatformCatalogs,
    platforms: list[str] | None = None,
    pack_id_override: int = DEFAULT_PACK_ID,
    reporter: Reporter = DEFAULT_REPORTER,
) -> Path:
    hint_path = replace_extension(seed_list_file, SEED_ASSET_HINTS_EXTENSION)
    store = AssetRecordStore()
    if hint_path.exists():
        for record in read_hint_file(
            hint_path,
            lambda path: catalogs.resolve_identity(path, platforms),
            lambda asset_id: catalogs.resolve_path(asset_id, platforms),
        ):
            store.add(record)

    touched: list[AssetId] = []
    for seed in add_seeds:
        asset_id = catalogs.resolve_identity(seed.relative_path, platforms)
        if not asset_id.is_valid():
            reporter.warning(f"skipping seed ( {seed.relative_path} ), it is unknown to the asset catalog")
            continue
        store.add_asset(asset_id, seed.relative_path, seed.pack_id)
        touched.append(asset_id)

    for path in remove_seeds:
        asset_id = catalogs.resolve_identity(normalize_asset_path(path), platforms)
        if not store.remove(asset_id):
            reporter.warning(f"seed ( {path} ) is not in {hint_path.name}")

    apply_pack_override(store, pack_id_override, touched)

    reporter.info(f"saving seed asset hints to ( {hint_path} )...")
    write_hint_file(store, hint_path, reporter)
    reporter.info(f"wrote {hint_path}")
    return hint_path


@dataclass
class AssetListsInput:
    seed_groups: dict[int, list[AssetRecord]]
    level_roots: dict[int, set[AssetId]]
    exclusions: set[AssetId]
    wildcard_exclusions: list[str]
    pack_id_override: int = DEFAULT_PACK_ID


def read_seed_groups(
    seed_list_files: list[Path],
    add_seeds: list[SeedSpec],
    catalogs: PlatformCatalogs,
    platforms: list[str] | None = None,
) -> dict[int, list[AssetRecord]]:
    groups: dict[int, list[AssetRecord]] = {}
    for seed_list_file in seed_list_files:
        hint_path = replace_extension(seed_list_file, SEED_ASSET_HINTS_EXTENSION)
        if not hint_path.is_file():
            raise InputValidationError(f"cannot load seed list file ( {hint_path} ): file does not exist")
        for record in read_hint_file(
            hint_path,
            lambda path: catalogs.resolve_identity(path, platforms),
            lambda asset_id: catalogs.resolve_path(asset_id, platforms),
        ):
            groups.setdefault(record.pack_id, []).append(record)

    for seed in add_seeds:
        groups.setdefault(seed.pack_id, []).append(AssetRecord(relative_path=seed.relative_path, pack_id=seed.pack_id))
    return groups


def read_level_roots(
    level_hint_files: list[Path],
    catalogs: PlatformCatalogs,
    platforms: list[str] | None = None,
    reporter: Reporter = DEFAULT_REPORTER,
) -> dict[int, set[AssetId]]:
    roots: dict[int, set[AssetId]] = {}
    for path in level_hint_files:
        if not path.is_file():
            reporter.warning(f"level asset hints ( {path} ) does not exist")
            continue
        for record in read_hint_file(
            path,
            lambda hint: catalogs.resolve_identity(hint, platforms),
            lambda asset_id: catalogs.resolve_path(asset_id, platforms),
        ):
            if not record.asset_id.is_valid():
                continue
            roots.setdefault(record.pack_id, set()).add(record.asset_id)
    return roots


def seed_ids_for_platform(
    records: list[AssetRecord],
    catalog: AssetCatalog,
    platform: str,
    reporter: Reporter = DEFAULT_REPORTER,
) -> list[AssetId]:
    seed_ids: list[AssetId] = []
    for record in records:
        asset_id = record.asset_id if record.asset_id.is_valid() else catalog.resolve_identity(record.relative_path)
        if not asset_id.is_valid() or not catalog.resolve_path(asset_id):
            reporter.warning(
                f"asset catalog does not know about the seed ( {record.relative_path or record.asset_id} ) on platform ( {platform} )"
            )
            continue
        seed_ids.append(asset_id)
    return seed_ids


def build_platform_assignments(
    platform: str,
    catalog: AssetCatalog,
    inputs: AssetListsInput,
    reporter: Reporter = DEFAULT_REPORTER,
) -> AssetRecordStore:
    group_stores: list[AssetRecordStore] = []
    for pack_id in sorted(inputs.seed_groups, reverse=True):
        seeds = seed_ids_for_platform(inputs.seed_groups[pack_id], catalog, platform, reporter)
        store = AssetRecordStore()
        for asset_id in collect_dependencies(seeds, catalog, inputs.exclusions, inputs.wildcard_exclusions):
            store.add_asset(asset_id, catalog.resolve_path(asset_id), pack_id)

        cascade_assignments(inputs.level_roots, store, catalog, inputs.exclusions, inputs.wildcard_exclusions)
        reporter.verbose(f"[{platform}] pack {pack_id}: {len(seeds)} seeds, {len(store)} assets")
        group_stores.append(store)

    merged = combine(group_stores)
    apply_pack_override(merged, inputs.pack_id_override)
    return merged


def pak_hints_path(asset_list_file: Path, platform: str) -> Path:
    platform_path = add_platform_identifier(asset_list_file, platform)
    if platform_path is None:
        raise InputValidationError(f"( {asset_list_file} ) does not belong to platform ( {platform} )")
    return replace_extension(platform_path, PAK_ASSET_HINTS_EXTENSION)


def print_pack_groups(store: AssetRecordStore, platform: str, reporter: Reporter) -> None:
    reporter.info(f"[{platform}]")
    for pack_id, records in group_by_pack(store).items():
        reporter.info(f"  pack {pack_id}: {len(records)} assets")
        for record in records:
            reporter.info(f"    {record.relative_path}\t{record.asset_id}")


def run_asset_lists(
    platforms: list[str],
    catalogs: PlatformCatalogs,
    inputs: AssetListsInput,
    asset_list_file: Path | None,
    print_only: bool = False,
    allow_overwrites: bool = False,
    workers: int = DEFAULT_WORKERS,
    reporter: Reporter = DEFAULT_REPORTER,
) -> int:
    if asset_list_file is None and not print_only:
        raise InputValidationError("either --print or --asset-list-file must be supplied")

    def task(platform: str) -> None:
        store = build_platform_assignments(platform, catalogs[platform], inputs, reporter)
        if print_only:
            print_pack_groups(store, platform, reporter)
        if asset_list_file is None:
            return
        out_path = pak_hints_path(asset_list_file, platform)
        check_overwrite(out_path, allow_overwrites)
        reporter.info(f"saving pak asset hints to ( {out_path} )...")
        write_hint_file(store, out_path, reporter)
        reporter.info(f"wrote {out_path}")

    return run_per_platform(platforms, task, workers, reporter)


def write_platform_profiling_log(
    platform: str,
    asset_list_file: Path,
    bundle_path: Path,
    allow_overwrites: bool = False,
    reader: ArchiveReader | None = None,
    reporter: Reporter = DEFAULT_REPORTER,
) -> Path:
    hints_path = pak_hints_path(asset_list_file, platform)
    platform_bundle = add_platform_identifier(bundle_path, platform)
    if platform_bundle is None:
        raise InputValidationError(f"( {bundle_path} ) does not belong to platform ( {platform} )")
    log_path = replace_extension(platform_bundle, PROFILING_LOG_EXTENSION)
    check_overwrite(log_path, allow_overwrites)

    records = combine_by_path([read_hint_file(hints_path)])
    reporter.info(f"creating profiling log ( {log_path} )...")
    index = index_containers(
        platform_bundle.parent,
        glob.escape(platform_bundle.stem) + "*",
        reader=reader,
        allow_overwrites=allow_overwrites,
        reporter=reporter,
    )
    promoted = promote_header_records(index.entries, lambda path: path in records)
    pack_groups = merge_header_records(group_by_pack(records), promoted)
    count = write_profiling_log(pack_groups, index.entries, log_path, reporter)
    reporter.info(f"wrote {log_path} ({count} entries, {len(index.containers)} containers)")
    return log_path


def run_bundles(
    platforms: list[str],
    asset_list_file: Path,
    bundle_path: Path,
    allow_overwrites: bool = False,
    workers: int = DEFAULT_WORKERS,
    reader: ArchiveReader | None = None,
    reporter: Reporter = DEFAULT_REPORTER,
) -> int:
    def task(platform: str) -> None:
        write_platform_profiling_log(platform, asset_list_file, bundle_path, allow_overwrites, reader, reporter)

    return run_per_platform(platforms, task, workers, reporter)


def merge_hint_files(
    hint_files: list[Path],
    out_path: Path,
    allow_overwrites: bool = False,
    pack_id_override: int = DEFAULT_PACK_ID,
    reporter: Reporter = DEFAULT_REPORTER,
) -> int:
    if not hint_files:
        raise InputValidationError("at least one asset hints file is required")
    check_overwrite(out_path, allow_overwrites)

    store = combine(read_hint_file(path) for path in hint_files)
    apply_pack_override(store, pack_id_override)
    count = write_sampling_log(group_by_pack(store), out_path)
    reporter.info(f"wrote {out_path} ({count} entries)")
    return count

