from __future__ import annotations

from collections.abc import Callable, Iterable, Mapping
from dataclasses import replace
from pathlib import Path

from packhints.fileio import write_text
from packhints.merge import PackGroups
from packhints.records import AssetRecord, PathRecordMap
from packhints.report import DEFAULT_REPORTER, Reporter


PROFILING_LOG_EXTENSION = ".proflog"

# Fixed fields of the legacy profiler line format, reproduced verbatim.
STATUS_TOKEN = "i-read "
ZERO_FIELD = "0" * 18
GROUP_SEPARATOR = "-" * 10
PACK_ZERO_MARKER = "||||||||||  1000"
HEADER_PACK_ID = 0


def format_log_line(bundle_path: str, offset: int, size: int) -> str:
    return f"{bundle_path}\t{offset}\t{size}\t{STATUS_TOKEN}\t{ZERO_FIELD}\n"


def render_groups(
    pack_groups: Mapping[int, Iterable[AssetRecord]],
    placement: Callable[[AssetRecord], AssetRecord | None],
) -> list[str]:
    lines: list[str] = []
    pack_ids = sorted(pack_groups)
    for position, pack_id in enumerate(pack_ids):
        for record in pack_groups[pack_id]:
            placed = placement(record)
            if placed is None:
                continue
            lines.append(format_log_line(placed.bundle_path, placed.payload_offset, placed.payload_size))

        if position == len(pack_ids) - 1:
            break
        lines.append(GROUP_SEPARATOR + "\n")
        if pack_id == 0:
            lines.append(PACK_ZERO_MARKER + "\n")
    return lines


def render_profiling_log(
    pack_groups: Mapping[int, Iterable[AssetRecord]],
    archive_index: PathRecordMap,
    reporter: Reporter = DEFAULT_REPORTER,
) -> list[str]:
    def placement(record: AssetRecord) -> AssetRecord | None:
        placed = archive_index.get(record.relative_path)
        if placed is None:
            reporter.warning(f"can't find {record.relative_path or record.asset_id} in any indexed container")
            return None
        reporter.verbose(f"{placed.bundle_path} {placed.payload_offset} {placed.payload_size}")
        return placed

    return render_groups(pack_groups, placement)


def write_profiling_log(
    pack_groups: Mapping[int, Iterable[AssetRecord]],
    archive_index: PathRecordMap,
    out_path: Path,
    reporter: Reporter = DEFAULT_REPORTER,
) -> int:
    if not pack_groups or not len(archive_index):
        raise ValueError("cannot write a profiling log from an empty pack grouping or archive index")
    lines = render_profiling_log(pack_groups, archive_index, reporter)
    write_text(out_path, lines)
    return sum(1 for line in lines if "\t" in line)


def sampling_name(record: AssetRecord) -> str:
    return record.bundle_path or record.relative_path or str(record.asset_id)


def render_sampling_log(pack_groups: Mapping[int, Iterable[AssetRecord]]) -> list[str]:
    # Records without a container are named by path, then by id.
    return render_groups(pack_groups, lambda record: replace(record, bundle_path=sampling_name(record)))


def write_sampling_log(pack_groups: Mapping[int, Iterable[AssetRecord]], out_path: Path) -> int:
    lines = render_sampling_log(pack_groups)
    write_text(out_path, lines)
    return sum(1 for line in lines if "\t" in line)


def header_record_key(path: str, bundle_path: str) -> str:
    return f"{path}_{bundle_path}"


def promote_header_records(
    archive_index: PathRecordMap,
    has_identity: Callable[[str], bool],
) -> list[AssetRecord]:
    promoted: list[AssetRecord] = []
    for entry in list(archive_index):
        if has_identity(entry.relative_path):
            continue
        key = header_record_key(entry.relative_path, entry.bundle_path)
        record = AssetRecord(
            relative_path=key,
            pack_id=HEADER_PACK_ID,
            bundle_path=entry.bundle_path,
            payload_offset=entry.header_offset,
            payload_size=entry.header_size,
            header_offset=entry.header_offset,
            header_size=entry.header_size,
        )
        if archive_index.add(record):
            continue
        promoted.append(record)
    return promoted


def merge_header_records(pack_groups: PackGroups, promoted: Iterable[AssetRecord]) -> PackGroups:
    merged = {pack_id: list(records) for pack_id, records in pack_groups.items()}
    extra = sorted(promoted, key=AssetRecord.sort_key)
    if extra:
        merged.setdefault(HEADER_PACK_ID, []).extend(extra)
    return dict(sorted(merged.items()))
