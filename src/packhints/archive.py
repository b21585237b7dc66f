from __future__ import annotations

import struct
import zipfile
from dataclasses import dataclass, field
from pathlib import Path
from typing import Protocol

from packhints.errors import ArchiveReadError, OverwriteBlockedError
from packhints.records import AssetRecord, PathRecordMap, normalize_asset_path
from packhints.report import DEFAULT_REPORTER, Reporter


LEGACY_CONTAINER_EXTENSION = ".pak"
CONTAINER_EXTENSION = ".bpak"

LOCAL_HEADER_MAGIC = b"PK\x03\x04"
LOCAL_HEADER_STRUCT = struct.Struct("<4sHHHHHIIIHH")


@dataclass(frozen=True)
class ArchiveEntry:
    path: str
    header_offset: int
    data_offset: int
    end_offset: int

    @property
    def header_size(self) -> int:
        return self.data_offset - self.header_offset

    @property
    def payload_size(self) -> int:
        return self.end_offset - self.data_offset


class ArchiveReader(Protocol):
    def list_entries(self, container: Path) -> list[ArchiveEntry]: ...


class ZipArchiveReader:
    def list_entries(self, container: Path) -> list[ArchiveEntry]:
        entries: list[ArchiveEntry] = []
        try:
            with zipfile.ZipFile(container, "r") as archive, container.open("rb") as raw:
                for info in archive.infolist():
                    if info.is_dir():
                        continue
                    raw.seek(info.header_offset)
                    header = raw.read(LOCAL_HEADER_STRUCT.size)
                    if len(header) != LOCAL_HEADER_STRUCT.size:
                        raise ArchiveReadError(f"truncated local header for ( {info.filename} ) in {container}")
                    fields = LOCAL_HEADER_STRUCT.unpack(header)
                    if fields[0] != LOCAL_HEADER_MAGIC:
                        raise ArchiveReadError(f"bad local header signature for ( {info.filename} ) in {container}")
                    name_length, extra_length = fields[9], fields[10]
                    data_offset = info.header_offset + LOCAL_HEADER_STRUCT.size + name_length + extra_length
                    entries.append(
                        ArchiveEntry(
                            path=info.filename,
                            header_offset=info.header_offset,
                            data_offset=data_offset,
                            end_offset=data_offset + info.compress_size,
                        )
                    )
        except zipfile.BadZipFile as exc:
            raise ArchiveReadError(f"failed to open archive file {container}: {exc}") from exc
        return entries


def rename_container(legacy: Path, canonical: Path, allow_overwrites: bool = False) -> bool:
    if not legacy.exists():
        return False
    if canonical.exists() and not allow_overwrites:
        raise OverwriteBlockedError(canonical)
    legacy.replace(canonical)
    return True


def find_containers(directory: Path, stem_pattern: str) -> list[Path]:
    stems: set[str] = set()
    for extension in (LEGACY_CONTAINER_EXTENSION, CONTAINER_EXTENSION):
        for path in directory.glob(stem_pattern + extension):
            if path.is_file():
                stems.add(path.stem)
    return [directory / (stem + CONTAINER_EXTENSION) for stem in sorted(stems)]


@dataclass
class ArchiveIndex:
    entries: PathRecordMap = field(default_factory=PathRecordMap)
    containers: list[Path] = field(default_factory=list)
    failures: list[str] = field(default_factory=list)


def index_containers(
    directory: Path,
    stem_pattern: str,
    reader: ArchiveReader | None = None,
    allow_overwrites: bool = False,
    reporter: Reporter = DEFAULT_REPORTER,
) -> ArchiveIndex:
    archive_reader = reader if reader is not None else ZipArchiveReader()
    index = ArchiveIndex()

    for canonical in find_containers(directory, stem_pattern):
        legacy = canonical.with_suffix(LEGACY_CONTAINER_EXTENSION)
        try:
            if rename_container(legacy, canonical, allow_overwrites):
                reporter.verbose(f"renamed {legacy.name} -> {canonical.name}")
            entries = archive_reader.list_entries(canonical)
        except OSError as exc:
            reporter.error(f"skipping container {canonical}: {exc}")
            index.failures.append(str(canonical))
            continue

        index.containers.append(canonical)
        for entry in entries:
            record = AssetRecord(
                relative_path=normalize_asset_path(entry.path),
                bundle_path=canonical.name,
                payload_offset=entry.data_offset,
                payload_size=entry.payload_size,
                header_offset=entry.header_offset,
                header_size=entry.header_size,
            )
            index.entries.add(record)
            reporter.verbose(
                f"{record.relative_path} {record.bundle_path} {record.payload_offset} {record.payload_size} "
                f"{record.header_offset} {record.header_size}"
            )

    return index
