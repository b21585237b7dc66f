from __future__ import annotations

import posixpath
import uuid
from dataclasses import dataclass, field
from typing import Iterator


DEFAULT_PACK_ID = 0xFFFFFFFF
NIL_GUID = "{00000000-0000-0000-0000-000000000000}"


def format_guid(value: str) -> str:
    text = value.strip()
    if not text:
        return NIL_GUID
    try:
        parsed = uuid.UUID(text.strip("{}"))
    except ValueError as exc:
        raise ValueError(f"invalid asset guid: {value!r}") from exc
    return "{" + str(parsed).upper() + "}"


@dataclass(frozen=True, order=True)
class AssetId:
    guid: str = NIL_GUID
    sub_id: int = 0

    @classmethod
    def parse(cls, text: str) -> AssetId:
        guid_text, sep, sub_text = text.strip().partition(":")
        sub_id = int(sub_text, 16) if sep and sub_text else 0
        return cls(format_guid(guid_text), sub_id)

    @classmethod
    def create(cls, guid: str, sub_id: int) -> AssetId:
        return cls(format_guid(guid), sub_id)

    def is_valid(self) -> bool:
        return self.guid != NIL_GUID

    def __str__(self) -> str:
        return f"{self.guid}:{self.sub_id:x}"


INVALID_ASSET_ID = AssetId()


def normalize_asset_path(path: str) -> str:
    text = path.strip().replace("\\", "/").lower()
    if text.startswith("/"):
        text = text[1:]
    if not text:
        return ""
    normalized = posixpath.normpath(text)
    if normalized == ".":
        return ""
    return normalized.lstrip("/")


@dataclass
class AssetRecord:
    asset_id: AssetId = INVALID_ASSET_ID
    relative_path: str = ""
    pack_id: int = DEFAULT_PACK_ID
    bundle_path: str = ""
    payload_offset: int = 0
    payload_size: int = 0
    header_offset: int = 0
    header_size: int = 0

    def has_identity(self) -> bool:
        return self.asset_id.is_valid()

    def sort_key(self) -> tuple[str, str]:
        return (self.relative_path, str(self.asset_id))

    def same_asset(self, other: AssetRecord) -> bool:
        return (
            self.asset_id == other.asset_id
            and self.relative_path == other.relative_path
            and self.pack_id == other.pack_id
        )


@dataclass
class PathRecordMap:
    records: dict[str, AssetRecord] = field(default_factory=dict)

    def __len__(self) -> int:
        return len(self.records)

    def __contains__(self, path: object) -> bool:
        return path in self.records

    def __iter__(self) -> Iterator[AssetRecord]:
        return iter(self.records.values())

    def get(self, path: str) -> AssetRecord | None:
        return self.records.get(path)

    def add(self, record: AssetRecord, key: str | None = None) -> bool:
        path = record.relative_path if key is None else key
        if path in self.records:
            return True
        self.records[path] = record
        return False


@dataclass
class AssetRecordStore:
    # Keyed by asset id. Path-only records fold into the id record with the
    # same path. On any collision the smaller pack id wins.
    records: dict[AssetId, AssetRecord] = field(default_factory=dict)
    unresolved: dict[str, AssetRecord] = field(default_factory=dict)
    paths: dict[str, AssetId] = field(default_factory=dict)

    def __len__(self) -> int:
        return len(self.records) + len(self.unresolved)

    def __contains__(self, asset_id: object) -> bool:
        return asset_id in self.records

    def __iter__(self) -> Iterator[AssetRecord]:
        yield from self.records.values()
        yield from self.unresolved.values()

    def get(self, asset_id: AssetId) -> AssetRecord | None:
        return self.records.get(asset_id)

    def get_by_path(self, relative_path: str) -> AssetRecord | None:
        asset_id = self.paths.get(relative_path)
        if asset_id is not None:
            return self.records[asset_id]
        return self.unresolved.get(relative_path)

    def add(self, record: AssetRecord) -> bool:
        path = record.relative_path
        if not record.asset_id.is_valid():
            if not path:
                raise ValueError("asset record needs an asset id or a relative path")
            existing = self.get_by_path(path)
            if existing is not None:
                existing.pack_id = min(existing.pack_id, record.pack_id)
                return True
            self.unresolved[path] = record
            return False

        existing = self.records.get(record.asset_id)
        if existing is not None:
            existing.pack_id = min(existing.pack_id, record.pack_id)
            if not existing.relative_path and path:
                existing.relative_path = path
                self._absorb_unresolved(existing)
            return True

        self.records[record.asset_id] = record
        self._absorb_unresolved(record)
        return False

    def _absorb_unresolved(self, record: AssetRecord) -> None:
        path = record.relative_path
        if not path:
            return
        pending = self.unresolved.pop(path, None)
        if pending is not None:
            record.pack_id = min(record.pack_id, pending.pack_id)
        self.paths.setdefault(path, record.asset_id)

    def add_asset(self, asset_id: AssetId, relative_path: str, pack_id: int) -> bool:
        return self.add(AssetRecord(asset_id=asset_id, relative_path=relative_path, pack_id=pack_id))

    def remove(self, asset_id: AssetId) -> bool:
        record = self.records.pop(asset_id, None)
        if record is None:
            return False
        if self.paths.get(record.relative_path) == asset_id:
            del self.paths[record.relative_path]
        return True

    def set_pack_id(self, asset_id: AssetId, pack_id: int) -> bool:
        record = self.records.get(asset_id)
        if record is None:
            return False
        record.pack_id = pack_id
        return True

    def keys(self) -> list[AssetId]:
        return list(self.records)
