from __future__ import annotations

from collections.abc import Iterable
from dataclasses import replace

from packhints.records import DEFAULT_PACK_ID, AssetId, AssetRecord, AssetRecordStore, PathRecordMap


PackGroups = dict[int, list[AssetRecord]]


def combine(sources: Iterable[Iterable[AssetRecord]]) -> AssetRecordStore:
    store = AssetRecordStore()
    for source in sources:
        for record in source:
            store.add(replace(record))
    return store


def combine_by_path(sources: Iterable[Iterable[AssetRecord]]) -> PathRecordMap:
    merged = PathRecordMap()
    for source in sources:
        for record in source:
            merged.add(replace(record))
    return merged


def apply_pack_override(store: AssetRecordStore, pack_id: int, touched: Iterable[AssetId] | None = None) -> int:
    if pack_id == DEFAULT_PACK_ID:
        return 0
    if touched is None:
        changed = 0
        for record in store:
            record.pack_id = pack_id
            changed += 1
        return changed
    return sum(1 for asset_id in set(touched) if store.set_pack_id(asset_id, pack_id))


def group_by_pack(records: Iterable[AssetRecord], include_unassigned: bool = False) -> PackGroups:
    groups: dict[int, list[AssetRecord]] = {}
    for record in records:
        if record.pack_id == DEFAULT_PACK_ID and not include_unassigned:
            continue
        groups.setdefault(record.pack_id, []).append(record)

    return {
        pack_id: sorted(groups[pack_id], key=AssetRecord.sort_key)
        for pack_id in sorted(groups)
        if groups[pack_id]
    }
