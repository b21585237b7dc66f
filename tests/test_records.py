from __future__ import annotations

import pytest

from helpers import aid

from packhints.records import (
    DEFAULT_PACK_ID,
    INVALID_ASSET_ID,
    NIL_GUID,
    AssetId,
    AssetRecord,
    AssetRecordStore,
    PathRecordMap,
    format_guid,
    normalize_asset_path,
)


def test_asset_id_parse_normalises_guid_and_reads_hex_sub_id() -> None:
    asset_id = AssetId.parse("{6e3d0c38-9b5a-4b4c-9f0e-2d1a8e5b7c11}:1f")
    assert asset_id.guid == "{6E3D0C38-9B5A-4B4C-9F0E-2D1A8E5B7C11}"
    assert asset_id.sub_id == 31
    assert str(asset_id) == "{6E3D0C38-9B5A-4B4C-9F0E-2D1A8E5B7C11}:1f"
    assert AssetId.parse(str(asset_id)) == asset_id


def test_nil_guid_is_invalid() -> None:
    assert not INVALID_ASSET_ID.is_valid()
    assert AssetId.parse("") == INVALID_ASSET_ID
    assert format_guid("") == NIL_GUID
    assert aid(1).is_valid()


def test_format_guid_rejects_garbage() -> None:
    with pytest.raises(ValueError):
        format_guid("not-a-guid")


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("Textures\\Rock\\Rock.DDS", "textures/rock/rock.dds"),
        ("/levels/./town/../town/town.spawnable", "levels/town/town.spawnable"),
        ("", ""),
        (".", ""),
    ],
)
def test_normalize_asset_path(raw: str, expected: str) -> None:
    assert normalize_asset_path(raw) == expected


def test_store_keeps_smaller_pack_id_on_conflict() -> None:
    store = AssetRecordStore()
    assert store.add_asset(aid(1), "a.txt", 4) is False
    assert store.add_asset(aid(1), "a.txt", 7) is True
    assert store.get(aid(1)).pack_id == 4
    store.add_asset(aid(1), "a.txt", 2)
    assert store.get(aid(1)).pack_id == 2
    assert len(store) == 1


def test_store_keeps_identity_less_records_by_path() -> None:
    store = AssetRecordStore()
    store.add(AssetRecord(relative_path="loose.txt", pack_id=3))
    store.add(AssetRecord(relative_path="loose.txt", pack_id=1))
    store.add(AssetRecord(relative_path="loose.txt", pack_id=2))

    assert len(store) == 1
    assert aid(1) not in store
    assert [record.pack_id for record in store] == [1]


def test_path_only_record_folds_into_id_record() -> None:
    store = AssetRecordStore()
    store.add_asset(aid(1), "a.txt", 3)
    assert store.add(AssetRecord(relative_path="a.txt", pack_id=1)) is True

    assert len(store) == 1
    assert store.get(aid(1)).pack_id == 1
    assert store.get_by_path("a.txt") is store.get(aid(1))


def test_id_record_absorbs_earlier_path_only_record() -> None:
    store = AssetRecordStore()
    store.add(AssetRecord(relative_path="a.txt", pack_id=0))
    store.add_asset(aid(1), "a.txt", 5)

    assert len(store) == 1
    assert store.unresolved == {}
    assert store.get(aid(1)).pack_id == 0


def test_id_record_learns_its_path_and_absorbs_pending_record() -> None:
    store = AssetRecordStore()
    store.add(AssetRecord(asset_id=aid(1), pack_id=4))
    store.add(AssetRecord(relative_path="a.txt", pack_id=2))
    store.add_asset(aid(1), "a.txt", 6)

    assert [(r.asset_id, r.relative_path, r.pack_id) for r in store] == [(aid(1), "a.txt", 2)]


def test_store_rejects_record_without_id_or_path() -> None:
    with pytest.raises(ValueError):
        AssetRecordStore().add(AssetRecord())


def test_store_set_pack_id_and_remove() -> None:
    store = AssetRecordStore()
    store.add_asset(aid(1), "a.txt", DEFAULT_PACK_ID)
    assert store.set_pack_id(aid(1), 8)
    assert store.get(aid(1)).pack_id == 8
    assert not store.set_pack_id(aid(2), 8)
    assert store.remove(aid(1))
    assert not store.remove(aid(1))
    assert store.keys() == []


def test_path_record_map_keeps_first_seen() -> None:
    records = PathRecordMap()
    first = AssetRecord(relative_path="a.txt", bundle_path="one.bpak")
    assert records.add(first) is False
    assert records.add(AssetRecord(relative_path="a.txt", bundle_path="two.bpak")) is True
    assert records.get("a.txt") is first
    assert "a.txt" in records
    assert len(records) == 1


def test_same_asset_compares_identity_path_and_pack() -> None:
    left = AssetRecord(asset_id=aid(1), relative_path="a.txt", pack_id=1, bundle_path="x.bpak")
    right = AssetRecord(asset_id=aid(1), relative_path="a.txt", pack_id=1)
    assert left.same_asset(right)
    right.pack_id = 2
    assert not left.same_asset(right)
