from __future__ import annotations

from pathlib import Path

import pytest

from helpers import aid, write_catalog_tsv

from packhints.catalog import (
    PlatformCatalogs,
    TsvAssetCatalog,
    discover_platforms,
    looks_like_wildcard,
    split_skip_list,
)
from packhints.records import INVALID_ASSET_ID


def test_load_reads_rows_and_dependencies(tmp_path: Path) -> None:
    path = write_catalog_tsv(
        tmp_path / "assetcatalog.tsv",
        [
            (aid(1), "Levels/Town/Town.spawnable", [aid(2), aid(3, 1)]),
            (aid(2), "textures/rock.dds", []),
            (aid(3, 1), "scripts/town.lua", []),
        ],
    )

    catalog = TsvAssetCatalog.load(path)

    assert catalog.resolve_identity("levels\\town\\town.spawnable") == aid(1)
    assert catalog.resolve_path(aid(3, 1)) == "scripts/town.lua"
    assert catalog.get_direct_dependencies(aid(1)) == [aid(2), aid(3, 1)]
    assert catalog.get_direct_dependencies(aid(2)) is None
    assert catalog.resolve_identity("missing.txt") == INVALID_ASSET_ID


def test_load_requires_columns(tmp_path: Path) -> None:
    path = tmp_path / "assetcatalog.tsv"
    path.write_text("asset_id\trelative_path\n", encoding="utf-8")
    with pytest.raises(ValueError, match="dependencies"):
        TsvAssetCatalog.load(path)


def test_wildcards() -> None:
    catalog = TsvAssetCatalog()
    catalog.add_asset(aid(1), "Textures/Rock.dds")

    assert looks_like_wildcard("textures/*.dds")
    assert not looks_like_wildcard("textures/rock.dds")
    assert catalog.path_matches_wildcard(aid(1), "TEXTURES\\*.dds")
    assert not catalog.path_matches_wildcard(aid(1), "sounds/*")
    assert not catalog.path_matches_wildcard(aid(2), "*")


def two_platforms(reporter) -> PlatformCatalogs:
    pc = TsvAssetCatalog()
    pc.add_asset(aid(1), "shared.txt")
    pc.add_asset(aid(2), "pc_only.txt")
    linux = TsvAssetCatalog()
    linux.add_asset(aid(1), "shared.txt")
    return PlatformCatalogs({"pc": pc, "linux": linux}, reporter)


def test_resolve_identity_needs_every_platform(reporter) -> None:
    catalogs = two_platforms(reporter)

    assert catalogs.resolve_identity("shared.txt") == aid(1)
    assert catalogs.resolve_identity("pc_only.txt") == INVALID_ASSET_ID
    assert catalogs.resolve_identity("pc_only.txt", ["pc"]) == aid(2)
    assert reporter.warning_count == 1


def test_resolve_path_takes_first_platform_that_knows(reporter) -> None:
    catalogs = two_platforms(reporter)

    assert catalogs.resolve_path(aid(2), ["linux", "pc"]) == "pc_only.txt"
    assert catalogs.resolve_path(aid(9)) == ""
    assert reporter.warning_count == 1


def test_load_and_discover(tmp_path: Path) -> None:
    write_catalog_tsv(tmp_path / "pc" / "assetcatalog.tsv", [(aid(1), "a.txt", [])])
    write_catalog_tsv(tmp_path / "android" / "assetcatalog.tsv", [(aid(1), "a.txt", [])])
    (tmp_path / "notaplatform").mkdir()

    platforms = discover_platforms(tmp_path)
    catalogs = PlatformCatalogs.load(tmp_path, platforms)

    assert platforms == ["pc", "android"]
    assert catalogs.platforms == ["pc", "android"]
    assert catalogs["android"].resolve_path(aid(1)) == "a.txt"

    partial = PlatformCatalogs.load(tmp_path, ["pc", "ios"])
    assert partial.platforms == ["pc"]
    assert isinstance(partial.failed["ios"], FileNotFoundError)
    assert partial.resolve_identity("a.txt", ["pc", "ios"]) == aid(1)
    with pytest.raises(FileNotFoundError):
        partial["ios"]
    with pytest.raises(FileNotFoundError):
        partial.check_loaded()


def test_load_keeps_platforms_with_a_broken_catalog_apart(tmp_path: Path) -> None:
    write_catalog_tsv(tmp_path / "pc" / "assetcatalog.tsv", [(aid(1), "a.txt", [])])
    broken = tmp_path / "linux" / "assetcatalog.tsv"
    broken.parent.mkdir()
    broken.write_text("asset_id\trelative_path\n", encoding="utf-8")

    catalogs = PlatformCatalogs.load(tmp_path, ["pc", "linux"])

    assert catalogs.platforms == ["pc"]
    assert list(catalogs.failed) == ["linux"]
    assert catalogs["pc"].resolve_path(aid(1)) == "a.txt"


def test_split_skip_list(reporter) -> None:
    catalogs = two_platforms(reporter)

    exclusions, wildcards = split_skip_list(["shared.txt", "levels/*", "unknown.txt"], catalogs)

    assert exclusions == {aid(1)}
    assert wildcards == ["levels/*"]


def test_load_skips_malformed_ids(tmp_path: Path, reporter) -> None:
    path = tmp_path / "assetcatalog.tsv"
    path.write_text(
        "asset_id\trelative_path\tdependencies\n"
        f"{aid(1)}\ta.txt\t{aid(2)},not-a-guid:1,{aid(3)}:zz\n"
        "garbage\tb.txt\t\n"
        f"\tc.txt\t{aid(1)}\n"
        f"{aid(2)}\td.txt\t\n",
        encoding="utf-8",
    )

    catalog = TsvAssetCatalog.load(path, reporter)

    assert catalog.get_direct_dependencies(aid(1)) == [aid(2)]
    assert sorted(catalog.ids) == ["a.txt", "d.txt"]
    assert reporter.warning_count == 4
