from __future__ import annotations

import uuid
import zipfile
from collections import Counter
from pathlib import Path

from packhints.catalog import TsvAssetCatalog
from packhints.records import AssetId, AssetRecordStore


def aid(n: int, sub_id: int = 0) -> AssetId:
    return AssetId.create(str(uuid.UUID(int=n)), sub_id)


def make_catalog(edges: dict[int, list[int]], paths: dict[int, str] | None = None) -> TsvAssetCatalog:
    catalog = TsvAssetCatalog()
    nodes = set(edges)
    for targets in edges.values():
        nodes.update(targets)
    for n in sorted(nodes):
        path = (paths or {}).get(n, f"assets/node{n}.bin")
        catalog.add_asset(aid(n), path, [aid(t) for t in edges.get(n, [])])
    return catalog


def store_with(catalog: TsvAssetCatalog, pack_id: int = 9) -> AssetRecordStore:
    store = AssetRecordStore()
    for asset_id, path in catalog.paths.items():
        store.add_asset(asset_id, path, pack_id)
    return store


class CountingCatalog:
    def __init__(self, inner: TsvAssetCatalog) -> None:
        self.inner = inner
        self.calls: Counter[AssetId] = Counter()

    def get_direct_dependencies(self, asset_id: AssetId) -> list[AssetId] | None:
        self.calls[asset_id] += 1
        return self.inner.get_direct_dependencies(asset_id)

    def path_matches_wildcard(self, asset_id: AssetId, pattern: str) -> bool:
        return self.inner.path_matches_wildcard(asset_id, pattern)

    def resolve_path(self, asset_id: AssetId) -> str:
        return self.inner.resolve_path(asset_id)

    def resolve_identity(self, path: str) -> AssetId:
        return self.inner.resolve_identity(path)


def write_container(path: Path, entries: dict[str, bytes]) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    with zipfile.ZipFile(path, "w", compression=zipfile.ZIP_STORED) as archive:
        for name, data in entries.items():
            archive.writestr(name, data)
    return path


def write_catalog_tsv(path: Path, rows: list[tuple[AssetId, str, list[AssetId]]]) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    lines = ["asset_id\trelative_path\tdependencies"]
    for asset_id, relative_path, dependencies in rows:
        lines.append(f"{asset_id}\t{relative_path}\t{','.join(str(d) for d in dependencies)}")
    path.write_text("\n".join(lines) + "\n", encoding="utf-8")
    return path
