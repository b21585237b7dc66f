from __future__ import annotations

import csv
import fnmatch
from dataclasses import dataclass, field
from pathlib import Path
from typing import Protocol

from packhints.platforms import KNOWN_PLATFORMS
from packhints.records import INVALID_ASSET_ID, AssetId, normalize_asset_path
from packhints.report import DEFAULT_REPORTER, Reporter


CATALOG_FILENAME = "assetcatalog.tsv"
CATALOG_COLUMNS = ("asset_id", "relative_path", "dependencies")


class AssetCatalog(Protocol):
    def get_direct_dependencies(self, asset_id: AssetId) -> list[AssetId] | None: ...

    def path_matches_wildcard(self, asset_id: AssetId, pattern: str) -> bool: ...

    def resolve_path(self, asset_id: AssetId) -> str: ...

    def resolve_identity(self, path: str) -> AssetId: ...


def looks_like_wildcard(pattern: str) -> bool:
    return any(ch in pattern for ch in "*?")


def wildcard_match(path: str, pattern: str) -> bool:
    return fnmatch.fnmatchcase(normalize_asset_path(path), pattern.replace("\\", "/").lower())


@dataclass
class TsvAssetCatalog:
    paths: dict[AssetId, str] = field(default_factory=dict)
    ids: dict[str, AssetId] = field(default_factory=dict)
    dependencies: dict[AssetId, list[AssetId]] = field(default_factory=dict)

    def add_asset(self, asset_id: AssetId, relative_path: str, dependencies: list[AssetId] | None = None) -> None:
        path = normalize_asset_path(relative_path)
        self.paths[asset_id] = path
        if path:
            self.ids[path] = asset_id
        if dependencies:
            self.dependencies[asset_id] = list(dependencies)

    def get_direct_dependencies(self, asset_id: AssetId) -> list[AssetId] | None:
        return self.dependencies.get(asset_id)

    def path_matches_wildcard(self, asset_id: AssetId, pattern: str) -> bool:
        path = self.paths.get(asset_id, "")
        return bool(path) and wildcard_match(path, pattern)

    def resolve_path(self, asset_id: AssetId) -> str:
        return self.paths.get(asset_id, "")

    def resolve_identity(self, path: str) -> AssetId:
        return self.ids.get(normalize_asset_path(path), INVALID_ASSET_ID)

    @classmethod
    def load(cls, path: Path, reporter: Reporter = DEFAULT_REPORTER) -> TsvAssetCatalog:
        catalog = cls()
        with path.open("r", encoding="utf-8", newline="") as handle:
            reader = csv.DictReader(handle, delimiter="\t")
            missing = set(CATALOG_COLUMNS).difference(reader.fieldnames or [])
            if missing:
                raise ValueError(f"{path}: catalog missing required columns: {sorted(missing)}")

            for line, row in enumerate(reader, start=2):
                try:
                    asset_id = AssetId.parse(row["asset_id"] or "")
                except ValueError as exc:
                    reporter.warning(f"{path}:{line}: skipping row, {exc}")
                    continue
                if not asset_id.is_valid():
                    reporter.warning(f"{path}:{line}: skipping row without an asset id")
                    continue

                dependencies: list[AssetId] = []
                for token in (row["dependencies"] or "").split(","):
                    if not token.strip():
                        continue
                    try:
                        dependency = AssetId.parse(token)
                    except ValueError as exc:
                        reporter.warning(f"{path}:{line}: skipping dependency, {exc}")
                        continue
                    if dependency.is_valid():
                        dependencies.append(dependency)
                catalog.add_asset(asset_id, row["relative_path"] or "", dependencies)

        return catalog


def catalog_path_for_platform(catalog_root: Path, platform: str) -> Path:
    return catalog_root / platform / CATALOG_FILENAME


def discover_platforms(catalog_root: Path) -> list[str]:
    return [p for p in KNOWN_PLATFORMS if catalog_path_for_platform(catalog_root, p).is_file()]


class PlatformCatalogs:
    def __init__(
        self,
        catalogs: dict[str, AssetCatalog],
        reporter: Reporter = DEFAULT_REPORTER,
        failed: dict[str, Exception] | None = None,
    ) -> None:
        self.catalogs = dict(catalogs)
        self.reporter = reporter
        self.failed = dict(failed or {})

    @property
    def platforms(self) -> list[str]:
        return list(self.catalogs)

    def __getitem__(self, platform: str) -> AssetCatalog:
        if platform in self.failed:
            raise self.failed[platform]
        return self.catalogs[platform]

    def loaded(self, platforms: list[str] | None = None) -> list[str]:
        if not platforms:
            return self.platforms
        return [platform for platform in platforms if platform in self.catalogs]

    def check_loaded(self) -> None:
        for error in self.failed.values():
            raise error

    def resolve_identity(self, path: str, platforms: list[str] | None = None) -> AssetId:
        asset_id = INVALID_ASSET_ID
        found_invalid = False
        for platform in self.loaded(platforms):
            found = self.catalogs[platform].resolve_identity(path)
            if not found.is_valid():
                self.reporter.warning(f"asset catalog does not know about the asset ( {path} ) on platform ( {platform} )")
                found_invalid = True
            else:
                asset_id = found
        if found_invalid:
            return INVALID_ASSET_ID
        return asset_id

    def resolve_path(self, asset_id: AssetId, platforms: list[str] | None = None) -> str:
        selected = self.loaded(platforms)
        for platform in selected:
            path = self.catalogs[platform].resolve_path(asset_id)
            if path:
                return path
        self.reporter.warning(f"unable to resolve path of asset ( {asset_id} ) for platforms ( {', '.join(selected)} )")
        return ""

    @classmethod
    def load(
        cls,
        catalog_root: Path,
        platforms: list[str],
        catalog_file: Path | None = None,
        reporter: Reporter = DEFAULT_REPORTER,
    ) -> PlatformCatalogs:
        catalogs: dict[str, AssetCatalog] = {}
        failed: dict[str, Exception] = {}
        for platform in platforms:
            path = catalog_file if catalog_file is not None else catalog_path_for_platform(catalog_root, platform)
            reporter.verbose(f"loading asset catalog from ( {path} )")
            try:
                if not path.is_file():
                    raise FileNotFoundError(f"failed to open asset catalog file ( {path} )")
                catalogs[platform] = TsvAssetCatalog.load(path, reporter)
            except (OSError, ValueError) as exc:
                failed[platform] = exc
        return cls(catalogs, reporter, failed)


def split_skip_list(
    skip: list[str],
    catalogs: PlatformCatalogs,
    platforms: list[str] | None = None,
) -> tuple[set[AssetId], list[str]]:
    exclusions: set[AssetId] = set()
    wildcards: list[str] = []
    for entry in skip:
        if looks_like_wildcard(entry):
            wildcards.append(entry)
            continue
        asset_id = catalogs.resolve_identity(entry, platforms)
        if asset_id.is_valid():
            exclusions.add(asset_id)
    return exclusions, wildcards
