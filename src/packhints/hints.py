from __future__ import annotations

import json
from collections.abc import Callable, Iterable
from pathlib import Path
from typing import Any

from packhints.errors import HintFileError
from packhints.fileio import write_json
from packhints.merge import group_by_pack
from packhints.records import INVALID_ASSET_ID, AssetId, AssetRecord, normalize_asset_path
from packhints.report import DEFAULT_REPORTER, Reporter


ASSET_HINTS_EXTENSION = ".assethints"
SEED_ASSET_HINTS_EXTENSION = "seed.assethints"
PAK_ASSET_HINTS_EXTENSION = "pak.assethints"

GUID_KEY = "guid"
SUB_ID_KEY = "subId"
ASSET_HINT_KEY = "assetHint"

IdentityResolver = Callable[[str], AssetId]
PathResolver = Callable[[AssetId], str]


def parse_sub_id(value: Any) -> int:
    if isinstance(value, bool):
        raise ValueError(f"invalid {SUB_ID_KEY}: {value!r}")
    if isinstance(value, int):
        if value < 0:
            raise ValueError(f"invalid {SUB_ID_KEY}: {value!r}")
        return value
    if isinstance(value, str):
        text = value.strip().lower()
        return int(text[2:] if text.startswith("0x") else text, 16)
    raise ValueError(f"invalid {SUB_ID_KEY}: {value!r}")


def record_from_json(
    pack_id: int,
    entry: dict[str, Any],
    resolve_identity: IdentityResolver | None = None,
    resolve_path: PathResolver | None = None,
) -> AssetRecord:
    has_id = GUID_KEY in entry and SUB_ID_KEY in entry
    has_hint = ASSET_HINT_KEY in entry
    if not has_id and not has_hint:
        raise ValueError(f"entry needs either {GUID_KEY} and {SUB_ID_KEY} or {ASSET_HINT_KEY}")

    relative_path = normalize_asset_path(str(entry[ASSET_HINT_KEY])) if has_hint else ""
    if has_id:
        asset_id = AssetId.create(str(entry[GUID_KEY]), parse_sub_id(entry[SUB_ID_KEY]))
    elif resolve_identity is not None:
        asset_id = resolve_identity(relative_path)
    else:
        asset_id = INVALID_ASSET_ID

    if not relative_path and asset_id.is_valid() and resolve_path is not None:
        relative_path = resolve_path(asset_id)

    return AssetRecord(asset_id=asset_id, relative_path=relative_path, pack_id=pack_id)


def record_to_json(record: AssetRecord) -> dict[str, Any]:
    entry: dict[str, Any] = {}
    if record.asset_id.is_valid():
        entry[GUID_KEY] = record.asset_id.guid
        entry[SUB_ID_KEY] = record.asset_id.sub_id
    if record.relative_path:
        entry[ASSET_HINT_KEY] = record.relative_path
    return entry


def parse_hint_document(
    text: str,
    path: Path | str = "<hints>",
    resolve_identity: IdentityResolver | None = None,
    resolve_path: PathResolver | None = None,
) -> list[AssetRecord]:
    try:
        document = json.loads(text)
    except json.JSONDecodeError as exc:
        line = text.count("\n", 0, exc.pos) + 1
        raise HintFileError(path, f"JSON parse error: {exc.msg}", line=line) from exc

    if not isinstance(document, dict):
        raise HintFileError(path, "expecting a JSON object keyed by pack id")

    records: list[AssetRecord] = []
    for key, entries in document.items():
        try:
            pack_id = int(key, 10)
        except ValueError as exc:
            raise HintFileError(path, f"pack id ( {key} ) is not a decimal number") from exc
        if pack_id < 0:
            raise HintFileError(path, f"pack id ( {key} ) must be unsigned")
        if not isinstance(entries, list):
            raise HintFileError(path, f"expecting an array for pack id ( {key} ) but found another type")

        for entry in entries:
            if not isinstance(entry, dict):
                raise HintFileError(path, f"expecting an object in pack id ( {key} )")
            try:
                records.append(record_from_json(pack_id, entry, resolve_identity, resolve_path))
            except ValueError as exc:
                raise HintFileError(path, f"pack id ( {key} ): {exc}") from exc

    return records


def read_hint_file(
    path: Path,
    resolve_identity: IdentityResolver | None = None,
    resolve_path: PathResolver | None = None,
) -> list[AssetRecord]:
    text = path.read_text(encoding="utf-8")
    return parse_hint_document(text, path, resolve_identity, resolve_path)


def build_hint_document(records: Iterable[AssetRecord], reporter: Reporter = DEFAULT_REPORTER) -> dict[str, list[dict[str, Any]]]:
    document: dict[str, list[dict[str, Any]]] = {}
    for pack_id, group in group_by_pack(records).items():
        entries: list[dict[str, Any]] = []
        for record in group:
            entry = record_to_json(record)
            if not entry:
                reporter.warning(f"skipping a pack {pack_id} record with neither an asset id nor a relative path")
                continue
            entries.append(entry)
        if entries:
            document[str(pack_id)] = entries
    return document


def write_hint_file(records: Iterable[AssetRecord], path: Path, reporter: Reporter = DEFAULT_REPORTER) -> None:
    write_json(path, build_hint_document(records, reporter))
