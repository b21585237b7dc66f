from __future__ import annotations

import json
from pathlib import Path
from typing import Any

from packhints.errors import OverwriteBlockedError


def check_overwrite(path: Path, allow_overwrites: bool) -> None:
    if path.exists() and not allow_overwrites:
        raise OverwriteBlockedError(path)


def write_text(path: Path, lines: list[str]) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp_path = path.with_suffix(path.suffix + ".tmp")
    with tmp_path.open("w", encoding="utf-8", newline="\n") as handle:
        handle.writelines(lines)
    tmp_path.replace(path)


def write_json(path: Path, document: Any) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp_path = path.with_suffix(path.suffix + ".tmp")
    tmp_path.write_text(json.dumps(document, indent=4) + "\n", encoding="utf-8")
    tmp_path.replace(path)
