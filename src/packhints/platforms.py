from __future__ import annotations

from pathlib import Path

from packhints.errors import InputValidationError


KNOWN_PLATFORMS = (
    "pc",
    "linux",
    "mac",
    "android",
    "ios",
    "provo",
    "salem",
    "jasper",
    "server",
)


def parse_platforms(values: list[str] | None) -> list[str]:
    platforms: list[str] = []
    for value in values or []:
        for name in value.split(","):
            name = name.strip().lower()
            if not name:
                continue
            if name not in KNOWN_PLATFORMS:
                raise InputValidationError(f"unknown platform ( {name} ), expected one of: {', '.join(KNOWN_PLATFORMS)}")
            if name not in platforms:
                platforms.append(name)
    return platforms


def replace_extension(path: Path, extension: str) -> Path:
    ext = extension if extension.startswith(".") else "." + extension
    return path.with_name(path.stem + ext)


def platform_identifier(path: Path) -> str:
    stem = path.stem
    for platform in KNOWN_PLATFORMS:
        if stem.lower().endswith("_" + platform):
            return platform
    return ""


def add_platform_identifier(path: Path, platform: str) -> Path | None:
    existing = platform_identifier(path)
    if existing:
        return path if existing == platform else None
    return path.with_name(f"{path.stem}_{platform}{path.suffix}")
