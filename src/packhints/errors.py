from __future__ import annotations

from pathlib import Path


class InputValidationError(ValueError):
    pass


class HintFileError(ValueError):
    def __init__(self, path: Path | str, message: str, line: int | None = None) -> None:
        location = f"{path}:{line}" if line is not None else f"{path}"
        super().__init__(f"{location}: {message}")
        self.path = Path(path)
        self.line = line


class ArchiveReadError(OSError):
    pass


class OverwriteBlockedError(FileExistsError):
    def __init__(self, path: Path, flag: str = "--allow-overwrites") -> None:
        super().__init__(
            f"{path} already exists, running this command would perform a destructive overwrite; "
            f"run it again with {flag} to save over the existing file"
        )
        self.path = path
