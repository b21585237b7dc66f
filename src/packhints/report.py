from __future__ import annotations

import sys
import threading
from typing import TextIO


class Reporter:
    def __init__(self, verbose: bool = False, out: TextIO | None = None, err: TextIO | None = None) -> None:
        self.verbose_mode = verbose
        self._out = out
        self._err = err
        self._lock = threading.Lock()
        self.warning_count = 0
        self.error_count = 0

    def _write(self, stream: TextIO | None, fallback: TextIO, line: str) -> None:
        target = stream if stream is not None else fallback
        with self._lock:
            target.write(line + "\n")
            target.flush()

    def info(self, message: str) -> None:
        self._write(self._out, sys.stdout, message)

    def verbose(self, message: str) -> None:
        if self.verbose_mode:
            self._write(self._out, sys.stdout, message)

    def warning(self, message: str) -> None:
        with self._lock:
            self.warning_count += 1
        self._write(self._err, sys.stderr, f"warning: {message}")

    def error(self, message: str) -> None:
        with self._lock:
            self.error_count += 1
        self._write(self._err, sys.stderr, f"error: {message}")


DEFAULT_REPORTER = Reporter()
