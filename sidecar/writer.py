# ruff: noqa: UP007  # keep Optional[...] for Py3.9; don't force X | Y
from __future__ import annotations

import json
import os
from contextlib import suppress
from pathlib import Path
from typing import Any, Optional, TextIO


class SidecarWriter:
    """Append-only JSON-lines file: one ``dict`` per line."""

    def __init__(self, path: str | Path):
        self.path = Path(path)
        self._fh: Optional[TextIO] = None

    def __enter__(self) -> SidecarWriter:
        self.open()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    @property
    def is_open(self) -> bool:
        return self._fh is not None

    def open(self) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self._fh = self.path.open("w", encoding="utf-8", newline="")

    def append(self, rec: dict[str, Any]) -> None:
        if not self._fh:
            raise RuntimeError("SidecarWriter is not open")
        self._fh.write(json.dumps(rec, ensure_ascii=False) + "\n")

    def flush(self) -> None:
        if self._fh:
            self._fh.flush()

    def close(self) -> None:
        if self._fh is not None:
            with suppress(OSError):
                self._fh.flush()
            # fsync is unsupported on some file-likes (pipes, some network mounts)
            with suppress(OSError, ValueError):
                os.fsync(self._fh.fileno())
            self._fh.close()
            self._fh = None
