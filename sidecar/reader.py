from __future__ import annotations

import json
import logging
from collections.abc import Iterator
from pathlib import Path
from typing import Any, Optional

_LOG = logging.getLogger(__name__)


class SidecarReader:
    """Iterate the records of a JSON-lines sidecar, skipping unreadable lines."""

    def __init__(self, path: str | Path, record_type: Optional[str] = None):
        self.path = Path(path)
        self.record_type = record_type

    def __iter__(self) -> Iterator[dict[str, Any]]:
        with self.path.open("r", encoding="utf-8") as fh:
            for lineno, line in enumerate(fh, start=1):
                line = line.strip()
                if not line:
                    continue
                try:
                    rec = json.loads(line)
                except json.JSONDecodeError as exc:
                    _LOG.warning("%s:%d: skipping malformed line (%s)", self.path, lineno, exc)
                    continue
                if self.record_type is None or rec.get("type") == self.record_type:
                    yield rec
