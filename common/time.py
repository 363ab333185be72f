from __future__ import annotations

import time
from datetime import datetime, timezone


def now_ms() -> float:
    """Wall-clock epoch milliseconds."""
    return time.time() * 1000.0


def elapsed_ms(start_s: float) -> float:
    """Milliseconds since ``start_s`` (a ``time.perf_counter()`` reading)."""
    return (time.perf_counter() - start_s) * 1000.0


def to_iso_utc(ts_ms: float) -> str:
    return datetime.fromtimestamp(ts_ms / 1000.0, tz=timezone.utc).isoformat()
