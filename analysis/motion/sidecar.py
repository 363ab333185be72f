from __future__ import annotations

import dataclasses
from pathlib import Path
from typing import Any, Optional

from common.time import now_ms, to_iso_utc
from sidecar.writer import SidecarWriter

from .events import MotionSpan
from .model import MotionConfig, MotionResult

SCHEMA = "movedetect.v1"


class MotionSidecarWriter:
    """
    Thin wrapper around SidecarWriter for motion output.

    Record types: ``meta`` (once, first line), ``motion_transition`` (every
    call where the motion flag flipped) and ``motion_span``.
    """

    def __init__(self, path: str | Path):
        self._writer = SidecarWriter(path)

    def __enter__(self) -> MotionSidecarWriter:
        self._writer.__enter__()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self._writer.__exit__(exc_type, exc, tb)

    @property
    def path(self) -> Path:
        return self._writer.path

    def write_meta(self, source: str, config: MotionConfig, extra: Optional[dict] = None) -> None:
        payload: dict[str, Any] = {
            "type": "meta",
            "schema": SCHEMA,
            "source": source,
            "created": to_iso_utc(now_ms()),
            "config": dataclasses.asdict(config),
        }
        if extra:
            payload.update(extra)
        self._writer.append(payload)

    def write_transition(self, res: MotionResult, pts_ms: Optional[float] = None) -> None:
        self._writer.append(
            {
                "type": "motion_transition",
                "frame_index": int(res.frame_index),
                "pts_ms": None if pts_ms is None else float(pts_ms),
                "moved": bool(res.is_motion),
                "score": float(res.score),
                "matched_index": res.matched_index,
                "ts_ms": float(res.ts_ms),
            }
        )

    def write_span(self, span: MotionSpan) -> None:
        self._writer.append(
            {
                "type": "motion_span",
                "start_index": int(span.start_index),
                "stop_index": int(span.stop_index),
                "frames": int(span.frames),
                "start_ms": float(span.start_ms),
                "stop_ms": float(span.stop_ms),
                "min_score": float(span.min_score),
            }
        )

    def flush(self) -> None:
        self._writer.flush()

    def close(self) -> None:
        self._writer.close()
