from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional

from .model import MotionResult


@dataclass
class MotionSpan:
    """
    Run of consecutive frames reported as moving.

    Indices are inclusive; timestamps are the wall-clock ``ts_ms`` of the
    first and last moving frame.
    """

    start_index: int
    stop_index: int
    start_ms: float
    stop_ms: float

    # Lowest PSNR seen in the span (lower means a bigger change).
    min_score: float

    @property
    def frames(self) -> int:
        return self.stop_index - self.start_index + 1


@dataclass
class MotionSpanConfig:
    # Spans shorter than this (in frames) are dropped.
    min_frames: int = 1

    # Spans separated by at most this many still frames are merged.
    merge_gap_frames: int = 0


class MotionSpanBuilder:
    """
    Turn a stream of MotionResult into MotionSpan windows.

    API:
        builder = MotionSpanBuilder(MotionSpanConfig())
        spans = builder.consume(engine.last_result)   # list[MotionSpan]
        final_spans = builder.flush()                 # at end of stream
    """

    def __init__(self, config: Optional[MotionSpanConfig] = None) -> None:
        self._cfg = config or MotionSpanConfig()

        self._active: Optional[MotionSpan] = None
        # Last closed span, held back while a merge is still possible.
        self._pending: Optional[MotionSpan] = None

    # ------------------------------------------------------------------ #
    # Helpers
    # ------------------------------------------------------------------ #

    def _merge_or_buffer(self, span: MotionSpan, out: List[MotionSpan]) -> None:
        if self._pending is None:
            self._pending = span
            return

        gap = span.start_index - self._pending.stop_index - 1
        if gap <= self._cfg.merge_gap_frames:
            self._pending = MotionSpan(
                start_index=self._pending.start_index,
                stop_index=span.stop_index,
                start_ms=self._pending.start_ms,
                stop_ms=span.stop_ms,
                min_score=min(self._pending.min_score, span.min_score),
            )
        else:
            self._emit(self._pending, out)
            self._pending = span

    def _emit(self, span: MotionSpan, out: List[MotionSpan]) -> None:
        if span.frames >= self._cfg.min_frames:
            out.append(span)

    def _close_active(self, out: List[MotionSpan]) -> None:
        if self._active is not None:
            self._merge_or_buffer(self._active, out)
            self._active = None

    # ------------------------------------------------------------------ #
    # Public API
    # ------------------------------------------------------------------ #

    def consume(self, res: MotionResult) -> List[MotionSpan]:
        """Consume one result and return any spans that can no longer grow."""
        out: List[MotionSpan] = []

        if res.is_motion:
            if self._active is None:
                self._active = MotionSpan(
                    start_index=res.frame_index,
                    stop_index=res.frame_index,
                    start_ms=res.ts_ms,
                    stop_ms=res.ts_ms,
                    min_score=res.score,
                )
            else:
                self._active.stop_index = res.frame_index
                self._active.stop_ms = res.ts_ms
                self._active.min_score = min(self._active.min_score, res.score)
        else:
            self._close_active(out)

        # The pending span is final once the gap is too wide to merge.
        if (
            self._pending is not None
            and self._active is None
            and res.frame_index - self._pending.stop_index > self._cfg.merge_gap_frames
        ):
            self._emit(self._pending, out)
            self._pending = None

        return out

    def flush(self) -> List[MotionSpan]:
        """Close any in-flight span and return everything still held back."""
        out: List[MotionSpan] = []
        self._close_active(out)
        if self._pending is not None:
            self._emit(self._pending, out)
            self._pending = None
        return out
