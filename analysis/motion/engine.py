"""Reference-frame motion engine.

Each incoming frame is shrunk to a small thumbnail and compared, newest
first, against a handful of thumbnails kept from earlier frames (the
"control set"). The first baseline whose PSNR falls below the threshold
means movement. New thumbnails are admitted to the control set only every
``key_frame_frequency`` frames, so the baseline drifts slowly and creeping
changes are still caught against older, unchanged baselines.

The engine is synchronous and keeps all state on the instance: use one
engine per stream and do not call :meth:`MotionEngine.detect` from several
threads at once. ``mask`` and ``output`` are overwritten by every call;
copy them if they must outlive the next one.
"""

from __future__ import annotations

import dataclasses
import logging
from typing import Any, Optional, Tuple

import numpy as np

from common.time import now_ms

from .control import ControlSet
from .errors import InvalidImageError
from .model import MotionConfig, MotionResult
from .psnr import SSE_EPSILON, channels, is_empty, psnr_from_sse, sum_squared_error
from .utils.motion_utils import (
    blank_mask,
    clamp_ratio,
    difference_mask,
    draw_bbox,
    draw_contours,
    make_thumbnail,
    thumbnail_size_for,
)

_LOG = logging.getLogger(__name__)


class _ConfigField:
    """Engine attribute that reads and writes ``engine.config.<name>``."""

    def __set_name__(self, owner, name: str) -> None:
        self.name = name

    def __get__(self, obj, objtype=None) -> Any:
        if obj is None:
            return self
        return getattr(obj.config, self.name)

    def __set__(self, obj, value: Any) -> None:
        setattr(obj.config, self.name, value)


class MotionEngine:
    """Decide, frame by frame, whether a stream shows movement.

    Usage::

        engine = MotionEngine()
        engine.bbox_enabled = True
        for frame in frames:
            if engine.detect(frame):
                show(engine.output)
    """

    key_frame_frequency = _ConfigField()
    number_of_control_frames = _ConfigField()
    psnr_threshold = _ConfigField()
    thumbnail_ratio = _ConfigField()
    mask_enabled = _ConfigField()
    contours_enabled = _ConfigField()
    bbox_enabled = _ConfigField()
    line_type = _ConfigField()
    contours_size = _ConfigField()
    bbox_size = _ConfigField()

    def __init__(self, config: Optional[MotionConfig] = None) -> None:
        self._initial_cfg = dataclasses.replace(config) if config else MotionConfig()
        self.control = ControlSet()
        self.clear()

    # ------------------------------------------------------------------ #
    # Public API
    # ------------------------------------------------------------------ #

    def empty(self) -> bool:
        """True when there are no control thumbnails to compare against."""
        return len(self.control) == 0

    def clear(self, config: Optional[MotionConfig] = None) -> MotionEngine:
        """Drop every control thumbnail and reset all derived state.

        Configuration returns to ``config`` when given, otherwise to the
        configuration the engine was constructed with.
        """
        if config is not None:
            self._initial_cfg = dataclasses.replace(config)
        self.config = dataclasses.replace(self._initial_cfg)

        self.control.clear()
        self.movement_detected = False
        self.transition_detected = False
        self.next_frame_index = 0
        self.next_key_frame = 0
        self.most_recent_psnr_score = 0.0
        self.thumbnail_size: Optional[Tuple[int, int]] = None
        self.frame_index_with_movement = 0
        self.movement_last_detected: Optional[float] = None
        self.mask: Optional[np.ndarray] = None
        self.output: Optional[np.ndarray] = None
        self.last_result: Optional[MotionResult] = None
        return self

    def detect(self, image: np.ndarray, frame_index: Optional[int] = None) -> bool:
        """Return True if movement is detected in ``image``.

        Without ``frame_index`` the image is assumed to be the next
        sequential frame (``next_frame_index``). An explicit index should be
        ``>= next_frame_index``; smaller values are accepted but can upset
        the key frame cadence.

        Raises :class:`InvalidImageError` for an empty image. A failed call
        leaves the engine untouched.
        """
        if is_empty(image):
            raise InvalidImageError("cannot detect using an empty image")
        image = np.asarray(image)

        if frame_index is None:
            frame_index = self.next_frame_index
        frame_index = int(frame_index)
        if frame_index < self.next_frame_index:
            _LOG.warning(
                "frame index %d is behind the expected index %d; key frame cadence may drift",
                frame_index,
                self.next_frame_index,
            )

        cfg = self.config
        ratio = cfg.thumbnail_ratio
        thumb_size = self.thumbnail_size
        if thumb_size is None:
            ratio = clamp_ratio(ratio)
            thumb_size = thumbnail_size_for(image, ratio)

        mask_enabled = bool(cfg.mask_enabled or cfg.contours_enabled or cfg.bbox_enabled)
        thumbnail = make_thumbnail(image, thumb_size)
        samples = channels(thumbnail) * thumb_size[0] * thumb_size[1]

        # Newest baseline first: real movement diverges from it first.
        score = self.most_recent_psnr_score
        matched: Optional[Tuple[int, np.ndarray]] = None
        for key, baseline in self.control.newest_first():
            sse = sum_squared_error(baseline, thumbnail)
            score = psnr_from_sse(sse, samples)
            if sse > SSE_EPSILON and score < cfg.psnr_threshold:
                matched = (key, baseline)
                break

        movement = matched is not None
        transition = movement != self.movement_detected

        mask = self.mask
        if mask_enabled and matched is not None:
            mask = difference_mask(
                matched[1],
                thumbnail,
                image.shape,
                dilate_iters=cfg.dilate_iterations,
                erode_iters=cfg.erode_iterations,
            )
        if mask_enabled and (mask is None or (transition and not movement)):
            mask = blank_mask(image.shape)

        output = self.output
        if mask_enabled and (cfg.contours_enabled or cfg.bbox_enabled):
            output = image.copy()
            if cfg.contours_enabled:
                draw_contours(output, mask, cfg.contours_color, cfg.contours_size, cfg.line_type)
            if cfg.bbox_enabled:
                draw_bbox(output, mask, cfg.bbox_color, cfg.bbox_size, cfg.line_type)

        # ---- commit ---------------------------------------------------------
        if self.thumbnail_size is None:
            cfg.thumbnail_ratio = ratio
            self.thumbnail_size = thumb_size
            _LOG.debug(
                "thumbnail size fixed at %dx%d (ratio %.3f)", thumb_size[0], thumb_size[1], ratio
            )
        cfg.mask_enabled = mask_enabled

        ts_ms = now_ms()
        self.most_recent_psnr_score = score
        self.movement_detected = movement
        self.transition_detected = transition
        if movement:
            self.frame_index_with_movement = frame_index
            self.movement_last_detected = ts_ms
        if transition:
            _LOG.debug("frame %d: movement=%s (psnr %.2f)", frame_index, movement, score)
        self.mask = mask
        self.output = output

        # see if this thumbnail should become a key frame
        if frame_index >= self.next_key_frame or len(self.control) < cfg.number_of_control_frames:
            self.control.put(frame_index, thumbnail)
            evicted = self.control.trim(cfg.number_of_control_frames)
            self.next_key_frame = frame_index + int(cfg.key_frame_frequency)
            _LOG.debug("key frame %d stored, evicted %s", frame_index, evicted)

        self.next_frame_index = frame_index + 1
        self.last_result = MotionResult(
            is_motion=movement,
            transition=transition,
            score=score,
            frame_index=frame_index,
            matched_index=matched[0] if matched is not None else None,
            ts_ms=ts_ms,
        )
        return movement
