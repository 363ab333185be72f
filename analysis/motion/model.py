from __future__ import annotations

from dataclasses import dataclass, fields
from typing import Any, Mapping, Optional, Tuple

import cv2


@dataclass
class MotionConfig:
    """
    Caller-tunable knobs for :class:`~analysis.motion.engine.MotionEngine`.

    The engine exposes every field as an attribute of its own, so callers
    can either pass a config at construction or set ``engine.<field>``
    between calls.
    """

    # Control set cadence. For 30 FPS video the default frequency keeps
    # 3 key frames per second; drop it (and raise number_of_control_frames)
    # when masks, contours or boxes are used.
    key_frame_frequency: int = 10
    number_of_control_frames: int = 4

    # Scores below the threshold mean movement.
    psnr_threshold: float = 32.0

    # Fraction of the first frame's width/height used for thumbnails.
    # Clamped to [0.01, 1.0] when the thumbnail size is derived.
    thumbnail_ratio: float = 0.05

    # Optional artifacts. contours/bbox imply mask.
    mask_enabled: bool = False
    contours_enabled: bool = False
    bbox_enabled: bool = False

    # Drawing parameters (BGR colours)
    line_type: int = cv2.LINE_4
    contours_size: int = 1
    bbox_size: int = 1
    contours_color: Tuple[int, int, int] = (0, 0, 255)
    bbox_color: Tuple[int, int, int] = (0, 255, 255)

    # Mask clean-up: dilate then erode with a 3x3 element
    dilate_iterations: int = 10
    erode_iterations: int = 10


@dataclass
class MotionResult:
    """Snapshot of a single ``detect()`` call."""

    is_motion: bool
    transition: bool
    score: float  # most recent PSNR score computed during the call
    frame_index: int
    matched_index: Optional[int] = None  # control-set key that triggered
    ts_ms: float = 0.0  # wall-clock epoch ms of the call


def motion_config_from_mapping(data: Mapping[str, Any]) -> MotionConfig:
    """Build a :class:`MotionConfig` from a plain mapping.

    Keys are matched case-insensitively against field names and unknown keys
    are ignored. Values are coerced to the type of the field's default.
    """
    defaults = MotionConfig()
    lowered = {str(k).lower(): v for k, v in data.items()}
    kwargs: dict[str, Any] = {}

    for f in fields(MotionConfig):
        if f.name not in lowered:
            continue
        value = lowered[f.name]
        default = getattr(defaults, f.name)
        if isinstance(default, bool):
            if isinstance(value, str):
                value = value.strip().lower() in ("1", "true", "yes", "on")
            else:
                value = bool(value)
        elif isinstance(default, tuple):
            value = tuple(int(v) for v in value)
        else:
            value = type(default)(value)
        kwargs[f.name] = value

    return MotionConfig(**kwargs)
