"""Public exports for the motion analysis package."""

from __future__ import annotations

from .config import load_motion_config
from .control import ControlSet
from .engine import MotionEngine
from .errors import InvalidImageError
from .events import MotionSpan, MotionSpanBuilder, MotionSpanConfig
from .model import MotionConfig, MotionResult, motion_config_from_mapping
from .psnr import psnr
from .sidecar import MotionSidecarWriter

__all__ = [
    "MotionEngine",
    "MotionConfig",
    "MotionResult",
    "ControlSet",
    "InvalidImageError",
    "psnr",
    "motion_config_from_mapping",
    "load_motion_config",
    "MotionSpan",
    "MotionSpanBuilder",
    "MotionSpanConfig",
    "MotionSidecarWriter",
]
