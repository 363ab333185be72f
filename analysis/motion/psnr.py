"""Peak-signal-to-noise style similarity between two equally shaped images.

Values above ~30 indicate very similar images; the closer to zero, the more
changes were found. Identical images are special-cased to ``0.0`` (see
:func:`psnr`).
"""

from __future__ import annotations

import math

import cv2
import numpy as np

from .errors import InvalidImageError

# Below this the two images are treated as identical.
SSE_EPSILON = 1e-10


def is_empty(img) -> bool:
    return img is None or getattr(img, "size", 0) == 0


def channels(img: np.ndarray) -> int:
    return 1 if img.ndim == 2 else int(img.shape[2])


def _check_comparable(src: np.ndarray, dst: np.ndarray) -> None:
    if is_empty(src) or is_empty(dst):
        raise InvalidImageError("cannot calculate psnr using empty image")

    if (
        src.dtype != dst.dtype
        or channels(src) != channels(dst)
        or src.shape[:2] != dst.shape[:2]
    ):
        raise InvalidImageError("src and dst images cannot be compared")


def sum_squared_error(src: np.ndarray, dst: np.ndarray) -> float:
    """Sum of ``|src - dst|^2`` over every pixel and channel."""
    _check_comparable(src, dst)

    diff = cv2.absdiff(src, dst).astype(np.float32)  # cannot square on 8 bits
    return float(np.square(diff).sum(dtype=np.float64))


def psnr_from_sse(sse: float, samples: int) -> float:
    """Turn an SSE over ``samples`` values (channels * pixels) into a score."""
    if sse <= SSE_EPSILON:
        return 0.0

    mse = sse / float(samples)
    return 10.0 * math.log10((255.0 * 255.0) / mse)


def psnr(src: np.ndarray, dst: np.ndarray) -> float:
    """Compare two images of identical dtype, channel count and size.

    Returns ``0.0`` for identical images rather than infinity. Raises
    :class:`InvalidImageError` when either image is empty or they differ in
    type or dimensions.
    """
    sse = sum_squared_error(src, dst)
    return psnr_from_sse(sse, channels(src) * src.shape[0] * src.shape[1])
