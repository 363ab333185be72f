# analysis/motion/utils/motion_utils.py
from __future__ import annotations

from typing import Sequence, Tuple

import cv2
import numpy as np

from ..psnr import channels


# --- Thumbnail sizing ----------------------------------------------------------
def clamp_ratio(ratio: float) -> float:
    return min(max(float(ratio), 0.01), 1.0)


def thumbnail_size_for(img: np.ndarray, ratio: float) -> Tuple[int, int]:
    """(width, height) of a thumbnail of ``img`` scaled by ``ratio``."""
    h, w = img.shape[:2]
    return max(1, int(w * ratio)), max(1, int(h * ratio))


def make_thumbnail(img: np.ndarray, size: Tuple[int, int]) -> np.ndarray:
    # area averaging is the right policy when shrinking
    return cv2.resize(img, size, interpolation=cv2.INTER_AREA)


# --- Mask (absdiff → cubic upscale → grey → Otsu → dilate → erode) -------------
def to_grey(img: np.ndarray) -> np.ndarray:
    ch = channels(img)
    if ch == 1:
        return img if img.ndim == 2 else img[:, :, 0]
    if ch == 4:
        return cv2.cvtColor(img, cv2.COLOR_BGRA2GRAY)
    return cv2.cvtColor(img, cv2.COLOR_BGR2GRAY)


def difference_mask(
    baseline: np.ndarray,
    thumbnail: np.ndarray,
    frame_shape: Sequence[int],
    dilate_iters: int = 10,
    erode_iters: int = 10,
) -> np.ndarray:
    """Binary uint8 mask (0/255) of where ``thumbnail`` differs from ``baseline``.

    The tiny difference image is resized back to the frame's spatial size.
    Dilating then eroding merges nearby regions and removes speckles.
    """
    h, w = int(frame_shape[0]), int(frame_shape[1])
    differences = cv2.absdiff(baseline, thumbnail)
    resized = cv2.resize(differences, (w, h), interpolation=cv2.INTER_CUBIC)
    grey = to_grey(resized)
    if grey.dtype != np.uint8:
        grey = cv2.normalize(grey, None, 0, 255, cv2.NORM_MINMAX).astype(np.uint8)

    _, mask = cv2.threshold(grey, 0.0, 255.0, cv2.THRESH_BINARY | cv2.THRESH_OTSU)
    if dilate_iters and dilate_iters > 0:
        mask = cv2.dilate(mask, None, iterations=int(dilate_iters))
    if erode_iters and erode_iters > 0:
        mask = cv2.erode(mask, None, iterations=int(erode_iters))
    return mask


def blank_mask(frame_shape: Sequence[int]) -> np.ndarray:
    return np.zeros((int(frame_shape[0]), int(frame_shape[1])), dtype=np.uint8)


# --- Drawing -------------------------------------------------------------------
def draw_contours(
    output: np.ndarray,
    mask: np.ndarray,
    color: Tuple[int, int, int],
    thickness: int,
    line_type: int,
) -> int:
    """Draw the mask's external contours as closed polylines; returns the count."""
    contours, _ = cv2.findContours(mask, cv2.RETR_EXTERNAL, cv2.CHAIN_APPROX_SIMPLE)
    for contour in contours:
        cv2.polylines(output, [contour], True, color, int(thickness), int(line_type))
    return len(contours)


def draw_bbox(
    output: np.ndarray,
    mask: np.ndarray,
    color: Tuple[int, int, int],
    thickness: int,
    line_type: int,
) -> Tuple[int, int, int, int]:
    """Rectangle around every nonzero mask pixel; not drawn when the mask is empty."""
    x, y, w, h = (int(v) for v in cv2.boundingRect(mask))
    if w > 0 and h > 0:
        cv2.rectangle(
            output, (x, y), (x + w - 1, y + h - 1), color, int(thickness), int(line_type)
        )
    return x, y, w, h
