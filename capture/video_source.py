from __future__ import annotations

import logging
from collections.abc import Iterator
from pathlib import Path
from typing import Optional

import cv2

from common.frame import Frame

_LOG = logging.getLogger(__name__)


class VideoOpenError(OSError):
    """The video file could not be opened for decoding."""


class VideoFileSource:
    """Decode a video file with ``cv2.VideoCapture`` and yield :class:`Frame` objects.

    ``zoom`` rescales every frame (``INTER_LINEAR``) before it is handed out;
    ``1.0`` keeps the original size.
    """

    def __init__(self, path: str | Path, zoom: float = 1.0):
        self.path = Path(path)
        self.zoom = float(zoom)
        self._cap: Optional[cv2.VideoCapture] = None

    def __enter__(self) -> VideoFileSource:
        self.open()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def open(self) -> None:
        cap = cv2.VideoCapture(str(self.path))
        if not cap.isOpened():
            cap.release()
            raise VideoOpenError(f"failed to open {self.path}")
        self._cap = cap
        _LOG.info(
            "Opened %s: %d frames, %.2f FPS, %dx%d",
            self.path,
            self.frame_count,
            self.fps,
            int(cap.get(cv2.CAP_PROP_FRAME_WIDTH)),
            int(cap.get(cv2.CAP_PROP_FRAME_HEIGHT)),
        )

    def _prop(self, prop: int) -> float:
        if self._cap is None:
            raise RuntimeError("VideoFileSource is not open")
        return float(self._cap.get(prop))

    @property
    def fps(self) -> float:
        return self._prop(cv2.CAP_PROP_FPS)

    @property
    def frame_count(self) -> int:
        return int(self._prop(cv2.CAP_PROP_FRAME_COUNT))

    def __iter__(self) -> Iterator[Frame]:
        if self._cap is None:
            raise RuntimeError("VideoFileSource is not open")
        index = 0
        while True:
            ok, img = self._cap.read()
            if not ok or img is None or img.size == 0:
                break
            # position of the frame just decoded
            pts_ms = float(self._cap.get(cv2.CAP_PROP_POS_MSEC))
            if self.zoom != 1.0:
                h, w = img.shape[:2]
                size = (max(1, round(w * self.zoom)), max(1, round(h * self.zoom)))
                img = cv2.resize(img, size, interpolation=cv2.INTER_LINEAR)
            yield Frame(index=index, img=img, pts_ms=pts_ms)
            index += 1

    def close(self) -> None:
        if self._cap is not None:
            self._cap.release()
            self._cap = None
