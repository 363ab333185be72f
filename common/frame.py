from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

import numpy as np


@dataclass
class Frame:
    index: int  # position in the decoded stream, starting at 0
    img: np.ndarray  # BGR (H,W,3) or grey (H,W), uint8
    pts_ms: Optional[float] = None  # container timestamp, when the source has one
