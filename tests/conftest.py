# tests/conftest.py
import os
import sys

import numpy as np
import pytest

# pytest-dotenv has already loaded .env at this point
pp = os.getenv("PYTHONPATH")
if pp:
    for p in pp.split(os.pathsep):
        if p:
            sys.path.insert(0, p)


def solid_frame(value: int = 50, width: int = 100, height: int = 100) -> np.ndarray:
    return np.full((height, width, 3), value, dtype=np.uint8)


def frame_with_rect(value: int = 50, rect_value: int = 255, width: int = 100, height: int = 100):
    # Bright 60x60 square in the middle; borders stay at the background value.
    img = solid_frame(value, width, height)
    img[20:80, 20:80] = rect_value
    return img


@pytest.fixture
def still_frame() -> np.ndarray:
    return solid_frame()


@pytest.fixture
def moving_frame() -> np.ndarray:
    return frame_with_rect()
