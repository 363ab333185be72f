# capture/__init__.py
"""Capture package: decoded video frames for the motion engine."""

from .video_source import VideoFileSource, VideoOpenError

__all__ = [
    "VideoFileSource",
    "VideoOpenError",
]

__version__ = "0.1.0"
