#!/usr/bin/env python3
from __future__ import annotations

import argparse
import dataclasses
import logging
import time
from collections.abc import Iterable
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Optional

import cv2
import numpy as np

from analysis.motion import (
    MotionEngine,
    MotionSidecarWriter,
    MotionSpanBuilder,
    MotionSpanConfig,
    load_motion_config,
)
from analysis.motion.model import MotionConfig
from capture.video_source import VideoFileSource, VideoOpenError
from common.frame import Frame
from common.time import elapsed_ms

_LOG = logging.getLogger(__name__)

__version__ = "0.1.0"


@dataclass
class RunSummary:
    frames: int = 0
    frames_with_motion: int = 0
    transitions: int = 0
    spans: int = 0
    elapsed_ms: float = 0.0


def build_arg_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(
        prog="run_movedetect",
        description="Run reference-frame motion detection over one or more video files.",
    )
    ap.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    ap.add_argument("videos", nargs="+", help="Video files to process.")
    ap.add_argument(
        "--config-module",
        type=str,
        default=None,
        help="Python module with upper-case MotionConfig settings "
        "(defaults to $MOVEDETECT_CONFIG_MODULE).",
    )
    ap.add_argument("--zoom", type=float, default=1.0, help="Rescale frames before detection.")
    ap.add_argument("--max-frames", type=int, default=0, help="If > 0, stop after this many frames.")

    # Detection tuning (unset flags keep the config module / default value)
    ap.add_argument("--psnr-threshold", type=float, default=None)
    ap.add_argument("--thumbnail-ratio", type=float, default=None)
    ap.add_argument("--key-frame-frequency", type=int, default=None)
    ap.add_argument("--control-frames", type=int, default=None, dest="number_of_control_frames")

    # Artifacts
    ap.add_argument("--mask", action="store_true", help="Build the motion mask.")
    ap.add_argument("--contours", action="store_true", help="Draw mask contours on the output.")
    ap.add_argument("--bbox", action="store_true", help="Draw a bounding box on the output.")
    ap.add_argument("--contours-size", type=int, default=None)
    ap.add_argument("--bbox-size", type=int, default=None)
    ap.add_argument("--line-aa", action="store_true", help="Use anti-aliased lines.")

    # Outputs
    ap.add_argument(
        "--sidecar-dir",
        type=str,
        default=None,
        help="Write <video>.motion.jsonl (transitions + spans) into this directory.",
    )
    ap.add_argument(
        "--output-dir",
        type=str,
        default=None,
        help="Write an mp4 mosaic (frame | mask | output) per video into this directory.",
    )
    ap.add_argument(
        "--merge-gap-frames",
        type=int,
        default=0,
        help="Merge motion spans separated by at most this many still frames.",
    )
    ap.add_argument("--verbose", action="store_true", help="Enable debug logging.")
    return ap


def config_from_args(args: argparse.Namespace) -> MotionConfig:
    cfg = load_motion_config(args.config_module)

    overrides = {
        name: getattr(args, name)
        for name in (
            "psnr_threshold",
            "thumbnail_ratio",
            "key_frame_frequency",
            "number_of_control_frames",
            "contours_size",
            "bbox_size",
        )
        if getattr(args, name) is not None
    }
    if args.mask:
        overrides["mask_enabled"] = True
    if args.contours:
        overrides["contours_enabled"] = True
    if args.bbox:
        overrides["bbox_enabled"] = True
    if args.line_aa:
        overrides["line_type"] = cv2.LINE_AA
    return dataclasses.replace(cfg, **overrides)


def compose_mosaic(engine: MotionEngine, frame: np.ndarray) -> np.ndarray:
    """Side by side: original frame, mask, annotated output."""
    h, w = frame.shape[:2]
    panels = [frame]
    if engine.mask is not None and engine.mask.shape[:2] == (h, w):
        panels.append(cv2.cvtColor(engine.mask, cv2.COLOR_GRAY2BGR))
    else:
        panels.append(np.zeros_like(frame))
    if engine.output is not None and engine.output.shape[:2] == (h, w):
        panels.append(engine.output)
    else:
        panels.append(frame)
    return np.hstack(panels)


def process_frames(
    frames: Iterable[Frame],
    engine: MotionEngine,
    sidecar: Optional[MotionSidecarWriter] = None,
    spans: Optional[MotionSpanBuilder] = None,
    on_frame: Optional[Callable[[Frame, MotionEngine], None]] = None,
    max_frames: int = 0,
) -> RunSummary:
    """Feed every frame through ``engine`` and report what happened."""
    summary = RunSummary()
    spans = spans or MotionSpanBuilder()
    t0 = time.perf_counter()

    for frame in frames:
        moved = engine.detect(frame.img, frame.index)
        res = engine.last_result
        summary.frames += 1
        if moved:
            summary.frames_with_motion += 1

        if engine.transition_detected:
            summary.transitions += 1
            _LOG.info(
                "-> starting at index #%d: moved=%s", frame.index, "TRUE" if moved else "FALSE"
            )
            if sidecar is not None:
                sidecar.write_transition(res, frame.pts_ms)

        for span in spans.consume(res):
            summary.spans += 1
            if sidecar is not None:
                sidecar.write_span(span)

        if on_frame is not None:
            on_frame(frame, engine)

        if max_frames > 0 and summary.frames >= max_frames:
            _LOG.info("Reached max-frames=%d, stopping.", max_frames)
            break

    for span in spans.flush():
        summary.spans += 1
        if sidecar is not None:
            sidecar.write_span(span)

    summary.elapsed_ms = elapsed_ms(t0)
    return summary


def run_video(path: Path, cfg: MotionConfig, args: argparse.Namespace) -> RunSummary:
    engine = MotionEngine(cfg)
    span_builder = MotionSpanBuilder(MotionSpanConfig(merge_gap_frames=args.merge_gap_frames))
    writer: Optional[cv2.VideoWriter] = None

    with VideoFileSource(path, zoom=args.zoom) as source:
        fps = source.fps or 30.0

        def write_mosaic(frame: Frame, eng: MotionEngine) -> None:
            nonlocal writer
            mosaic = compose_mosaic(eng, frame.img)
            if writer is None:
                out_dir = Path(args.output_dir)
                out_dir.mkdir(parents=True, exist_ok=True)
                out_path = out_dir / f"{path.stem}_movedetect.mp4"
                h, w = mosaic.shape[:2]
                writer = cv2.VideoWriter(
                    str(out_path), cv2.VideoWriter_fourcc(*"mp4v"), fps, (w, h)
                )
                _LOG.info("Writing mosaic video to %s", out_path)
            writer.write(mosaic)

        on_frame = write_mosaic if args.output_dir else None
        try:
            if args.sidecar_dir:
                sidecar_path = Path(args.sidecar_dir) / f"{path.stem}.motion.jsonl"
                _LOG.info("Writing motion sidecar to %s", sidecar_path)
                with MotionSidecarWriter(sidecar_path) as sidecar:
                    sidecar.write_meta(str(path), engine.config, {"fps": fps})
                    return process_frames(
                        source, engine, sidecar, span_builder, on_frame, args.max_frames
                    )
            return process_frames(source, engine, None, span_builder, on_frame, args.max_frames)
        finally:
            if writer is not None:
                writer.release()


def main(argv: Optional[list[str]] = None) -> int:
    ap = build_arg_parser()
    args = ap.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )

    cfg = config_from_args(args)
    failures = 0
    for video in args.videos:
        path = Path(video)
        try:
            summary = run_video(path, cfg, args)
        except VideoOpenError as exc:
            _LOG.error("%s", exc)
            failures += 1
            continue
        _LOG.info(
            "%s: processed %d frames (%d with motion, %d transitions, %d spans) in %.0f ms",
            path,
            summary.frames,
            summary.frames_with_motion,
            summary.transitions,
            summary.spans,
            summary.elapsed_ms,
        )

    return 1 if failures == len(args.videos) else 0


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
