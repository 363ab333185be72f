from __future__ import annotations

import numpy as np
import pytest

from analysis.motion import InvalidImageError, MotionConfig, MotionEngine, MotionResult
from conftest import frame_with_rect, solid_frame


def _defaults_snapshot(eng: MotionEngine) -> dict:
    return {
        "config": eng.config,
        "control": eng.control.keys(),
        "movement_detected": eng.movement_detected,
        "transition_detected": eng.transition_detected,
        "next_frame_index": eng.next_frame_index,
        "next_key_frame": eng.next_key_frame,
        "most_recent_psnr_score": eng.most_recent_psnr_score,
        "thumbnail_size": eng.thumbnail_size,
        "frame_index_with_movement": eng.frame_index_with_movement,
        "movement_last_detected": eng.movement_last_detected,
        "mask": eng.mask,
        "output": eng.output,
    }


def test_defaults():
    eng = MotionEngine()
    assert eng.empty()
    assert eng.key_frame_frequency == 10
    assert eng.number_of_control_frames == 4
    assert eng.psnr_threshold == 32.0
    assert eng.thumbnail_ratio == 0.05
    assert eng.thumbnail_size is None
    assert eng.movement_detected is False
    assert eng.mask is None and eng.output is None


def test_identical_frames_never_move(still_frame):
    eng = MotionEngine()
    for _ in range(5):
        assert eng.detect(still_frame) is False
        assert eng.transition_detected is False
    assert eng.next_frame_index == 5
    assert eng.thumbnail_size == (5, 5)


def test_new_object_triggers_movement(still_frame, moving_frame):
    eng = MotionEngine()
    for idx in range(10):
        assert eng.detect(still_frame, idx) is False

    assert eng.detect(moving_frame, 10) is True
    assert eng.transition_detected is True
    assert eng.frame_index_with_movement == 10
    assert eng.movement_last_detected is not None
    assert eng.most_recent_psnr_score < eng.psnr_threshold

    res = eng.last_result
    assert isinstance(res, MotionResult)
    assert res.is_motion and res.transition and res.frame_index == 10
    # newest baseline is checked first
    assert res.matched_index == 3
    assert eng.control.keys() == [0, 1, 2, 3]


def test_transition_back_to_still(still_frame, moving_frame):
    eng = MotionEngine()
    eng.key_frame_frequency = 100
    for idx in range(4):
        eng.detect(still_frame, idx)
    assert eng.detect(moving_frame, 4) is True
    assert eng.detect(moving_frame, 5) is True
    assert eng.transition_detected is False
    assert eng.detect(still_frame, 6) is False
    assert eng.transition_detected is True
    assert eng.frame_index_with_movement == 5


def test_first_call_never_moves(moving_frame):
    eng = MotionEngine()
    assert eng.detect(moving_frame) is False
    assert eng.transition_detected is False
    assert not eng.empty()


def test_mask_marks_changed_region(still_frame, moving_frame):
    eng = MotionEngine()
    eng.mask_enabled = True
    for idx in range(10):
        eng.detect(still_frame, idx)
    assert eng.mask is not None and not eng.mask.any()

    assert eng.detect(moving_frame, 10) is True
    mask = eng.mask
    assert mask.ndim == 2 and mask.dtype == np.uint8
    assert mask.shape == moving_frame.shape[:2]
    assert mask[50, 50] > 0
    assert not mask[0:5, 0:5].any()
    assert not mask[95:, 95:].any()
    assert eng.output is None


def test_mask_reset_after_movement_stops(still_frame, moving_frame):
    eng = MotionEngine(MotionConfig(mask_enabled=True, key_frame_frequency=100))
    for idx in range(4):
        eng.detect(still_frame, idx)
    eng.detect(moving_frame, 4)
    assert eng.mask.any()
    eng.detect(still_frame, 5)
    assert eng.transition_detected
    assert eng.mask.shape == still_frame.shape[:2]
    assert not eng.mask.any()


def test_bbox_and_contours_force_mask(still_frame, moving_frame):
    eng = MotionEngine()
    eng.bbox_enabled = True
    eng.contours_enabled = True
    eng.bbox_size = 2
    for idx in range(10):
        eng.detect(still_frame, idx)
    assert eng.mask_enabled is True
    assert eng.output is not None
    # nothing moved yet: output is an untouched copy
    assert np.array_equal(eng.output, still_frame)
    assert eng.output is not still_frame

    eng.detect(moving_frame, 10)
    assert eng.output.shape == moving_frame.shape
    assert not np.array_equal(eng.output, moving_frame)
    # input frame is never drawn on
    assert np.array_equal(moving_frame, frame_with_rect())


def test_cache_keeps_most_recent_indices(still_frame):
    eng = MotionEngine()
    eng.number_of_control_frames = 2
    eng.key_frame_frequency = 1
    for idx in range(5):
        eng.detect(still_frame)
        assert len(eng.control) <= 2
        assert not eng.empty()
    assert eng.control.keys() == [3, 4]


def test_key_frame_cadence(still_frame):
    eng = MotionEngine()
    for idx in range(25):
        eng.detect(still_frame)
        assert len(eng.control) <= eng.number_of_control_frames
    # 0..3 fill the set at startup, then one admission every 10 frames
    assert eng.control.keys() == [2, 3, 13, 23]
    assert eng.next_key_frame == 33


def test_zero_control_frames_keeps_set_empty(still_frame):
    eng = MotionEngine(MotionConfig(number_of_control_frames=0))
    for _ in range(3):
        assert eng.detect(still_frame) is False
    assert eng.empty()


def test_thumbnail_size_frozen_and_ratio_clamped(still_frame):
    eng = MotionEngine()
    eng.thumbnail_ratio = 5.0
    eng.detect(still_frame)
    assert eng.thumbnail_ratio == 1.0
    assert eng.thumbnail_size == (100, 100)

    eng.thumbnail_ratio = 0.5
    eng.detect(solid_frame(50, 200, 160))
    assert eng.thumbnail_size == (100, 100)


def test_tiny_ratio_clamped_low():
    eng = MotionEngine(MotionConfig(thumbnail_ratio=0.0))
    eng.detect(solid_frame(10, 300, 200))
    assert eng.thumbnail_ratio == 0.01
    assert eng.thumbnail_size == (3, 2)


def test_empty_frame_rejected_without_state_change(still_frame):
    eng = MotionEngine()
    eng.detect(still_frame)
    before = _defaults_snapshot(eng)
    with pytest.raises(InvalidImageError):
        eng.detect(np.zeros((0, 0, 3), dtype=np.uint8))
    with pytest.raises(InvalidImageError):
        eng.detect(None)
    assert _defaults_snapshot(eng) == before


def test_incomparable_frame_leaves_state_unchanged(still_frame):
    eng = MotionEngine()
    eng.detect(still_frame)
    next_index = eng.next_frame_index
    keys = eng.control.keys()
    with pytest.raises(InvalidImageError):
        eng.detect(np.zeros((100, 100), dtype=np.uint8))
    assert eng.next_frame_index == next_index
    assert eng.control.keys() == keys


def test_explicit_index_advances_next_frame_index(still_frame):
    eng = MotionEngine()
    eng.detect(still_frame, 41)
    assert eng.next_frame_index == 42
    eng.detect(still_frame)
    assert eng.control.keys() == [41, 42]


def test_index_regression_is_accepted(still_frame, caplog):
    eng = MotionEngine()
    eng.detect(still_frame, 10)
    with caplog.at_level("WARNING", logger="analysis.motion.engine"):
        assert eng.detect(still_frame, 3) is False
    assert "behind the expected index" in caplog.text
    assert eng.control.keys() == [3, 10]
    assert eng.next_frame_index == 4


def test_clear_is_idempotent(still_frame, moving_frame):
    eng = MotionEngine()
    eng.psnr_threshold = 20.0
    eng.bbox_enabled = True
    for idx in range(4):
        eng.detect(still_frame, idx)
    eng.detect(moving_frame, 4)

    assert eng.clear() is eng
    once = _defaults_snapshot(eng)
    eng.clear()
    assert _defaults_snapshot(eng) == once
    assert eng.empty()
    assert eng.psnr_threshold == 32.0
    assert eng.bbox_enabled is False
    assert eng.mask is None


def test_clear_restores_construction_config(still_frame):
    cfg = MotionConfig(psnr_threshold=25.0)
    eng = MotionEngine(cfg)
    eng.psnr_threshold = 40.0
    eng.clear()
    assert eng.psnr_threshold == 25.0
    # the caller's config object is never mutated
    assert cfg.psnr_threshold == 25.0

    eng.clear(MotionConfig(key_frame_frequency=3))
    assert eng.key_frame_frequency == 3
    assert eng.psnr_threshold == 32.0


def test_greyscale_stream_with_mask():
    eng = MotionEngine(MotionConfig(bbox_enabled=True))
    still = np.full((100, 100), 30, dtype=np.uint8)
    moving = still.copy()
    moving[20:80, 20:80] = 220
    for idx in range(10):
        eng.detect(still, idx)
    assert eng.detect(moving, 10) is True
    assert eng.mask.shape == (100, 100)
    assert eng.mask[50, 50] > 0
