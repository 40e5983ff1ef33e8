"""Tests for timeline offsets and frame counts."""

import pytest

from storyreel.errors import SceneContractError
from storyreel.timeline import (
    compute_offsets,
    elapsed_ratios,
    frames_for_duration,
    total_duration,
    validate_scenes,
)

from conftest import make_scene


class TestOffsets:
    """Tests for compute_offsets and total_duration."""

    def test_running_total(self):
        scenes = [make_scene(i, d) for i, d in enumerate([1.0, 2.0, 1.5])]
        assert compute_offsets(scenes) == [0.0, 1.0, 3.0]
        assert total_duration(scenes) == 4.5

    def test_offsets_match_prefix_sums(self):
        durations = [0.37, 1.125, 2.0, 0.04, 3.3333]
        scenes = [make_scene(i, d) for i, d in enumerate(durations)]
        offsets = compute_offsets(scenes)
        for i, offset in enumerate(offsets):
            assert offset == pytest.approx(sum(s.duration for s in scenes[:i]), rel=1e-12, abs=1e-12)
        assert offsets[-1] + scenes[-1].duration == total_duration(scenes)

    def test_strictly_increasing_for_positive_durations(self):
        scenes = [make_scene(i, 0.5) for i in range(4)]
        offsets = compute_offsets(scenes)
        assert all(b > a for a, b in zip(offsets, offsets[1:]))

    def test_zero_duration_scene_keeps_offset(self):
        scenes = [make_scene(0, 1.0), make_scene(1, 0.0), make_scene(2, 1.0)]
        assert compute_offsets(scenes) == [0.0, 1.0, 1.0]

    def test_empty(self):
        assert compute_offsets([]) == []
        assert total_duration([]) == 0.0

    def test_negative_duration_rejected(self):
        scene = make_scene(0, 0.0)
        scene.duration = -1.0
        with pytest.raises(SceneContractError):
            validate_scenes([scene])


class TestFrames:
    """Tests for frames_for_duration and elapsed_ratios."""

    def test_round_half_up(self):
        assert frames_for_duration(0.25, 10) == 3
        assert frames_for_duration(1.0, 30) == 30
        assert frames_for_duration(1.5, 30) == 45

    def test_zero_and_tiny(self):
        """Clips shorter than half a frame round down to no frames."""
        assert frames_for_duration(0.0, 30) == 0
        assert frames_for_duration(0.001, 30) == 0
        assert frames_for_duration(0.01, 30) == 0
        assert frames_for_duration(0.02, 30) == 1

    def test_ratios(self):
        assert elapsed_ratios(0) == []
        assert elapsed_ratios(1) == [0.0]
        assert elapsed_ratios(5) == [0.0, 0.25, 0.5, 0.75, 1.0]
