import math
from typing import List, Sequence

from .errors import SceneContractError
from .types import Scene


def validate_scenes(scenes: Sequence[Scene]):
    for scene in scenes:
        if scene.duration < 0 or not math.isfinite(scene.duration):
            raise SceneContractError(f"scene {scene.id!r} has invalid duration {scene.duration}")


def compute_offsets(scenes: Sequence[Scene]) -> List[float]:
    """Absolute start time of every scene: the running total of prior durations."""
    offsets = []
    t = 0.0
    for scene in scenes:
        offsets.append(t)
        t += scene.duration
    return offsets


def total_duration(scenes: Sequence[Scene]) -> float:
    if not scenes:
        return 0.0
    return compute_offsets(scenes)[-1] + scenes[-1].duration


def frames_for_duration(duration: float, fps: int) -> int:
    """round(duration * fps), rounding half up; clips shorter than half a frame get none."""
    if duration <= 0:
        return 0
    return int(math.floor(duration * fps + 0.5))


def elapsed_ratios(n_frames: int) -> List[float]:
    if n_frames <= 0:
        return []
    if n_frames == 1:
        return [0.0]
    return [k / (n_frames - 1) for k in range(n_frames)]
