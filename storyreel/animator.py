from typing import List, Tuple

import cv2
import numpy as np

from .config import AppConfig, VideoConfig
from .timeline import elapsed_ratios, frames_for_duration
from .types import DrawInstruction


def cover_fit(image_w: int, image_h: int, canvas_w: int, canvas_h: int) -> Tuple[float, float, float, float]:
    """Rectangle (x, y, w, h) that covers the canvas without letterboxing."""
    if image_w <= 0 or image_h <= 0:
        raise ValueError(f"image size must be positive, got {image_w}x{image_h}")
    canvas_aspect = canvas_w / canvas_h
    image_aspect = image_w / image_h

    if image_aspect > canvas_aspect:
        # wider than the canvas: crop left/right
        h = float(canvas_h)
        w = image_w * (canvas_h / image_h)
        x = (canvas_w - w) / 2
        y = 0.0
    else:
        w = float(canvas_w)
        h = image_h * (canvas_w / image_w)
        x = 0.0
        y = (canvas_h - h) / 2
    return x, y, w, h


def zoom_scale(ratio: float, zoom_end: float = 1.05) -> float:
    ratio = min(max(float(ratio), 0.0), 1.0)
    return 1.0 + (zoom_end - 1.0) * ratio


def compute_frame(
    image_w: int,
    image_h: int,
    canvas_w: int,
    canvas_h: int,
    ratio: float,
    zoom_end: float = 1.05,
) -> DrawInstruction:
    x, y, w, h = cover_fit(image_w, image_h, canvas_w, canvas_h)
    scale = zoom_scale(ratio, zoom_end)

    # zoom about the centre of the covering rectangle
    scaled_w = w * scale
    scaled_h = h * scale
    offset_x = x - (scaled_w - w) / 2
    offset_y = y - (scaled_h - h) / 2

    px = scaled_w / image_w
    py = scaled_h / image_h
    src_x = max(0.0, -offset_x / px)
    src_y = max(0.0, -offset_y / py)
    src_w = min(image_w - src_x, canvas_w / px)
    src_h = min(image_h - src_y, canvas_h / py)

    return DrawInstruction(
        scale=scale,
        offset_x=offset_x,
        offset_y=offset_y,
        width=scaled_w,
        height=scaled_h,
        source_rect=(src_x, src_y, src_w, src_h),
    )


def render_frame(
    image: np.ndarray,
    instr: DrawInstruction,
    canvas_w: int,
    canvas_h: int,
    background=(0, 0, 0),
) -> np.ndarray:
    """Draw ``image`` onto a background-filled canvas following ``instr``."""
    ih, iw = image.shape[:2]
    sx = instr.width / iw
    sy = instr.height / ih
    # map pixel centres, not pixel corners
    m = np.array(
        [
            [sx, 0.0, instr.offset_x + 0.5 * sx - 0.5],
            [0.0, sy, instr.offset_y + 0.5 * sy - 0.5],
        ],
        dtype=np.float64,
    )
    # uncovered canvas area takes the constant border colour
    return cv2.warpAffine(
        image,
        m,
        (canvas_w, canvas_h),
        flags=cv2.INTER_LINEAR,
        borderMode=cv2.BORDER_CONSTANT,
        borderValue=tuple(int(c) for c in background),
    )


class SceneAnimator:
    """Ken Burns frames for one scene, addressed by frame index."""

    def __init__(self, image_bgr: np.ndarray, duration: float, cfg: AppConfig, video: VideoConfig | None = None):
        self.cfg = cfg
        self.video = video or cfg.video
        self.canvas_w = self.video.w
        self.canvas_h = self.video.h
        self.zoom_end = float(cfg.render.zoom_end)
        self.background = cfg.render.background_bgr

        self.n_frames = frames_for_duration(duration, self.video.fps)
        self.ratios = elapsed_ratios(self.n_frames)

        # pre-scale once to the cover size so per-frame warps stay near 1:1
        ih, iw = image_bgr.shape[:2]
        _, _, w, h = cover_fit(iw, ih, self.canvas_w, self.canvas_h)
        base_w = max(int(round(w)), self.canvas_w)
        base_h = max(int(round(h)), self.canvas_h)
        interp = cv2.INTER_AREA if base_w < iw else cv2.INTER_CUBIC
        self.image = cv2.resize(image_bgr, (base_w, base_h), interpolation=interp)

    def ratio(self, frame_idx: int) -> float:
        return self.ratios[frame_idx]

    def instruction(self, frame_idx: int) -> DrawInstruction:
        ih, iw = self.image.shape[:2]
        return compute_frame(iw, ih, self.canvas_w, self.canvas_h, self.ratio(frame_idx), self.zoom_end)

    def frame(self, frame_idx: int) -> np.ndarray:
        return render_frame(self.image, self.instruction(frame_idx), self.canvas_w, self.canvas_h, self.background)

    def next_frames(self, t: int, n: int) -> List[np.ndarray]:
        end = min(t + n, self.n_frames)
        return [self.frame(k) for k in range(t, end)]
