import textwrap

import cv2
import numpy as np

from .config import AppConfig
from .types import Scene


def _caption_lines(text: str, frame_w: int, scale: float) -> list:
    # Hershey glyphs are roughly 20px wide at scale 1.0
    chars = max(int(frame_w * 0.9 / (20 * scale)), 8)
    return textwrap.wrap(" ".join(text.split()), width=chars)[:3]


def compose_frame(frame: np.ndarray, scene: Scene, cfg: AppConfig) -> np.ndarray:
    """Overlay the scene script as a caption band when enabled."""
    if not cfg.render.draw_script or not scene.script:
        return frame

    h, w = frame.shape[:2]
    scale = float(cfg.render.caption_scale)
    lines = _caption_lines(scene.script, w, scale)
    if not lines:
        return frame

    band_h = int(h * cfg.render.caption_band)
    y0 = h - band_h
    out = frame.copy()

    # darken the band so white text stays legible
    band = out[y0:, :].astype(np.uint16)
    out[y0:, :] = (band * 2 // 5).astype(np.uint8)

    thickness = max(int(round(scale * 2)), 1)
    line_h = int(32 * scale)
    top = y0 + (band_h - line_h * len(lines)) // 2 + line_h - 8
    for i, line in enumerate(lines):
        (tw, _), _ = cv2.getTextSize(line, cv2.FONT_HERSHEY_SIMPLEX, scale, thickness)
        x = max((w - tw) // 2, 4)
        y = top + i * line_h
        cv2.putText(out, line, (x, y), cv2.FONT_HERSHEY_SIMPLEX, scale, (0, 0, 0),
                    thickness=thickness + 3, lineType=cv2.LINE_AA)
        cv2.putText(out, line, (x, y), cv2.FONT_HERSHEY_SIMPLEX, scale, (255, 255, 255),
                    thickness=thickness, lineType=cv2.LINE_AA)
    return out
