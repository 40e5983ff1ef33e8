from pathlib import Path

import cv2
import numpy as np

from .errors import ImageLoadError


def load_image_bgr(source, scene_id: str = "?") -> np.ndarray:
    """Rasterize a scene image (array, encoded bytes or path) to uint8 BGR."""
    if isinstance(source, np.ndarray):
        img = source
    elif isinstance(source, (bytes, bytearray, memoryview)):
        try:
            img = cv2.imdecode(np.frombuffer(source, dtype=np.uint8), cv2.IMREAD_COLOR)
        except cv2.error as exc:
            raise ImageLoadError(f"scene {scene_id}: image bytes could not be decoded") from exc
    elif isinstance(source, (str, Path)):
        img = cv2.imread(str(source), cv2.IMREAD_COLOR)
    else:
        raise ImageLoadError(f"scene {scene_id}: unsupported image source {type(source).__name__}")

    if img is None or img.size == 0:
        raise ImageLoadError(f"scene {scene_id}: image could not be loaded")

    if img.ndim == 2:
        img = cv2.cvtColor(img, cv2.COLOR_GRAY2BGR)
    elif img.ndim == 3 and img.shape[2] == 4:
        img = cv2.cvtColor(img, cv2.COLOR_BGRA2BGR)
    elif img.ndim != 3 or img.shape[2] != 3:
        raise ImageLoadError(f"scene {scene_id}: unexpected image shape {img.shape}")

    if img.dtype != np.uint8:
        img = np.clip(img, 0, 255).astype(np.uint8)
    return img
