from __future__ import annotations

import os
import time
from typing import Iterable, Union

import numpy as np
import psutil

_proc = psutil.Process(os.getpid())


def ram_mb():
    return _proc.memory_info().rss / (1024 ** 2)


class Timer:
    def __init__(self, name, verbose: bool = True):
        self.name = name
        self.verbose = verbose
        self.elapsed = 0.0

    def __enter__(self):
        self.t0 = time.perf_counter()
        return self

    def __exit__(self, *_):
        self.elapsed = time.perf_counter() - self.t0
        if self.verbose:
            print(f"⏱️ {self.name}: {self.elapsed:.3f}s")


class PerfCounter:
    def __init__(self):
        self.frames = 0
        self.t0 = None
        self.t1 = None

    def start(self):
        self.t0 = time.perf_counter()

    def tick(self, n=1):
        self.frames += n

    def stop(self):
        self.t1 = time.perf_counter()

    def avg_fps(self):
        if self.t0 is None:
            return 0.0
        t1 = self.t1 if self.t1 is not None else time.perf_counter()
        return self.frames / max(t1 - self.t0, 1e-9)


class FramePacer:
    """Sleeps until each frame's deadline when real-time pacing is on."""

    def __init__(self, fps: int, realtime: bool):
        self.period = 1.0 / fps
        self.realtime = realtime
        self.t0 = None

    def wait(self, frame_idx: int):
        if not self.realtime:
            return
        if self.t0 is None:
            self.t0 = time.perf_counter()
        delay = self.t0 + frame_idx * self.period - time.perf_counter()
        if delay > 0:
            time.sleep(delay)


MB = 1024 ** 2


def batch_memory_mb(frames: Union[np.ndarray, Iterable[np.ndarray]]) -> float:
    if isinstance(frames, np.ndarray):
        return frames.nbytes / MB
    return sum(int(f.nbytes) for f in frames) / MB


def progress_bar(pct: float, width: int = 28) -> str:
    filled = int(width * max(min(pct, 1.0), 0.0))
    return "#" * filled + "-" * (width - filled)


def format_progress(written: int, total: int, perf: PerfCounter, width: int = 28) -> str:
    pct = min(written / max(total, 1), 1.0)
    return (
        f"🚀 Rendering |{progress_bar(pct, width)}| {pct*100:5.1f}% | frames {written}/{total}"
        f" | avg {perf.avg_fps():5.1f} fps | RAM ≈ {ram_mb():.0f} MB"
    )
