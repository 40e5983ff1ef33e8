"""Shared fixtures: small configs and an in-memory muxer standing in for ffmpeg."""

import os
import sys

import numpy as np
import pytest

# Add the repo root to path for imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from storyreel.audio_bus import AudioBus
from storyreel.config import AppConfig, VideoConfig
from storyreel.errors import SinkFailure
from storyreel.sinks import Muxer
from storyreel.types import AudioBuffer, EncodedArtifact, Scene


class MemorySink:
    def __init__(self, fail_after=None):
        self.frames = []
        self.fail_after = fail_after
        self.closed = False
        self.aborted = False

    def write(self, frame):
        if self.fail_after is not None and len(self.frames) >= self.fail_after:
            raise SinkFailure("disk full")
        self.frames.append(frame)

    def close(self):
        self.closed = True

    def abort(self):
        self.aborted = True


class MemoryMuxer(Muxer):
    def __init__(self, sample_rate=24000, channels=1, fail_after=None):
        self.frame_sink = MemorySink(fail_after)
        self.audio_bus = AudioBus(sample_rate, channels)
        self.opened = False
        self.released = False
        self.finalized = False
        self.segments = []
        self.mix = None

    def open(self):
        self.opened = True
        self.audio_bus.open()

    def finalize(self, duration):
        self.frame_sink.close()
        self.segments = self.audio_bus.segments
        self.mix = self.audio_bus.mixdown(duration)
        self.finalized = True
        return EncodedArtifact(data=b"WEBM" + bytes(len(self.frame_sink.frames)), container="webm")

    def release(self):
        self.released = True
        self.audio_bus.close()


def tone(duration, value=0.25, sample_rate=24000):
    n = int(round(duration * sample_rate))
    return AudioBuffer(sample_rate=sample_rate, samples=np.full((1, n), value, dtype=np.float32))


def solid_image(w=80, h=60, color=(10, 120, 200)):
    return np.full((h, w, 3), color, dtype=np.uint8)


def make_scene(idx, duration, value=0.25, image=None, script=""):
    audio = tone(duration, value)
    return Scene(
        id=f"s{idx}",
        image=solid_image() if image is None else image,
        script=script or f"scene {idx}",
        duration=audio.duration,
        audio=audio,
    )


@pytest.fixture
def cfg():
    c = AppConfig()
    c.verbose = False
    c.video = VideoConfig(w=64, h=36, fps=10)
    c.render.batch = 4
    c.render.max_buffer_batches = 2
    c.encode.grace_seconds = 0.0
    return c


@pytest.fixture
def muxer():
    return MemoryMuxer()
