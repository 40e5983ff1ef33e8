import threading
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, List, Sequence, Union

import numpy as np

from .config import MIME_TYPES, VideoConfig
from .errors import JobCancelled, SceneContractError

ImageSource = Union[np.ndarray, bytes, str, Path]
ProgressFn = Callable[[str], None]


@dataclass(frozen=True, eq=False)
class AudioBuffer:
    """Decoded audio: float32 samples shaped (channels, frames) in [-1, 1]."""

    sample_rate: int
    samples: np.ndarray

    def __post_init__(self):
        samples = np.array(self.samples, dtype=np.float32, copy=True)
        if samples.ndim == 1:
            samples = samples[None, :]
        if samples.ndim != 2 or samples.shape[0] < 1:
            raise ValueError(f"samples must be shaped (channels, frames), got {samples.shape}")
        if self.sample_rate <= 0:
            raise ValueError(f"sample_rate must be positive, got {self.sample_rate}")
        samples.setflags(write=False)
        object.__setattr__(self, "samples", samples)

    @property
    def channel_count(self) -> int:
        return int(self.samples.shape[0])

    @property
    def frame_count(self) -> int:
        return int(self.samples.shape[1])

    @property
    def duration(self) -> float:
        return self.frame_count / self.sample_rate

    def channel(self, idx: int) -> np.ndarray:
        return self.samples[idx]

    @classmethod
    def silence(cls, duration: float, sample_rate: int = 24000, channels: int = 1) -> "AudioBuffer":
        n = int(round(duration * sample_rate))
        return cls(sample_rate=sample_rate, samples=np.zeros((channels, n), dtype=np.float32))


@dataclass
class Scene:
    """One image + narration unit of a story.

    ``duration`` is authoritative and must match the decoded audio exactly.
    Audio comes either pre-decoded (``audio``) or as raw PCM bytes
    (``audio_pcm``) decoded when the scene is rendered.
    """

    id: str
    image: ImageSource
    script: str
    duration: float
    audio: AudioBuffer | None = None
    audio_pcm: bytes | None = None
    # script text the audio was synthesized from
    audio_generated_for: str | None = None

    def __post_init__(self):
        if self.audio is None and self.audio_pcm is None:
            raise SceneContractError(f"scene {self.id!r} has no audio")
        if self.audio is not None:
            self.check_audio(self.audio)

    @property
    def audio_is_stale(self) -> bool:
        return self.audio_generated_for is not None and self.audio_generated_for != self.script

    def check_audio(self, audio: AudioBuffer):
        if audio.duration != self.duration:
            raise SceneContractError(
                f"scene {self.id!r}: duration {self.duration}s != audio duration {audio.duration}s"
            )

    @classmethod
    def from_pcm(
        cls,
        id: str,
        image: ImageSource,
        script: str,
        pcm: bytes,
        sample_rate: int = 24000,
        channels: int = 1,
        decode: bool = True,
    ) -> "Scene":
        from .pcm import decode_pcm, pcm_duration

        if decode:
            audio = decode_pcm(pcm, sample_rate, channels)
            return cls(id=id, image=image, script=script, duration=audio.duration,
                       audio=audio, audio_generated_for=script)
        return cls(id=id, image=image, script=script,
                   duration=pcm_duration(len(pcm), sample_rate, channels),
                   audio_pcm=pcm, audio_generated_for=script)


@dataclass
class RenderJob:
    scenes: Sequence[Scene]
    video: VideoConfig = field(default_factory=VideoConfig)
    on_progress: ProgressFn | None = None
    cancel_event: threading.Event = field(default_factory=threading.Event)
    last_progress: str | None = None

    def report(self, message: str):
        self.last_progress = message
        if self.on_progress is not None:
            self.on_progress(message)

    def cancel(self):
        self.cancel_event.set()

    @property
    def cancelled(self) -> bool:
        return self.cancel_event.is_set()

    def check_cancelled(self):
        if self.cancel_event.is_set():
            raise JobCancelled(f"render cancelled (last progress: {self.last_progress})")


@dataclass(frozen=True)
class EncodedArtifact:
    data: bytes
    container: str
    mime_type: str = ""

    def __post_init__(self):
        if not self.mime_type:
            object.__setattr__(self, "mime_type", MIME_TYPES[self.container])

    @property
    def is_video(self) -> bool:
        return self.mime_type.startswith("video/")

    def __len__(self):
        return len(self.data)

    def save(self, path: str | Path) -> Path:
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(self.data)
        return path


@dataclass(frozen=True)
class DrawInstruction:
    """Where a scene image lands on the canvas for one frame."""

    scale: float
    offset_x: float
    offset_y: float
    width: float
    height: float
    # visible region in source pixels: (x, y, w, h)
    source_rect: tuple


@dataclass
class FrameBatch:
    """Batch of BGR frames ready for encoding."""

    start_frame: int
    frames: List[np.ndarray]
    scene_index: int = 0
    total_frames: int | None = None
