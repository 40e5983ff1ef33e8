from typing import Sequence

import numpy as np

from .config import AppConfig
from .errors import EmptyJobError, IncompatibleAudioFormatError
from .pcm import encode_wav
from .pipeline_audio import resolve_audio
from .types import AudioBuffer, EncodedArtifact, Scene


def concatenate_audio(scenes: Sequence[Scene], cfg: AppConfig | None = None) -> AudioBuffer:
    """Join every scene's narration, in order and without gaps, into one buffer."""
    cfg = cfg or AppConfig.default()
    if not scenes:
        raise EmptyJobError("nothing to concatenate: no scenes")

    buffers = [resolve_audio(scene, cfg) for scene in scenes]
    sample_rate = cfg.audio.sample_rate
    channels = cfg.audio.channels
    for scene, buf in zip(scenes, buffers):
        if buf.sample_rate != sample_rate or buf.channel_count != channels:
            raise IncompatibleAudioFormatError(
                f"scene {scene.id!r} is {buf.sample_rate} Hz/{buf.channel_count} ch, "
                f"expected {sample_rate} Hz/{channels} ch"
            )

    total = sum(buf.frame_count for buf in buffers)
    out = np.zeros((channels, total), dtype=np.float32)
    pos = 0
    for buf in buffers:
        out[:, pos : pos + buf.frame_count] = buf.samples
        pos += buf.frame_count

    if cfg.verbose:
        print(f"🎵 concatenated {len(buffers)} clips | frames={total} | duration={total / sample_rate:.2f}s")
    return AudioBuffer(sample_rate=sample_rate, samples=out)


def concatenate(scenes: Sequence[Scene], cfg: AppConfig | None = None) -> bytes:
    return encode_wav(concatenate_audio(scenes, cfg))


def export_audio(scenes: Sequence[Scene], cfg: AppConfig | None = None) -> EncodedArtifact:
    return EncodedArtifact(data=concatenate(scenes, cfg), container="wav")
