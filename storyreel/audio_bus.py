from typing import List, Tuple

import numpy as np

from .errors import IncompatibleAudioFormatError
from .types import AudioBuffer


class AudioBus:
    """Per-job mixing bus that places audio segments at absolute offsets.

    Segments are positioned by sample index rather than appended one after
    another, so dispatch latency can never accumulate into drift.
    """

    def __init__(self, sample_rate: int = 24000, channels: int = 1):
        self.sample_rate = sample_rate
        self.channels = channels
        self._segments: List[Tuple[int, AudioBuffer]] = []
        self._last_offset = 0.0
        self._open = False

    def __enter__(self):
        self.open()
        return self

    def __exit__(self, *_):
        self.close()

    @property
    def is_open(self) -> bool:
        return self._open

    def open(self):
        self._segments = []
        self._last_offset = 0.0
        self._open = True

    def close(self):
        self._segments = []
        self._open = False

    def _check_open(self):
        if not self._open:
            raise RuntimeError("audio bus is not open")

    def schedule(self, buffer: AudioBuffer, offset: float) -> int:
        """Queue ``buffer`` to start ``offset`` seconds into the program."""
        self._check_open()
        if buffer.sample_rate != self.sample_rate or buffer.channel_count != self.channels:
            raise IncompatibleAudioFormatError(
                f"bus is {self.sample_rate} Hz/{self.channels} ch, "
                f"segment is {buffer.sample_rate} Hz/{buffer.channel_count} ch"
            )
        if offset < 0:
            raise ValueError(f"offset must be >= 0, got {offset}")
        if offset < self._last_offset:
            raise ValueError(
                f"segments must be scheduled in order: {offset}s after {self._last_offset}s"
            )
        start = int(round(offset * self.sample_rate))
        self._segments.append((start, buffer))
        self._last_offset = offset
        return start

    @property
    def segments(self) -> List[Tuple[int, AudioBuffer]]:
        return list(self._segments)

    @property
    def end_frame(self) -> int:
        return max((start + buf.frame_count for start, buf in self._segments), default=0)

    def mixdown(self, duration: float | None = None) -> AudioBuffer:
        """Sum every scheduled segment into one buffer of ``duration`` seconds."""
        self._check_open()
        n = self.end_frame if duration is None else int(round(duration * self.sample_rate))
        out = np.zeros((self.channels, n), dtype=np.float32)
        for start, buf in self._segments:
            end = min(start + buf.frame_count, n)
            if end <= start:
                continue
            out[:, start:end] += buf.samples[:, : end - start]
        np.clip(out, -1.0, 1.0, out=out)
        return AudioBuffer(sample_rate=self.sample_rate, samples=out)
