"""Frame sink, audio bus ownership and final muxing.

``Muxer`` is the seam between the render pipeline and a concrete encoder:
it owns a ``FrameSink`` (raw frames in, at a fixed cadence) and an
``AudioBus`` (time-offset audio segments), and produces one artifact.
"""

import shutil
import subprocess
import tempfile
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Protocol

import numpy as np

from .audio_bus import AudioBus
from .config import AppConfig, VideoConfig
from .encode import list_encoders, mux_audio, select_video_codec
from .errors import SinkFailure
from .pcm import encode_wav
from .types import EncodedArtifact


class FrameSink(Protocol):
    def write(self, frame: np.ndarray) -> None: ...

    def close(self) -> None: ...

    def abort(self) -> None: ...


class Muxer(ABC):
    """Owns a frame sink and an audio bus for the lifetime of one job."""

    frame_sink: FrameSink
    audio_bus: AudioBus

    def __enter__(self):
        try:
            self.open()
        except BaseException:
            self.release()
            raise
        return self

    def __exit__(self, *_):
        self.release()

    @abstractmethod
    def open(self):
        """Acquire the sink and the bus."""

    @abstractmethod
    def finalize(self, duration: float) -> EncodedArtifact:
        """Flush the sink, mix the bus and return the muxed container."""

    @abstractmethod
    def release(self):
        """Release every resource; safe to call more than once."""


def _tail(path: Path, n: int = 2000) -> str:
    try:
        return path.read_text(errors="replace")[-n:].strip()
    except OSError:
        return ""


class FfmpegFrameSink:
    """Pipe raw BGR frames into an ffmpeg encoder process (video only)."""

    def __init__(self, cfg: AppConfig, video: VideoConfig, codec: str, out_path: Path, log_path: Path):
        self.cfg = cfg
        self.video = video
        self.codec = codec
        self.out_path = out_path
        self.log_path = log_path
        self.proc: subprocess.Popen | None = None
        self._log = None
        self.frames_written = 0

    def command(self) -> list:
        loglevel = "info" if self.cfg.verbose_lib else "error"
        return [
            self.cfg.encode.ffmpeg_bin,
            "-y",
            "-loglevel",
            loglevel,
            "-f",
            "rawvideo",
            "-pix_fmt",
            "bgr24",
            "-s",
            f"{self.video.w}x{self.video.h}",
            "-r",
            str(self.video.fps),
            "-i",
            "-",
            "-an",
            "-c:v",
            self.codec,
            "-pix_fmt",
            "yuv420p",
            "-b:v",
            self.video.video_bitrate,
            str(self.out_path),
        ]

    def open(self):
        self._log = open(self.log_path, "wb")
        try:
            self.proc = subprocess.Popen(self.command(), stdin=subprocess.PIPE, stderr=self._log)
        except FileNotFoundError as exc:
            raise SinkFailure(f"{self.cfg.encode.ffmpeg_bin} not found in PATH") from exc
        if self.proc.stdin is None:
            raise SinkFailure("ffmpeg stdin not available")

    def write(self, frame: np.ndarray):
        if self.proc is None or self.proc.stdin is None:
            raise SinkFailure("frame sink is not open")
        expected = (self.video.h, self.video.w, 3)
        if frame.shape != expected or frame.dtype != np.uint8:
            raise SinkFailure(f"frame {frame.shape}/{frame.dtype} does not match {expected}/uint8")
        try:
            self.proc.stdin.write(frame.tobytes())
        except (BrokenPipeError, OSError) as exc:
            raise SinkFailure(f"ffmpeg stopped accepting frames: {_tail(self.log_path)}") from exc
        self.frames_written += 1

    def close(self):
        if self.proc is None:
            return
        try:
            self.proc.stdin.close()
        except (BrokenPipeError, OSError):
            pass
        return_code = self.proc.wait()
        self.proc = None
        self._close_log()
        if return_code != 0:
            raise SinkFailure(f"ffmpeg failed with code {return_code}: {_tail(self.log_path)}")

    def abort(self):
        if self.proc is not None:
            if self.proc.poll() is None:
                self.proc.kill()
            self.proc.wait()
            self.proc = None
        self._close_log()

    def _close_log(self):
        if self._log is not None:
            self._log.close()
            self._log = None


class FfmpegMuxer(Muxer):
    """Encode frames with ffmpeg, then mux in the audio bus mixdown."""

    def __init__(self, cfg: AppConfig, video: VideoConfig | None = None):
        self.cfg = cfg
        self.video = video or cfg.video
        self.workdir: Path | None = None
        self.codec: str | None = None
        self.frame_sink = None
        self.audio_bus = AudioBus(cfg.audio.sample_rate, cfg.audio.channels)

    def open(self):
        encode = self.cfg.encode
        self.codec = select_video_codec(encode, list_encoders(encode.ffmpeg_bin))
        self.workdir = Path(tempfile.mkdtemp(prefix="storyreel-"))
        self.frame_sink = FfmpegFrameSink(
            self.cfg,
            self.video,
            self.codec,
            self.workdir / f"video.{encode.container}",
            self.workdir / "ffmpeg-video.log",
        )
        self.frame_sink.open()
        self.audio_bus.open()
        if self.cfg.verbose:
            print(
                f"🎬 sink open: {self.video.w}x{self.video.h} @ {self.video.fps} fps"
                f" | {self.codec} {self.video.video_bitrate} | {encode.container}"
            )

    def finalize(self, duration: float) -> EncodedArtifact:
        encode = self.cfg.encode
        self.frame_sink.close()

        track = self.audio_bus.mixdown(duration)
        audio_path = self.workdir / "narration.wav"
        audio_path.write_bytes(encode_wav(track))

        out_path = self.workdir / f"final.{encode.container}"
        mux_audio(
            in_video=str(self.frame_sink.out_path),
            audio_path=str(audio_path),
            out_path=str(out_path),
            encode=encode,
            verbose_lib=self.cfg.verbose_lib,
            duration=duration,
        )
        data = out_path.read_bytes()
        if not data:
            raise SinkFailure("muxer produced an empty container")
        return EncodedArtifact(data=data, container=encode.container)

    def release(self):
        if self.frame_sink is not None:
            self.frame_sink.abort()
        self.audio_bus.close()
        if self.workdir is not None:
            shutil.rmtree(self.workdir, ignore_errors=True)
            self.workdir = None
