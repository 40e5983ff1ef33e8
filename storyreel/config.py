from dataclasses import dataclass, field


@dataclass
class PathConfig:
    scenes_dir: str = "scenes"
    out_video: str = "kahani.webm"
    out_audio: str = "kahani.wav"


@dataclass
class AudioConfig:
    # TTS output is raw 16-bit PCM at 24 kHz mono
    sample_rate: int = 24000
    channels: int = 1


@dataclass
class VideoConfig:
    w: int = 1920
    h: int = 1080
    fps: int = 30
    video_bitrate: str = "2500k"


@dataclass
class RenderConfig:
    batch: int = 8
    max_buffer_batches: int = 8

    # Ken Burns zoom reached at the end of each scene
    zoom_end: float = 1.05
    background_bgr: tuple = (0, 0, 0)

    # pace frame submission to the target fps instead of rendering flat out
    realtime: bool = False

    # script caption overlay
    draw_script: bool = False
    caption_scale: float = 1.2
    caption_band: float = 0.16


@dataclass
class EncodeConfig:
    ffmpeg_bin: str = "ffmpeg"
    container: str = "webm"
    video_codec: str = "libvpx-vp9"
    fallback_video_codec: str = "libvpx"
    audio_codec: str = "libopus"
    audio_bitrate: str = "128k"
    # wait for the last audio segment to drain before finalizing
    grace_seconds: float = 0.5


@dataclass
class AppConfig:
    verbose: bool = True  # controls application logs
    verbose_lib: bool = False  # controls noisy third-party tools (ffmpeg)

    paths: PathConfig = field(default_factory=PathConfig)
    audio: AudioConfig = field(default_factory=AudioConfig)
    video: VideoConfig = field(default_factory=VideoConfig)
    render: RenderConfig = field(default_factory=RenderConfig)
    encode: EncodeConfig = field(default_factory=EncodeConfig)

    @staticmethod
    def default() -> "AppConfig":
        cfg = AppConfig()
        cfg.paths.out_video = f"kahani.{cfg.encode.container}"
        return cfg

    def validate(self):
        assert self.video.w > 0 and self.video.h > 0
        assert self.video.w % 2 == 0 and self.video.h % 2 == 0, "yuv420p needs even frame sizes"
        assert self.video.fps > 0
        assert self.render.batch >= 1
        assert self.render.max_buffer_batches >= 1
        assert self.render.zoom_end >= 1.0
        assert len(self.render.background_bgr) == 3
        assert 0.0 < self.render.caption_band < 1.0
        assert self.audio.sample_rate >= 8000
        assert self.audio.channels >= 1
        assert self.encode.container in MIME_TYPES, f"unknown container {self.encode.container}"
        assert self.encode.grace_seconds >= 0.0


MIME_TYPES = {
    "webm": "video/webm",
    "mp4": "video/mp4",
    "mkv": "video/x-matroska",
    "wav": "audio/wav",
}
