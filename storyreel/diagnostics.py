import subprocess

from .config import AppConfig
from .encode import list_encoders
from .errors import SinkFailure


def ffmpeg_version(ffmpeg_bin: str = "ffmpeg") -> str:
    try:
        p = subprocess.run([ffmpeg_bin, "-version"], stdout=subprocess.PIPE,
                           stderr=subprocess.DEVNULL, text=True, check=True)
    except (FileNotFoundError, subprocess.CalledProcessError):
        return "unavailable"
    first = p.stdout.splitlines()[0] if p.stdout else ""
    return first.replace("ffmpeg version ", "").split(" ")[0] or "unknown"


def print_env_diagnostics(cfg: AppConfig):
    encode = cfg.encode
    print("ffmpeg:", ffmpeg_version(encode.ffmpeg_bin))
    if cfg.verbose:
        try:
            encoders = list_encoders(encode.ffmpeg_bin)
        except SinkFailure:
            encoders = frozenset()
        print("🧩 Config summary")
        print(f"  OUT  : {cfg.video.w}x{cfg.video.h} @ {cfg.video.fps} fps | {cfg.video.video_bitrate}")
        print(f"  AUDIO: {cfg.audio.sample_rate} Hz | {cfg.audio.channels} ch")
        print(f"  CODEC: {encode.video_codec} ({'ok' if encode.video_codec in encoders else 'missing'})"
              f" | fallback {encode.fallback_video_codec}"
              f" ({'ok' if encode.fallback_video_codec in encoders else 'missing'})"
              f" | audio {encode.audio_codec} | .{encode.container}")
        print(f"  ZOOM : 1.0 -> {cfg.render.zoom_end} | batch={cfg.render.batch} | q={cfg.render.max_buffer_batches}")
