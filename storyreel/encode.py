import subprocess
from functools import lru_cache
from typing import FrozenSet

from .config import EncodeConfig
from .errors import EncoderUnavailableError, SinkFailure


@lru_cache(maxsize=None)
def list_encoders(ffmpeg_bin: str = "ffmpeg") -> FrozenSet[str]:
    """Names of the encoders compiled into the ffmpeg binary."""
    try:
        p = subprocess.run(
            [ffmpeg_bin, "-hide_banner", "-encoders"],
            stdout=subprocess.PIPE,
            stderr=subprocess.DEVNULL,
            check=True,
            text=True,
        )
    except FileNotFoundError as exc:
        raise SinkFailure(f"{ffmpeg_bin} not found in PATH") from exc
    except subprocess.CalledProcessError as exc:
        raise SinkFailure(f"{ffmpeg_bin} -encoders failed with code {exc.returncode}") from exc

    names = set()
    for line in p.stdout.splitlines():
        parts = line.split()
        # " V....D libvpx-vp9  libvpx VP9 (codec vp9)"
        if len(parts) >= 2 and len(parts[0]) == 6 and parts[0][0] in "VAS" and parts[1] != "=":
            names.add(parts[1])
    return frozenset(names)


def select_video_codec(encode: EncodeConfig, available: FrozenSet[str]) -> str:
    """Preferred codec if present, else the fallback with a quality warning."""
    if encode.video_codec in available:
        return encode.video_codec
    if encode.fallback_video_codec and encode.fallback_video_codec in available:
        print(
            f"⚠️ {encode.video_codec} is not supported, falling back to "
            f"{encode.fallback_video_codec}. Quality may be reduced."
        )
        return encode.fallback_video_codec
    raise EncoderUnavailableError(
        f"neither {encode.video_codec} nor {encode.fallback_video_codec} is available"
    )


def mux_audio(
    in_video: str,
    audio_path: str,
    out_path: str,
    encode: EncodeConfig,
    verbose_lib: bool,
    duration: float | None = None,
):
    """Copy the encoded video stream and add the mixed narration track."""
    cmd = [encode.ffmpeg_bin, "-y", "-loglevel", "info" if verbose_lib else "error"]
    cmd.extend(["-i", in_video, "-i", audio_path])
    cmd.extend([
        "-map", "0:v:0",
        "-map", "1:a:0",
        "-c:v", "copy",
        "-c:a", encode.audio_codec,
        "-b:a", encode.audio_bitrate,
    ])
    if duration is not None:
        cmd.extend(["-t", f"{duration:.6f}"])
    cmd.append(out_path)
    try:
        subprocess.run(cmd, check=True)
    except FileNotFoundError as exc:
        raise SinkFailure(f"{encode.ffmpeg_bin} not found in PATH") from exc
    except subprocess.CalledProcessError as exc:
        raise SinkFailure(f"ffmpeg mux failed with code {exc.returncode}") from exc
