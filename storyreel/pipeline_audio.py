import threading
from queue import Queue
from typing import Sequence

from .config import AppConfig
from .errors import ErrorSlot
from .pcm import decode_pcm
from .stats import Timer
from .types import AudioBuffer, Scene


def resolve_audio(scene: Scene, cfg: AppConfig) -> AudioBuffer:
    """The scene's decoded audio, decoding its raw PCM when needed."""
    if scene.audio is not None:
        buffer = scene.audio
    else:
        buffer = decode_pcm(scene.audio_pcm, cfg.audio.sample_rate, cfg.audio.channels)
    scene.check_audio(buffer)
    return buffer


def start_audio_source(
    cfg: AppConfig,
    scenes: Sequence[Scene],
    output: Queue,
    stop_token: object,
    errors: ErrorSlot,
    abort: threading.Event,
) -> threading.Thread:
    """Decode scene audio ahead of rendering and emit (index, AudioBuffer) in scene order."""

    def _run():
        try:
            for idx, scene in enumerate(scenes):
                if abort.is_set():
                    break
                with Timer(f"audio decode scene {idx + 1}", verbose=cfg.verbose and scene.audio is None):
                    buffer = resolve_audio(scene, cfg)
                output.put((idx, buffer))
        except Exception as exc:
            errors.set(exc)
        finally:
            output.put(stop_token)

    t = threading.Thread(target=_run, name="audio_source", daemon=True)
    t.start()
    return t
