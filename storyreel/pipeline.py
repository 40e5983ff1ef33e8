import queue
import threading
import time
from concurrent.futures import Future
from typing import Callable

import numpy as np

from .animator import SceneAnimator
from .compositor import compose_frame
from .config import AppConfig
from .errors import EmptyJobError, ErrorSlot, SinkFailure
from .io_image import load_image_bgr
from .pipeline_audio import start_audio_source
from .pipeline_encoder import start_encoder_sink
from .sinks import FfmpegMuxer, Muxer
from .stats import FramePacer, PerfCounter, batch_memory_mb
from .timeline import compute_offsets, frames_for_duration, total_duration, validate_scenes
from .types import EncodedArtifact, FrameBatch, RenderJob, Scene


CompositorFn = Callable[[np.ndarray, Scene, AppConfig], np.ndarray]


def render(
    job: RenderJob,
    cfg: AppConfig | None = None,
    compositor: CompositorFn = compose_frame,
    muxer: Muxer | None = None,
) -> EncodedArtifact:
    """Render every scene of ``job`` into one muxed video container.

    Audio is scheduled on the bus at each scene's absolute timeline offset,
    frames are produced on this thread and consumed by the encoder sink
    thread as they arrive. Any failure aborts the whole job; the sink and the
    bus are released on every exit path and no partial artifact is returned.
    """
    cfg = cfg or AppConfig.default()
    video = job.video
    scenes = list(job.scenes)
    if not scenes:
        raise EmptyJobError("render job has no scenes")
    validate_scenes(scenes)

    offsets = compute_offsets(scenes)
    total = total_duration(scenes)
    if total <= 0:
        raise EmptyJobError("render job has zero total duration")
    total_frames = sum(frames_for_duration(s.duration, video.fps) for s in scenes)

    if cfg.verbose:
        print(f"🎞️ {len(scenes)} scenes | {total:.2f}s | {total_frames} frames @ {video.fps} fps")

    muxer = muxer or FfmpegMuxer(cfg, video)
    STOP = object()
    errors = ErrorSlot()
    abort = threading.Event()
    frames_q = queue.Queue(cfg.render.max_buffer_batches)
    audio_q = queue.Queue()
    perf = PerfCounter()

    with muxer:
        encoder = start_encoder_sink(cfg, muxer.frame_sink, frames_q, STOP, errors, perf)
        audio_src = start_audio_source(cfg, scenes, audio_q, STOP, errors, abort)
        try:
            _produce(job, cfg, scenes, offsets, total_frames, compositor, muxer, frames_q, audio_q, STOP, errors)
        except BaseException:
            abort.set()
            raise
        finally:
            frames_q.put(STOP)
            encoder.join()
            audio_src.join()

        errors.raise_if_set(job.last_progress)
        job.check_cancelled()

        # let the last audio segment drain before flushing the sink
        if cfg.encode.grace_seconds > 0:
            time.sleep(cfg.encode.grace_seconds)

        try:
            artifact = muxer.finalize(total)
        except SinkFailure as exc:
            if exc.progress is None:
                exc.progress = job.last_progress
            raise

    if cfg.verbose:
        print(f"✅ render complete: {len(artifact.data) / 1024 ** 2:.2f} MB {artifact.mime_type}")
    return artifact


def _produce(job, cfg, scenes, offsets, total_frames, compositor, muxer, frames_q, audio_q, stop_token, errors):
    video = job.video
    pacer = FramePacer(video.fps, cfg.render.realtime)
    # real-time pacing submits one frame per deadline
    batch = 1 if cfg.render.realtime else cfg.render.batch
    frame_base = 0

    for i, (scene, offset) in enumerate(zip(scenes, offsets)):
        job.check_cancelled()
        errors.raise_if_set(job.last_progress)
        job.report(f"Rendering scene {i + 1} / {len(scenes)}...")

        item = audio_q.get()
        if item is stop_token:
            errors.raise_if_set(job.last_progress)
            job.check_cancelled()
            raise SinkFailure("audio source stopped before every scene was decoded", job.last_progress)
        idx, buffer = item
        if idx != i:
            raise SinkFailure(f"audio for scene {idx + 1} arrived while rendering scene {i + 1}", job.last_progress)
        muxer.audio_bus.schedule(buffer, offset)

        image = load_image_bgr(scene.image, scene.id)
        animator = SceneAnimator(image, scene.duration, cfg, video)
        if cfg.verbose:
            print(
                f"🖼️ scene {i + 1}/{len(scenes)} | offset {offset:.3f}s | {scene.duration:.3f}s"
                f" | {animator.n_frames} frames | src {image.shape[1]}x{image.shape[0]}"
            )

        t = 0
        while t < animator.n_frames:
            job.check_cancelled()
            errors.raise_if_set(job.last_progress)
            n = min(batch, animator.n_frames - t)

            t0 = time.perf_counter()
            frames = [compositor(frame, scene, cfg) for frame in animator.next_frames(t, n)]
            dt = time.perf_counter() - t0
            if cfg.verbose and cfg.verbose_lib:
                print(
                    f"🧠 batch {frame_base + t}: {n} frames in {dt:.4f}s"
                    f" ({n / max(dt, 1e-6):.1f} fps, {batch_memory_mb(frames):.2f} MB)"
                )

            pacer.wait(frame_base + t)
            frames_q.put(
                FrameBatch(start_frame=frame_base + t, frames=frames, scene_index=i, total_frames=total_frames)
            )
            t += n
        frame_base += animator.n_frames


def submit_render(job: RenderJob, cfg: AppConfig | None = None, **kwargs) -> Future:
    """Run :func:`render` on its own thread and return a future for the artifact.

    Callers that give up waiting should call ``job.cancel()``; the job then
    stops at the next batch boundary and releases its sink and bus.
    """
    future = Future()

    def _run():
        if not future.set_running_or_notify_cancel():
            return
        try:
            future.set_result(render(job, cfg, **kwargs))
        except BaseException as exc:
            future.set_exception(exc)

    threading.Thread(target=_run, name="render_job", daemon=True).start()
    return future
