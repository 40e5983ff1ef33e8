import threading
import time
from queue import Queue

from .config import AppConfig
from .errors import ErrorSlot
from .sinks import FrameSink
from .stats import PerfCounter, format_progress, ram_mb
from .types import FrameBatch


def start_encoder_sink(
    cfg: AppConfig,
    sink: FrameSink,
    frames_in: Queue,
    stop_token: object,
    errors: ErrorSlot,
    perf: PerfCounter,
) -> threading.Thread:
    """Stream frame batches into the sink as they arrive.

    After a failure the thread keeps draining ``frames_in`` until the stop
    token so the producer never blocks on a full queue.
    """

    def _run():
        written = 0
        last_progress = 0.0
        total_frames = None
        perf.start()

        while True:
            item = frames_in.get()
            if item is stop_token:
                frames_in.task_done()
                break

            if errors.failed:
                frames_in.task_done()
                continue

            batch: FrameBatch = item
            if total_frames is None:
                total_frames = batch.total_frames
            try:
                for frame in batch.frames:
                    sink.write(frame)
                    written += 1
                    perf.tick(1)

                    if cfg.verbose and total_frames:
                        now = time.perf_counter()
                        if now - last_progress >= 0.25 or written == total_frames:
                            print(f"\r{format_progress(written, total_frames, perf)}", end="", flush=True)
                            last_progress = now
            except Exception as exc:
                errors.set(exc)
            finally:
                frames_in.task_done()

        perf.stop()
        if cfg.verbose and written:
            print()
            print(f"📼 Encoder: {written} frames | avg {perf.avg_fps():.1f} fps | RAM ≈ {ram_mb():.0f} MB")

    t = threading.Thread(target=_run, name="encoder_sink", daemon=True)
    t.start()
    return t
