import threading


class RenderError(Exception):
    """Base class for every failure raised by the render core."""


class MalformedAudioError(RenderError):
    """PCM byte length or container header does not match the stated format."""


class IncompatibleAudioFormatError(RenderError):
    """Scenes in one batch disagree on sample rate or channel count."""


class ImageLoadError(RenderError):
    """A scene image could not be rasterized."""


class EncoderUnavailableError(RenderError):
    """Neither the requested codec nor its fallback is available."""


class SinkFailure(RenderError):
    """The encoder or muxer failed while the job was running.

    ``progress`` keeps the last progress message reported before the failure.
    """

    def __init__(self, message: str, progress: str | None = None):
        super().__init__(message)
        self.progress = progress

    def __str__(self):
        base = super().__str__()
        if self.progress:
            return f"{base} (last progress: {self.progress})"
        return base


class EmptyJobError(RenderError):
    """A job or concatenation batch contains no scenes."""


class SceneContractError(RenderError):
    """A scene violates its caller contract, e.g. duration != audio duration."""


class JobCancelled(RenderError):
    """The job was cancelled between scenes or frame batches."""


class ErrorSlot:
    """First failure raised by a pipeline stage thread, re-raised on the caller."""

    def __init__(self):
        self._lock = threading.Lock()
        self._exc: BaseException | None = None

    def set(self, exc: BaseException):
        with self._lock:
            if self._exc is None:
                self._exc = exc

    @property
    def failed(self) -> bool:
        return self._exc is not None

    def raise_if_set(self, progress: str | None = None):
        exc = self._exc
        if exc is None:
            return
        if isinstance(exc, SinkFailure) and exc.progress is None:
            exc.progress = progress
        raise exc
