"""Tests for the core data types and configuration."""

import dataclasses

import numpy as np
import pytest

from storyreel.config import AppConfig
from storyreel.errors import MalformedAudioError, SceneContractError
from storyreel.types import AudioBuffer, EncodedArtifact, RenderJob, Scene

from conftest import solid_image, tone


class TestAudioBuffer:
    """Tests for AudioBuffer."""

    def test_duration(self):
        buf = AudioBuffer(sample_rate=24000, samples=np.zeros((1, 36000)))
        assert buf.duration == 1.5
        assert buf.samples.dtype == np.float32

    def test_immutable(self):
        buf = AudioBuffer.silence(0.1)
        with pytest.raises(dataclasses.FrozenInstanceError):
            buf.sample_rate = 48000
        with pytest.raises(ValueError):
            buf.samples[0, 0] = 1.0

    def test_does_not_alias_input(self):
        raw = np.zeros((1, 10), dtype=np.float32)
        buf = AudioBuffer(sample_rate=24000, samples=raw)
        raw[0, 0] = 0.9
        assert buf.samples[0, 0] == 0.0

    def test_mono_vector_promoted(self):
        buf = AudioBuffer(sample_rate=24000, samples=np.zeros(5))
        assert buf.channel_count == 1
        assert buf.frame_count == 5

    def test_bad_shape(self):
        with pytest.raises(ValueError):
            AudioBuffer(sample_rate=24000, samples=np.zeros((1, 2, 3)))


class TestScene:
    """Tests for Scene contracts."""

    def test_duration_must_match_audio(self):
        with pytest.raises(SceneContractError):
            Scene(id="a", image=solid_image(), script="x", duration=0.9, audio=tone(1.0))

    def test_needs_audio(self):
        with pytest.raises(SceneContractError):
            Scene(id="a", image=solid_image(), script="x", duration=1.0)

    def test_from_pcm_decoded(self):
        scene = Scene.from_pcm("a", solid_image(), "hello", bytes(24000 * 2))
        assert scene.duration == 1.0
        assert scene.audio.frame_count == 24000
        assert not scene.audio_is_stale

    def test_from_pcm_lazy(self):
        scene = Scene.from_pcm("a", solid_image(), "hello", bytes(12000), decode=False)
        assert scene.audio is None
        assert scene.duration == 0.25

    def test_from_pcm_malformed(self):
        with pytest.raises(MalformedAudioError):
            Scene.from_pcm("a", solid_image(), "hello", bytes(3))

    def test_stale_audio_after_script_edit(self):
        scene = Scene.from_pcm("a", solid_image(), "hello", bytes(480))
        scene.script = "hello again"
        assert scene.audio_is_stale


class TestRenderJob:
    """Tests for RenderJob progress and cancellation."""

    def test_report_keeps_last_message(self):
        seen = []
        job = RenderJob(scenes=[], on_progress=seen.append)
        job.report("one")
        job.report("two")
        assert seen == ["one", "two"]
        assert job.last_progress == "two"

    def test_defaults(self):
        job = RenderJob(scenes=[])
        assert (job.video.w, job.video.h, job.video.fps) == (1920, 1080, 30)
        assert job.video.video_bitrate == "2500k"
        assert not job.cancelled


class TestEncodedArtifact:
    """Tests for EncodedArtifact."""

    def test_mime_from_container(self):
        assert EncodedArtifact(b"x", "webm").mime_type == "video/webm"
        wav = EncodedArtifact(b"x", "wav")
        assert wav.mime_type == "audio/wav"
        assert not wav.is_video

    def test_save(self, tmp_path):
        path = EncodedArtifact(b"abc", "wav").save(tmp_path / "out" / "a.wav")
        assert path.read_bytes() == b"abc"


class TestConfig:
    """Tests for AppConfig."""

    def test_default_validates(self):
        cfg = AppConfig.default()
        cfg.validate()
        assert cfg.paths.out_video.endswith(".webm")
        assert cfg.audio.sample_rate == 24000

    def test_odd_size_rejected(self):
        cfg = AppConfig.default()
        cfg.video.w = 1921
        with pytest.raises(AssertionError):
            cfg.validate()
