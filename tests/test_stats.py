"""Tests for frame pacing and progress formatting."""

import pytest

from storyreel import stats
from storyreel.stats import FramePacer, PerfCounter, format_progress, progress_bar


class FakeClock:
    def __init__(self):
        self.now = 100.0
        self.sleeps = []

    def perf_counter(self):
        return self.now

    def sleep(self, seconds):
        self.sleeps.append(seconds)
        self.now += seconds


@pytest.fixture
def clock(monkeypatch):
    c = FakeClock()
    monkeypatch.setattr(stats.time, "perf_counter", c.perf_counter)
    monkeypatch.setattr(stats.time, "sleep", c.sleep)
    return c


class TestFramePacer:
    """Tests for FramePacer."""

    def test_sleeps_until_each_deadline(self, clock):
        pacer = FramePacer(10, realtime=True)
        pacer.wait(0)
        assert clock.sleeps == []

        clock.now += 0.03
        pacer.wait(1)
        assert clock.sleeps == [pytest.approx(0.07)]

        pacer.wait(2)
        assert clock.sleeps[-1] == pytest.approx(0.1)
        assert clock.now == pytest.approx(100.2)

    def test_late_frame_does_not_sleep(self, clock):
        pacer = FramePacer(25, realtime=True)
        pacer.wait(0)
        clock.now += 1.0
        pacer.wait(5)
        assert clock.sleeps == []

    def test_offline_never_sleeps(self, clock):
        pacer = FramePacer(30, realtime=False)
        for idx in range(10):
            pacer.wait(idx)
        assert clock.sleeps == []


class TestProgress:
    """Tests for the progress line."""

    def test_bar_is_clamped(self):
        assert progress_bar(0.5, 10) == "#####-----"
        assert progress_bar(2.0, 4) == "####"
        assert progress_bar(-1.0, 4) == "----"

    def test_format_progress(self):
        line = format_progress(5, 10, PerfCounter(), width=10)
        assert "|#####-----|" in line
        assert "frames 5/10" in line
        assert " 50.0%" in line
