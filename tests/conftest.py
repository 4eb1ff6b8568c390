"""Shared fixtures for cpuload tests."""

import pytest

from cpuload.errors import MeasurementError
from cpuload.models import CpuSample

STAT_CONTENT = (
    "cpu  4705 356 584 3699176 23 0 17 0 0 0\n"
    "cpu0 1393280 32966 572056 13343292 6130 0 17875 0 0 0\n"
    "intr 1462898\n"
)


class FakeSource:
    """Tick source returning canned samples; raises once exhausted or at ``fail_at``."""

    def __init__(self, samples: list[CpuSample], fail_at: int | None = None) -> None:
        self.samples = list(samples)
        self.fail_at = fail_at
        self.reads = 0

    def read(self) -> CpuSample:
        index = self.reads
        self.reads += 1
        if self.fail_at is not None and index >= self.fail_at:
            raise MeasurementError("simulated read failure")
        if index >= len(self.samples):
            return self.samples[-1]
        return self.samples[index]


class FakeClock:
    """Manually advanced clock."""

    def __init__(self, now: float = 0.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class RecordingDisplay:
    """Display that records every call made by the controller."""

    def __init__(self) -> None:
        self.events: list[tuple] = []

    def start(self, config) -> None:
        self.events.append(("start", config))

    def render(self, measured, elapsed, config, deviations) -> None:
        self.events.append(("render", measured, elapsed, len(deviations)))

    def finish(self, summary) -> None:
        self.events.append(("finish", summary))

    def cancel(self, summary) -> None:
        self.events.append(("cancel", summary))

    def abort(self, error) -> None:
        self.events.append(("abort", error))

    def names(self) -> list[str]:
        return [event[0] for event in self.events]

    def renders(self) -> list[tuple]:
        return [event for event in self.events if event[0] == "render"]


@pytest.fixture
def stat_file(tmp_path):
    """A static /proc/stat lookalike; deltas between reads are zero."""
    path = tmp_path / "stat"
    path.write_text(STAT_CONTENT)
    return path


@pytest.fixture
def fake_clock():
    return FakeClock()


@pytest.fixture
def display():
    return RecordingDisplay()


@pytest.fixture
def make_source():
    """Factory for FakeSource tick sources."""
    return FakeSource
