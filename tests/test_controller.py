"""Tests for the LoadController run loop."""

import threading

import pytest

from cpuload.controller import LoadController
from cpuload.errors import ConfigurationError, MeasurementError
from cpuload.models import CpuSample, RunConfig, RunState
from cpuload.renderer import progress_fraction
from cpuload.sampler import Sampler

SLICE = 0.25


def ticks(busy: int, idle: int) -> CpuSample:
    return CpuSample(busy_ticks=busy, idle_ticks=idle)


@pytest.fixture
def config():
    return RunConfig(target_percent=70, duration_seconds=1, bar_length=10, update_interval=0.15)


def make_controller(config, source, display, clock, **kwargs):
    loads: list[tuple[float, float]] = kwargs.pop("loads", [])

    def fake_load(target: float, slice_seconds: float) -> None:
        loads.append((target, slice_seconds))
        clock.advance(slice_seconds)

    return LoadController(
        config,
        Sampler(source),
        display,
        slice_seconds=SLICE,
        clock=clock,
        load=fake_load,
        **kwargs,
    )


def steady_source(make_source, busy_step: int, idle_step: int, count: int = 20):
    return make_source([ticks(busy_step * i, idle_step * i) for i in range(count)])


class TestLoadController:
    """Tests for a complete run."""

    def test_initial_state(self, config, make_source, display, fake_clock):
        """Test a new controller is IDLE with an empty log."""
        controller = make_controller(config, make_source([ticks(0, 0)]), display, fake_clock)

        assert controller.state is RunState.IDLE
        assert len(controller.deviations) == 0
        assert controller.config is config

    def test_invalid_config_rejected(self, make_source, display, fake_clock):
        """Test the controller validates its configuration up front."""
        with pytest.raises(ConfigurationError):
            make_controller(
                RunConfig(target_percent=120), make_source([ticks(0, 0)]), display, fake_clock
            )

    def test_run_completes(self, config, make_source, display, fake_clock):
        """Test a run goes through start, renders and finish."""
        loads: list[tuple[float, float]] = []
        source = steady_source(make_source, 70, 30)
        controller = make_controller(config, source, display, fake_clock, loads=loads)

        summary = controller.run()

        assert controller.state is RunState.COMPLETED
        assert summary.state is RunState.COMPLETED
        assert display.names()[0] == "start"
        assert display.names()[-1] == "finish"
        # baseline idle slice, then four slices of 0.25s in one second
        assert loads == [(0, SLICE)] + [(70, SLICE)] * 4
        # baseline + one read per slice + final read
        assert source.reads == 6

    def test_measured_values_and_log(self, config, make_source, display, fake_clock):
        """Test each slice's measurement and deviation are recorded."""
        source = steady_source(make_source, 70, 30)
        controller = make_controller(config, source, display, fake_clock)

        summary = controller.run()

        assert len(controller.deviations) == 4
        assert controller.deviations.values == pytest.approx([0.0] * 4)
        assert summary.samples == 4
        assert summary.max_deviation == pytest.approx(0.0)
        for _, measured, _, _ in display.renders():
            assert measured == pytest.approx(70.0)

    def test_statistics(self, config, make_source, display, fake_clock):
        """Test summary statistics come from the whole deviation log."""
        source = make_source(
            [
                ticks(0, 0),
                ticks(60, 40),  # 60%
                ticks(140, 60),  # 80%
                ticks(215, 85),  # 75%
                ticks(280, 120),  # 65%
                ticks(350, 150),  # 70%, final
            ]
        )
        controller = make_controller(config, source, display, fake_clock)

        summary = controller.run()

        assert summary.max_deviation == pytest.approx(10.0)
        assert summary.min_deviation == pytest.approx(5.0)
        assert summary.avg_deviation == pytest.approx(7.5)

    def test_renders_respect_update_interval(self, make_source, display, fake_clock):
        """Test renders are skipped until the update interval has passed."""
        config = RunConfig(target_percent=50, duration_seconds=2, bar_length=10, update_interval=0.6)
        controller = make_controller(config, steady_source(make_source, 1, 1), display, fake_clock)

        controller.run()

        elapsed = [event[2] for event in display.renders()]
        # iterations at 0, .25, ... 1.75; renders at 0, .75, 1.5 plus the final one
        assert elapsed == [0.0, 0.75, 1.5, 2.0]
        assert len(controller.deviations) == 8

    def test_progress_reaches_one(self, config, make_source, display, fake_clock):
        """Test rendered progress is monotonic and ends at exactly 100%."""
        controller = make_controller(config, steady_source(make_source, 1, 1), display, fake_clock)

        controller.run()

        fractions = [
            progress_fraction(event[2], config.duration_seconds) for event in display.renders()
        ]
        assert fractions == sorted(fractions)
        assert fractions[-1] == 1.0

    def test_run_only_once(self, config, make_source, display, fake_clock):
        """Test a finished controller cannot be run again."""
        controller = make_controller(config, steady_source(make_source, 1, 1), display, fake_clock)
        controller.run()

        with pytest.raises(RuntimeError):
            controller.run()


class TestLoadControllerFailures:
    """Tests for aborted and cancelled runs."""

    def test_measurement_failure_aborts(self, config, make_source, display, fake_clock):
        """Test a source failure aborts with no renders after it."""
        # baseline and first slice succeed, second slice fails
        source = make_source([ticks(0, 0), ticks(70, 30)], fail_at=2)
        controller = make_controller(config, source, display, fake_clock)

        with pytest.raises(MeasurementError):
            controller.run()

        assert controller.state is RunState.ABORTED
        assert display.names() == ["start", "render", "abort"]
        assert isinstance(display.events[-1][1], MeasurementError)
        assert source.reads == 3

    def test_baseline_failure_aborts_before_start(self, config, make_source, display, fake_clock):
        """Test a source missing from the outset never draws the live block."""
        controller = make_controller(config, make_source([ticks(0, 0)], fail_at=0), display, fake_clock)

        with pytest.raises(MeasurementError):
            controller.run()

        assert controller.state is RunState.ABORTED
        assert display.names() == ["abort"]

    def test_final_measure_failure_aborts(self, config, make_source, display, fake_clock):
        """Test the forced final measurement failing also aborts."""
        source = make_source([ticks(i, i) for i in range(5)], fail_at=5)
        controller = make_controller(config, source, display, fake_clock)

        with pytest.raises(MeasurementError):
            controller.run()

        assert controller.state is RunState.ABORTED
        assert display.names()[-1] == "abort"
        assert "finish" not in display.names()

    def test_stop_event_cancels(self, config, make_source, display, fake_clock):
        """Test a set stop event ends the run as CANCELLED."""
        stop_event = threading.Event()
        stop_event.set()
        controller = make_controller(config, steady_source(make_source, 1, 1), display, fake_clock)

        summary = controller.run(stop_event)

        assert summary.state is RunState.CANCELLED
        assert controller.state is RunState.CANCELLED
        assert display.names() == ["start", "cancel"]
