"""The load run loop: generate load, measure, redraw."""

import logging
import threading
import time
from collections.abc import Callable

from cpuload.errors import MeasurementError
from cpuload.load import SLICE_SECONDS, apply_load
from cpuload.models import DeviationLog, RunConfig, RunState, RunSummary
from cpuload.renderer import Display, Renderer
from cpuload.sampler import Sampler

log = logging.getLogger(__name__)


class LoadController:
    """
    Drives a single load run from IDLE to COMPLETED (or ABORTED).

    Any Display works: the terminal Renderer or the dashboard's QueueDisplay.
    """

    def __init__(
        self,
        config: RunConfig,
        sampler: Sampler | None = None,
        display: Display | None = None,
        *,
        slice_seconds: float = SLICE_SECONDS,
        clock: Callable[[], float] = time.monotonic,
        load: Callable[[float, float], None] = apply_load,
    ) -> None:
        self._config = config.validate()
        self._sampler = sampler if sampler is not None else Sampler()
        self._display = display if display is not None else Renderer()
        self._slice_seconds = slice_seconds
        self._clock = clock
        self._load = load
        self._state = RunState.IDLE
        self._deviations = DeviationLog()

    @property
    def config(self) -> RunConfig:
        return self._config

    @property
    def state(self) -> RunState:
        return self._state

    @property
    def deviations(self) -> DeviationLog:
        return self._deviations

    def _summary(self) -> RunSummary:
        return RunSummary.from_log(self._state, self._config, self._deviations)

    def run(self, stop_event: threading.Event | None = None) -> RunSummary:
        """
        Run the load test to completion.

        Args:
            stop_event: Optional event that cancels the run when set.

        Returns:
            The final summary.

        Raises:
            MeasurementError: if the tick source fails; the run is ABORTED
                and nothing is rendered after the failure.
        """
        if self._state is not RunState.IDLE:
            raise RuntimeError(f"Run already {self._state.value}")

        config = self._config
        self._state = RunState.RUNNING
        log.info(
            "Starting load run: target=%d%% duration=%ds",
            config.target_percent,
            config.duration_seconds,
        )

        try:
            # Baseline reading, then one slice so the first delta is meaningful
            self._sampler.measure()
            self._load(0, self._slice_seconds)
            self._display.start(config)

            start = self._clock()
            last_render = None
            while (now := self._clock()) - start < config.duration_seconds:
                if stop_event is not None and stop_event.is_set():
                    self._state = RunState.CANCELLED
                    log.info("Load run cancelled after %.1fs", now - start)
                    summary = self._summary()
                    self._display.cancel(summary)
                    return summary

                self._load(config.target_percent, self._slice_seconds)
                measured = self._sampler.measure()
                self._deviations.append(measured - config.target_percent)

                if last_render is None or now - last_render >= config.update_interval:
                    self._display.render(
                        measured, now - start, config, self._deviations
                    )
                    last_render = now

            measured = self._sampler.measure()
            self._display.render(
                measured, float(config.duration_seconds), config, self._deviations
            )
        except MeasurementError as e:
            self._state = RunState.ABORTED
            log.error("Load run aborted: %s", e)
            self._display.abort(e)
            raise

        self._state = RunState.COMPLETED
        summary = self._summary()
        log.info(
            "Load run completed: samples=%d avg=%.2f max=%.2f",
            summary.samples,
            summary.avg_deviation,
            summary.max_deviation,
        )
        self._display.finish(summary)
        return summary
