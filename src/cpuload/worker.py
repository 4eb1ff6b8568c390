"""Background load run feeding the dashboard."""

import logging
import threading
from dataclasses import dataclass
from queue import Queue

from cpuload.controller import LoadController
from cpuload.errors import MeasurementError
from cpuload.models import DeviationLog, RunConfig, RunSummary
from cpuload.renderer import DeviationBand, classify_deviation, progress_fraction
from cpuload.sampler import ProcStatSource, PsutilSource, Sampler

log = logging.getLogger(__name__)


@dataclass(slots=True, frozen=True)
class LoadSnapshot:
    """One live measurement of a running load test."""

    measured: float
    target_percent: int
    elapsed: float
    duration_seconds: int
    max_deviation: float
    avg_deviation: float
    samples: int
    min_deviation: float = 0.0

    @property
    def deviation(self) -> float:
        return self.measured - self.target_percent

    @property
    def band(self) -> DeviationBand:
        return classify_deviation(self.deviation)

    @property
    def progress(self) -> float:
        return progress_fraction(self.elapsed, self.duration_seconds)

    @property
    def remaining(self) -> float:
        return max(0.0, self.duration_seconds - self.elapsed)


WorkerUpdate = LoadSnapshot | RunSummary | MeasurementError


class QueueDisplay:
    """Display that forwards run events into a thread-safe Queue."""

    def __init__(self, update_queue: Queue[WorkerUpdate]) -> None:
        self._queue = update_queue

    def start(self, config: RunConfig) -> None:
        pass

    def render(
        self,
        measured: float,
        elapsed: float,
        config: RunConfig,
        deviations: DeviationLog,
    ) -> None:
        self._queue.put(
            LoadSnapshot(
                measured=measured,
                target_percent=config.target_percent,
                elapsed=elapsed,
                duration_seconds=config.duration_seconds,
                max_deviation=deviations.maximum,
                avg_deviation=deviations.average,
                samples=len(deviations),
                min_deviation=deviations.minimum,
            )
        )

    def finish(self, summary: RunSummary) -> None:
        self._queue.put(summary)

    def cancel(self, summary: RunSummary) -> None:
        self._queue.put(summary)

    def abort(self, error: MeasurementError) -> None:
        self._queue.put(error)


class LoadWorker:
    """
    Runs a LoadController in a separate daemon thread.

    Every display update, the final summary or a measurement failure is
    pushed to the given Queue for the UI thread to pick up.
    """

    def __init__(
        self,
        update_queue: Queue[WorkerUpdate],
        config: RunConfig,
        source: ProcStatSource | PsutilSource | None = None,
    ) -> None:
        """
        Initialize the LoadWorker.

        Args:
            update_queue: Thread-safe queue to push updates to.
            config: Validated run configuration.
            source: Tick-counter source. Default reads /proc/stat.
        """
        self._queue = update_queue
        self._config = config.validate()
        self._source = source
        self._stop_event = threading.Event()
        self._thread: threading.Thread | None = None
        self._controller: LoadController | None = None

    @property
    def config(self) -> RunConfig:
        return self._config

    @property
    def controller(self) -> LoadController | None:
        return self._controller

    @property
    def is_running(self) -> bool:
        """Check if the worker thread is running."""
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        """Start the load run thread."""
        if self.is_running:
            return

        self._stop_event.clear()
        self._controller = LoadController(
            self._config,
            Sampler(self._source),
            QueueDisplay(self._queue),
        )
        self._thread = threading.Thread(
            target=self._run,
            daemon=True,
            name="LoadWorker",
        )
        self._thread.start()

    def stop(self, timeout: float | None = 5.0) -> None:
        """
        Stop the load run thread.

        Args:
            timeout: How long to wait for thread to stop (seconds).
        """
        self._stop_event.set()
        if self._thread is not None:
            self._thread.join(timeout=timeout)
            self._thread = None

    def _run(self) -> None:
        try:
            self._controller.run(self._stop_event)
        except MeasurementError:
            # Already forwarded to the queue by QueueDisplay.abort
            log.debug("Worker stopped after measurement failure", exc_info=True)
