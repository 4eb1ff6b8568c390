"""cpuload - Textual dashboard for a running load test."""

from collections import deque
from queue import Empty, Queue

from rich.markup import escape
from textual.app import App, ComposeResult
from textual.containers import Container
from textual.widgets import DataTable, Footer, Static

from cpuload.errors import MeasurementError
from cpuload.models import RunConfig, RunState, RunSummary
from cpuload.renderer import DeviationBand, deviation_indicator, filled_cells
from cpuload.sampler import ProcStatSource, PsutilSource
from cpuload.worker import LoadSnapshot, LoadWorker, WorkerUpdate

BAND_MARKUP = {
    DeviationBand.IN_RANGE: "green",
    DeviationBand.MODERATE: "yellow",
    DeviationBand.SEVERE: "bold red",
}

BAR_WIDTH = 40


def markup_bar(fraction: float, color: str, width: int = BAR_WIDTH) -> str:
    """Rich markup bar with ``fraction`` of ``width`` cells filled."""
    filled = filled_cells(fraction, width)
    return f"[{color}]" + "█" * filled + f"[/{color}][dim]" + "░" * (width - filled) + "[/dim]"


class LoadStats(Static):
    """Widget showing the live load bar, progress and deviation statistics."""

    DEFAULT_CSS = """
    LoadStats {
        height: auto;
        min-height: 6;
        padding: 1;
        background: $surface;
    }
    """

    def __init__(self, config: RunConfig, *args, **kwargs) -> None:
        """Initialize LoadStats."""
        super().__init__(*args, **kwargs)
        self._latest: LoadSnapshot | None = None
        self._status_text = f"Target: {config.target_percent}% CPU for {config.duration_seconds} seconds"

    @property
    def latest(self) -> LoadSnapshot | None:
        return self._latest

    @property
    def status_text(self) -> str:
        return self._status_text

    def on_mount(self) -> None:
        self.update(self._stats_markup())

    def update_snapshot(self, snapshot: LoadSnapshot) -> None:
        self._latest = snapshot
        self.update(self._stats_markup())

    def set_status(self, status: str) -> None:
        self._status_text = status
        self.update(self._stats_markup())

    def _stats_markup(self) -> str:
        snapshot = self._latest
        if snapshot is None:
            return f"{self._status_text}\n\nCPU Load: calculating..."

        color = BAND_MARKUP[snapshot.band]
        load_bar = markup_bar(snapshot.measured / 100.0, color)
        progress_bar = markup_bar(snapshot.progress, "cyan")
        indicator = deviation_indicator(snapshot.deviation)
        # Escaped brackets so Rich does not read them as tags
        return (
            f"{self._status_text}\n\n"
            f"CPU Load: \\[{load_bar}] {snapshot.measured:5.1f}% "
            f"(Dev: [{color}]{snapshot.deviation:+6.1f}%[/{color}]) "
            f"[{color}]\\{indicator}[/{color}]\n"
            f"Progress: \\[{progress_bar}] {round(snapshot.progress * 100):3d}%\n"
            f"Time Remaining: {snapshot.remaining:5.1f} seconds\n"
            f"Statistics: Max Deviation: {snapshot.max_deviation:5.1f}% "
            f"| Avg Deviation: {snapshot.avg_deviation:5.1f}% "
            f"| Min Deviation: {snapshot.min_deviation:5.1f}%"
        )


class SampleTable(Container):
    """Container for the table of recent measurements."""

    DEFAULT_CSS = """
    SampleTable {
        height: 1fr;
        border: solid $primary;
    }
    """

    MAX_ROWS = 50

    def __init__(self, *args, **kwargs) -> None:
        """Initialize SampleTable."""
        super().__init__(*args, **kwargs)
        self._recent: deque[LoadSnapshot] = deque(maxlen=self.MAX_ROWS)

    @property
    def row_count(self) -> int:
        return len(self._recent)

    def compose(self) -> ComposeResult:
        """Compose the sample table."""
        yield DataTable(id="sample-table")

    def on_mount(self) -> None:
        """Initialize the data table when mounted."""
        table = self.query_one("#sample-table", DataTable)
        table.cursor_type = "row"

        table.add_column("TIME", key="time", width=8)
        table.add_column("LOAD%", key="load", width=8)
        table.add_column("DEV%", key="dev", width=8)
        table.add_column("BAND", key="band", width=10)

    def add_snapshot(self, snapshot: LoadSnapshot) -> None:
        """Prepend a measurement, keeping only the most recent rows."""
        self._recent.appendleft(snapshot)
        table = self.query_one("#sample-table", DataTable)
        table.clear()
        for row in self._recent:
            table.add_row(
                f"{row.elapsed:6.1f}s",
                f"{row.measured:5.1f}",
                f"{row.deviation:+6.1f}",
                row.band.value,
            )


class CpuLoadApp(App):
    """Dashboard application for a load run."""

    TITLE = "cpuload"
    SUB_TITLE = "CPU Load Tester"

    CSS = """
    Screen {
        layout: vertical;
    }

    #load-stats {
        dock: top;
        height: auto;
        min-height: 8;
    }
    """

    BINDINGS = [
        ("q", "quit", "Quit"),
    ]

    def __init__(
        self,
        config: RunConfig,
        source: ProcStatSource | PsutilSource | None = None,
    ) -> None:
        """Initialize the CpuLoadApp."""
        super().__init__()
        self._run_config = config
        self._update_queue: Queue[WorkerUpdate] = Queue()
        self._load_worker = LoadWorker(self._update_queue, config, source)
        self._run_result: RunSummary | MeasurementError | None = None

    @property
    def result(self) -> RunSummary | MeasurementError | None:
        """Final summary or failure, once the run has ended."""
        return self._run_result

    def compose(self) -> ComposeResult:
        """Compose the application layout."""
        yield LoadStats(self._run_config, id="load-stats")
        yield SampleTable()
        yield Footer()

    def on_mount(self) -> None:
        """Start the load run when the app is mounted."""
        self._load_worker.start()
        self.set_interval(0.25, self._check_for_updates)

    def _check_for_updates(self) -> None:
        """Drain the queue and apply every update in order."""
        while True:
            try:
                update = self._update_queue.get_nowait()
            except Empty:
                break
            self.handle_update(update)

    def handle_update(self, update: WorkerUpdate) -> None:
        stats = self.query_one("#load-stats", LoadStats)
        if isinstance(update, LoadSnapshot):
            stats.update_snapshot(update)
            self.query_one(SampleTable).add_snapshot(update)
        elif isinstance(update, RunSummary):
            self._run_result = update
            if update.state is RunState.COMPLETED:
                stats.set_status(
                    f"Test completed. Avg Deviation: {update.avg_deviation:.2f}% "
                    f"| Max: {update.max_deviation:.2f}% | Min: {update.min_deviation:.2f}%"
                )
                self.notify("Test completed")
            else:
                stats.set_status("Test cancelled.")
        elif isinstance(update, MeasurementError):
            self._run_result = update
            stats.set_status(f"[bold red]Error reading CPU stats: {escape(str(update))}. Aborted.[/bold red]")
            self.notify("CPU stat read error", severity="error")

    def action_quit(self) -> None:
        """Handle quit action, stopping the load run first."""
        self._load_worker.stop()
        self.exit(self._run_result)


def run_dashboard(
    config: RunConfig,
    source: ProcStatSource | PsutilSource | None = None,
) -> RunSummary | MeasurementError | None:
    """Run the dashboard and return the run's final result."""
    app = CpuLoadApp(config, source)
    app.run()
    return app.result
