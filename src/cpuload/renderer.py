"""In-place terminal display of a running load test."""

import sys
from enum import Enum
from typing import Protocol, TextIO, runtime_checkable

from cpuload import ansi
from cpuload.errors import MeasurementError
from cpuload.models import DeviationLog, RunConfig, RunSummary

FILLED = "█"
EMPTY = "░"

IN_RANGE_LIMIT = 5.0
MODERATE_LIMIT = 15.0


class DeviationBand(Enum):
    """How far the measured load is from the target."""

    IN_RANGE = "in range"
    MODERATE = "moderate"
    SEVERE = "severe"


def classify_deviation(deviation: float) -> DeviationBand:
    """Classify a (signed or absolute) deviation by its magnitude."""
    magnitude = abs(deviation)
    if magnitude <= IN_RANGE_LIMIT:
        return DeviationBand.IN_RANGE
    if magnitude <= MODERATE_LIMIT:
        return DeviationBand.MODERATE
    return DeviationBand.SEVERE


def deviation_indicator(deviation: float) -> str:
    """Short marker for the load line: [=], [+]/[-] or [++]/[--]."""
    band = classify_deviation(deviation)
    if band is DeviationBand.IN_RANGE:
        return "[=]"
    sign = "+" if deviation > 0 else "-"
    return f"[{sign * (2 if band is DeviationBand.SEVERE else 1)}]"


BAND_STYLES: dict[DeviationBand, tuple[str, ...]] = {
    DeviationBand.IN_RANGE: (ansi.GREEN,),
    DeviationBand.MODERATE: (ansi.YELLOW,),
    DeviationBand.SEVERE: (ansi.RED, ansi.BOLD),
}


def progress_fraction(elapsed: float, duration: float) -> float:
    """Fraction of the run completed, clamped to [0, 1]."""
    if duration <= 0:
        return 1.0
    return max(0.0, min(1.0, elapsed / duration))


def filled_cells(fraction: float, length: int) -> int:
    return max(0, min(length, round(fraction * length)))


def render_bar(fraction: float, length: int) -> str:
    """Render ``fraction`` of a bar ``length`` cells wide."""
    filled = filled_cells(fraction, length)
    return FILLED * filled + EMPTY * (length - filled)


@runtime_checkable
class Display(Protocol):
    """What the run loop needs from a live display."""

    def start(self, config: RunConfig) -> None: ...

    def render(
        self,
        measured: float,
        elapsed: float,
        config: RunConfig,
        deviations: DeviationLog,
    ) -> None: ...

    def finish(self, summary: RunSummary) -> None: ...

    def cancel(self, summary: RunSummary) -> None: ...

    def abort(self, error: MeasurementError) -> None: ...


class Renderer:
    """
    Redraws a fixed block of terminal lines in place.

    Remembers how many lines it last drew so every redraw moves the cursor
    up by exactly that amount before rewriting.
    """

    LIVE_LINES = 4

    def __init__(self, stream: TextIO | None = None, color: bool = True) -> None:
        self._stream = stream if stream is not None else sys.stdout
        self._color = color
        self._lines_drawn = 0
        self._cursor_hidden = False

    @property
    def lines_drawn(self) -> int:
        return self._lines_drawn

    def _style(self, text: str, *codes: str) -> str:
        return ansi.style(text, *codes, enabled=self._color)

    def _write_block(self, lines: list[str]) -> None:
        out = [ansi.cursor_up(self._lines_drawn)]
        for line in lines:
            out.append(ansi.CARRIAGE_RETURN + ansi.CLEAR_TO_EOL + line + "\n")
        self._stream.write("".join(out))
        self._stream.flush()
        self._lines_drawn = len(lines)

    def hide_cursor(self) -> None:
        self._stream.write(ansi.HIDE_CURSOR)
        self._stream.flush()
        self._cursor_hidden = True

    def show_cursor(self) -> None:
        if self._cursor_hidden:
            self._stream.write(ansi.SHOW_CURSOR)
            self._stream.flush()
            self._cursor_hidden = False

    def start(self, config: RunConfig) -> None:
        """Write the static header and placeholder lines, then hide the cursor."""
        self._stream.write("\n")
        self._stream.write(
            self._style(" Starting CPU Load Test ", ansi.bg256(24), ansi.fg256(231), ansi.BOLD) + "\n"
        )
        self._stream.write(
            self._style(
                f"Target: {config.target_percent}% CPU "
                f"for {config.duration_seconds} seconds",
                ansi.YELLOW,
            )
            + "\n\n"
        )
        self._lines_drawn = 0
        self._write_block(
            [
                "CPU Load: calculating...",
                "Progress: calculating...",
                "Time Remaining: calculating...",
                "Statistics: calculating...",
            ]
        )
        self.hide_cursor()

    def render(
        self,
        measured: float,
        elapsed: float,
        config: RunConfig,
        deviations: DeviationLog,
    ) -> None:
        """Redraw the live block for the latest measurement."""
        self._write_block(
            [
                self.load_line(measured, config),
                self.progress_line(elapsed, config),
                self.time_line(elapsed, config),
                self.stats_line(deviations),
            ]
        )

    def load_line(self, measured: float, config: RunConfig) -> str:
        deviation = measured - config.target_percent
        codes = BAND_STYLES[classify_deviation(deviation)]
        bar = self._style(render_bar(measured / 100.0, config.bar_length), *codes)
        return (
            f"CPU Load: [{bar}] {measured:5.1f}% "
            f"(Target: {config.target_percent:3d}%, "
            f"Dev: {self._style(f'{deviation:+6.1f}%', *codes)}) "
            f"{self._style(f'{deviation_indicator(deviation):<4}', *codes)}"
        )

    def progress_line(self, elapsed: float, config: RunConfig) -> str:
        fraction = progress_fraction(elapsed, config.duration_seconds)
        bar = self._style(render_bar(fraction, config.bar_length), ansi.CYAN)
        return f"Progress: [{bar}] {round(fraction * 100):3d}%"

    def time_line(self, elapsed: float, config: RunConfig) -> str:
        remaining = max(0.0, config.duration_seconds - elapsed)
        return f"Time Remaining: {remaining:5.1f} seconds"

    def stats_line(self, deviations: DeviationLog) -> str:
        return (
            f"Statistics: Max Deviation: {deviations.maximum:5.1f}% "
            f"| Avg Deviation: {deviations.average:5.1f}% "
            f"| Min Deviation: {deviations.minimum:5.1f}%"
        )

    def finish(self, summary: RunSummary) -> None:
        """Show the cursor again and print the final statistics."""
        self.show_cursor()
        self._stream.write("\n" + self._style("Test completed.", ansi.GREEN) + "\n")
        if summary.samples == 0:
            self._stream.write(
                self._style("No deviation data collected.", ansi.YELLOW) + "\n"
            )
        else:
            self._stream.write(
                self._style("Final Statistics:", ansi.GREEN)
                + "\n"
                + f" - Target Load:    {summary.target_percent:3d}%\n"
                + f" - Duration:       {summary.duration_seconds:3d} seconds\n"
                + f" - Avg Deviation:  {summary.avg_deviation:5.2f}%\n"
                + f" - Max Deviation:  {summary.max_deviation:5.2f}%\n"
                + f" - Min Deviation:  {summary.min_deviation:5.2f}%\n"
            )
        self._stream.write("\n")
        self._stream.flush()

    def abort(self, error: MeasurementError) -> None:
        """Report a fatal measurement failure below the live block."""
        self.show_cursor()
        self._stream.write(
            "\n"
            + self._style(
                f"Error reading CPU stats: {error}. Aborting.", ansi.RED, ansi.BOLD
            )
            + "\n"
        )
        self._stream.flush()

    def cancel(self, summary: RunSummary) -> None:
        self.show_cursor()
        self._stream.write("\n" + self._style("Test cancelled.", ansi.YELLOW) + "\n")
        self._stream.flush()
