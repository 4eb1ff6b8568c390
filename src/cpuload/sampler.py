"""CPU utilization sampling from cumulative tick counters."""

import logging

import psutil

from cpuload.errors import MeasurementError
from cpuload.models import CpuSample, utilization

log = logging.getLogger(__name__)

PROC_STAT_PATH = "/proc/stat"

# label + user, nice, system, idle, iowait, irq, softirq
MIN_STAT_FIELDS = 8

# USER_HZ on practically every Linux build
TICKS_PER_SECOND = 100


def parse_stat_line(line: str) -> CpuSample:
    """
    Parse the aggregate ``cpu`` line of /proc/stat.

    Fields after softirq (steal, guest, guest_nice) are ignored.

    Raises:
        MeasurementError: if the label is not ``cpu`` or a field is missing
            or not numeric.
    """
    parts = line.split()
    if len(parts) < MIN_STAT_FIELDS or parts[0] != "cpu":
        raise MeasurementError(f"Unexpected CPU stat line: {line.strip()!r}")
    try:
        user, nice, system, idle, iowait, irq, softirq = (
            int(value) for value in parts[1:MIN_STAT_FIELDS]
        )
    except ValueError as e:
        raise MeasurementError(f"Non-numeric CPU stat field: {e}") from e

    return CpuSample(
        busy_ticks=user + nice + system + irq + softirq,
        idle_ticks=idle + iowait,
    )


class ProcStatSource:
    """Reads CPU tick counters from the Linux /proc/stat file."""

    def __init__(self, path: str = PROC_STAT_PATH) -> None:
        self.path = path

    def read(self) -> CpuSample:
        try:
            with open(self.path, encoding="ascii") as stat_file:
                first_line = stat_file.readline()
        except (OSError, UnicodeDecodeError) as e:
            raise MeasurementError(f"Cannot read {self.path}: {e}") from e
        return parse_stat_line(first_line)


class PsutilSource:
    """Reads CPU tick counters through psutil.cpu_times()."""

    def read(self) -> CpuSample:
        try:
            times = psutil.cpu_times()
        except (OSError, RuntimeError) as e:
            raise MeasurementError(f"psutil could not read CPU times: {e}") from e

        def ticks(name: str) -> int:
            # iowait, irq and softirq are not reported on every platform
            return round(getattr(times, name, 0.0) * TICKS_PER_SECOND)

        return CpuSample(
            busy_ticks=ticks("user")
            + ticks("nice")
            + ticks("system")
            + ticks("irq")
            + ticks("softirq"),
            idle_ticks=ticks("idle") + ticks("iowait"),
        )


class Sampler:
    """
    Turns a tick-counter source into utilization readings.

    Holds only the previous sample; each measurement replaces it.
    """

    def __init__(self, source: ProcStatSource | PsutilSource | None = None) -> None:
        self._source = source if source is not None else ProcStatSource()
        self._previous: CpuSample | None = None

    @property
    def has_baseline(self) -> bool:
        return self._previous is not None

    def measure(self) -> float:
        """
        Return CPU utilization since the previous call, in percent.

        The first call only records the baseline and returns 0.0.

        Raises:
            MeasurementError: propagated from the source.
        """
        current = self._source.read()
        previous, self._previous = self._previous, current
        if previous is None:
            log.debug("Baseline sample: %s", current)
            return 0.0
        return utilization(previous, current)
