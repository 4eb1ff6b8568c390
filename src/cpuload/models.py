"""Data models for cpuload."""

import math
from dataclasses import dataclass, field
from enum import Enum

from cpuload.errors import ConfigurationError

DEFAULT_TARGET_PERCENT = 50
DEFAULT_DURATION_SECONDS = 60
DEFAULT_BAR_LENGTH = 100
DEFAULT_UPDATE_INTERVAL = 0.15

MIN_DURATION_SECONDS = 1
MIN_BAR_LENGTH = 10
MIN_UPDATE_INTERVAL = 0.05


@dataclass(slots=True, frozen=True)
class CpuSample:
    """Cumulative CPU tick counters since boot."""

    busy_ticks: int  # user + nice + system + irq + softirq
    idle_ticks: int  # idle + iowait

    @property
    def total_ticks(self) -> int:
        return self.busy_ticks + self.idle_ticks


def utilization(previous: CpuSample, current: CpuSample) -> float:
    """
    Compute CPU utilization between two samples as a percentage.

    A non-positive total delta (counters reset or no time passed) yields 0.0.
    The result is clamped to [0.0, 100.0].
    """
    delta_total = current.total_ticks - previous.total_ticks
    if delta_total <= 0:
        return 0.0
    delta_idle = current.idle_ticks - previous.idle_ticks
    usage = 100.0 * (delta_total - delta_idle) / delta_total
    return max(0.0, min(100.0, usage))


@dataclass(slots=True, frozen=True)
class RunConfig:
    """Immutable configuration for a single load run."""

    target_percent: int = DEFAULT_TARGET_PERCENT
    duration_seconds: int = DEFAULT_DURATION_SECONDS
    bar_length: int = DEFAULT_BAR_LENGTH
    update_interval: float = DEFAULT_UPDATE_INTERVAL

    def validate(self) -> "RunConfig":
        """
        Check every field against its allowed range.

        Returns:
            The config itself, so construction and validation can be chained.

        Raises:
            ConfigurationError: naming the first invalid field.
        """
        if not 0 <= self.target_percent <= 100:
            raise ConfigurationError(
                "target_percent", "Target load must be between 0 and 100."
            )
        if not self.duration_seconds >= MIN_DURATION_SECONDS:
            raise ConfigurationError(
                "duration_seconds",
                f"Duration must be at least {MIN_DURATION_SECONDS} second.",
            )
        if not self.bar_length >= MIN_BAR_LENGTH:
            raise ConfigurationError(
                "bar_length", f"Bar length must be at least {MIN_BAR_LENGTH}."
            )
        if not (
            math.isfinite(self.update_interval)
            and self.update_interval >= MIN_UPDATE_INTERVAL
        ):
            raise ConfigurationError(
                "update_interval",
                f"Update interval must be at least {MIN_UPDATE_INTERVAL} seconds.",
            )
        return self


@dataclass(slots=True)
class DeviationLog:
    """Append-only record of absolute deviations from the target load."""

    values: list[float] = field(default_factory=list)

    def append(self, deviation: float) -> None:
        self.values.append(abs(deviation))

    def __len__(self) -> int:
        return len(self.values)

    @property
    def maximum(self) -> float:
        return max(self.values) if self.values else 0.0

    @property
    def minimum(self) -> float:
        return min(self.values) if self.values else 0.0

    @property
    def average(self) -> float:
        return sum(self.values) / len(self.values) if self.values else 0.0


class RunState(Enum):
    """Lifecycle states of a load run."""

    IDLE = "idle"
    RUNNING = "running"
    COMPLETED = "completed"
    ABORTED = "aborted"
    CANCELLED = "cancelled"


@dataclass(slots=True, frozen=True)
class RunSummary:
    """Final statistics of a load run."""

    state: RunState
    target_percent: int
    duration_seconds: int
    samples: int
    max_deviation: float
    min_deviation: float
    avg_deviation: float

    @classmethod
    def from_log(
        cls, state: RunState, config: RunConfig, log: DeviationLog
    ) -> "RunSummary":
        return cls(
            state=state,
            target_percent=config.target_percent,
            duration_seconds=config.duration_seconds,
            samples=len(log),
            max_deviation=log.maximum,
            min_deviation=log.minimum,
            avg_deviation=log.average,
        )
