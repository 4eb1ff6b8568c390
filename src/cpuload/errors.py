"""Exceptions raised by cpuload."""


class CpuLoadError(Exception):
    """Base class for all cpuload errors."""


class ConfigurationError(CpuLoadError):
    """A run configuration value is out of range."""

    def __init__(self, field: str, message: str) -> None:
        super().__init__(message)
        self.field = field


class MeasurementError(CpuLoadError):
    """The CPU tick-counter source is missing, unreadable or malformed."""
