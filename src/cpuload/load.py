"""Duty-cycle CPU load generation."""

import hashlib
import math
import time
from collections.abc import Callable

SLICE_SECONDS = 0.1

_SEED = b"cpuload-busy-work"


def busy_work() -> float:
    """One short, fixed-cost chunk of CPU-bound work with no I/O."""
    digest = _SEED
    for _ in range(20):
        digest = hashlib.sha256(digest).digest()

    result = 0.0
    for i in range(1, 50):
        x = i * 0.01
        result += math.sin(x) * math.cos(x) * math.sqrt(x)
    return result + digest[0]


def apply_load(
    target_percent: float,
    slice_seconds: float = SLICE_SECONDS,
    *,
    clock: Callable[[], float] = time.perf_counter,
    sleep: Callable[[float], None] = time.sleep,
) -> None:
    """
    Consume one time slice at the requested duty cycle.

    Busy for ``target_percent / 100 * slice_seconds`` and asleep for the
    rest of the slice. The wall clock is re-read after every chunk of work,
    so accuracy does not depend on machine speed.

    Args:
        target_percent: Requested utilization, 0-100.
        slice_seconds: Length of the slice. Default 100ms.
        clock: Monotonic clock in seconds.
        sleep: Blocking sleep function.
    """
    if target_percent <= 0:
        sleep(slice_seconds)
        return

    start = clock()
    work_end = start + min(target_percent, 100) / 100.0 * slice_seconds
    while clock() < work_end:
        busy_work()

    remaining = slice_seconds - (clock() - start)
    if remaining > 0:
        sleep(remaining)
