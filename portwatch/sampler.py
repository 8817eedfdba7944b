"""CPU and memory sampling for a single process."""

from __future__ import annotations

import logging
import os
import time
from dataclasses import dataclass

import psutil

from portwatch.errors import MeasurementTransientError, ProcessGoneError

logger = logging.getLogger(__name__)

DEFAULT_SETTLE = 0.2  # seconds between the two CPU-time reads
_NPROC: int = os.cpu_count() or 1


@dataclass(frozen=True)
class Sample:
    """One CPU/memory measurement of the monitored process."""

    timestamp: float  # wall clock, seconds since the epoch
    cpu_percent: float
    memory_bytes: int


def cpu_ceiling(clamp: str, nproc: int = _NPROC) -> float:
    """Highest CPU percentage a sample may report for the given clamp mode."""
    if clamp == "single":
        return 100.0
    return 100.0 * max(nproc, 1)


def cpu_percent_between(
    cpu_before: float,
    cpu_after: float,
    wall_elapsed: float,
    ceiling: float,
) -> float:
    """Convert a CPU-time delta over a wall-time delta into a clamped percentage."""
    if wall_elapsed <= 0:
        return 0.0
    pct = (cpu_after - cpu_before) / wall_elapsed * 100.0
    return min(max(pct, 0.0), ceiling)


class Sampler:
    """Takes CPU and RSS readings for one PID.

    A CPU percentage needs two reads of cumulative CPU time, so every call to
    :meth:`sample` blocks for ``settle`` seconds. Run it off the input thread.
    """

    def __init__(self, pid: int, settle: float = DEFAULT_SETTLE, clamp: str = "cores") -> None:
        self.pid = pid
        self.settle = settle
        self.ceiling = cpu_ceiling(clamp)
        self._proc: psutil.Process | None = None

    def _process(self) -> psutil.Process:
        if self._proc is None:
            try:
                self._proc = psutil.Process(self.pid)
            except psutil.NoSuchProcess as e:
                raise ProcessGoneError(self.pid) from e
        return self._proc

    def describe(self) -> str:
        """Return the process name, confirming the PID still resolves."""
        proc = self._process()
        try:
            return proc.name()
        except psutil.NoSuchProcess as e:
            raise ProcessGoneError(self.pid) from e
        except psutil.AccessDenied:
            return f"pid {self.pid}"

    def _cpu_time(self, proc: psutil.Process) -> float:
        times = proc.cpu_times()
        return times.user + times.system

    def sample(self) -> Sample:
        """Measure CPU over the settle window and RSS at its end."""
        proc = self._process()
        try:
            # is_running() compares create_time, so a recycled PID reads as gone
            if not proc.is_running():
                raise ProcessGoneError(self.pid)
            cpu_before = self._cpu_time(proc)
            wall_before = time.monotonic()
            time.sleep(self.settle)
            cpu_after = self._cpu_time(proc)
            wall_after = time.monotonic()
            rss = proc.memory_info().rss
            # An exited but unreaped process still answers the reads above
            if proc.status() == psutil.STATUS_ZOMBIE:
                raise ProcessGoneError(self.pid)
        except psutil.NoSuchProcess as e:
            raise ProcessGoneError(self.pid) from e
        except (psutil.AccessDenied, OSError) as e:
            raise MeasurementTransientError(f"could not read process {self.pid}: {e}") from e

        cpu = cpu_percent_between(cpu_before, cpu_after, wall_after - wall_before, self.ceiling)
        logger.debug("pid %d: cpu %.2f%% rss %d bytes", self.pid, cpu, rss)
        return Sample(timestamp=time.time(), cpu_percent=cpu, memory_bytes=max(int(rss), 0))
