"""Rolling sample history and the statistics derived from it."""

from __future__ import annotations

from collections import deque
from collections.abc import Iterable
from dataclasses import dataclass

from portwatch.sampler import Sample

HISTORY_SIZE = 60


class HistoryWindow:
    """Fixed-capacity FIFO of the most recent samples, oldest first."""

    def __init__(self, capacity: int = HISTORY_SIZE) -> None:
        self.capacity = capacity
        self._samples: deque[Sample] = deque(maxlen=capacity)

    def push(self, sample: Sample) -> None:
        self._samples.append(sample)

    def values(self) -> tuple[Sample, ...]:
        """Current contents in chronological order."""
        return tuple(self._samples)

    def recent(self, n: int) -> list[Sample]:
        """The newest ``n`` samples (fewer if the window is shorter), oldest first."""
        if n <= 0:
            return []
        return list(self._samples)[-n:]

    def __len__(self) -> int:
        return len(self._samples)


@dataclass(frozen=True)
class Statistics:
    average_cpu: float = 0.0
    average_memory: float = 0.0
    peak_cpu: float = 0.0
    peak_memory: int = 0


def compute_statistics(samples: Iterable[Sample]) -> Statistics:
    """Average and peak of each metric over ``samples``; zeros when empty."""
    count = 0
    cpu_total = 0.0
    mem_total = 0
    cpu_peak = 0.0
    mem_peak = 0
    for s in samples:
        count += 1
        cpu_total += s.cpu_percent
        mem_total += s.memory_bytes
        if count == 1 or s.cpu_percent > cpu_peak:
            cpu_peak = s.cpu_percent
        if count == 1 or s.memory_bytes > mem_peak:
            mem_peak = s.memory_bytes

    if count == 0:
        return Statistics()
    return Statistics(
        average_cpu=cpu_total / count,
        average_memory=mem_total / count,
        peak_cpu=cpu_peak,
        peak_memory=mem_peak,
    )
