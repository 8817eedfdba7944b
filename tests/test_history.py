"""Tests for the history window and statistics."""

from __future__ import annotations

import pytest

from portwatch.history import HISTORY_SIZE, HistoryWindow, Statistics, compute_statistics
from portwatch.sampler import Sample


def _sample(cpu: float = 0.0, mem: int = 0, ts: float = 0.0) -> Sample:
    return Sample(timestamp=ts, cpu_percent=cpu, memory_bytes=mem)


# ── HistoryWindow ─────────────────────────────────────────────────────────


class TestHistoryWindow:
    def test_starts_empty(self) -> None:
        window = HistoryWindow()
        assert len(window) == 0
        assert window.values() == ()

    def test_never_exceeds_capacity(self) -> None:
        window = HistoryWindow()
        for i in range(200):
            window.push(_sample(cpu=float(i)))
            assert len(window) <= HISTORY_SIZE
        assert len(window) == HISTORY_SIZE

    def test_evicts_oldest_after_61_pushes(self) -> None:
        window = HistoryWindow()
        for i in range(61):
            window.push(_sample(cpu=float(i)))
        cpus = [s.cpu_percent for s in window.values()]
        assert 0.0 not in cpus
        assert cpus[0] == 1.0
        assert cpus[-1] == 60.0

    def test_values_chronological(self) -> None:
        window = HistoryWindow(capacity=5)
        for i in range(3):
            window.push(_sample(ts=float(i)))
        assert [s.timestamp for s in window.values()] == [0.0, 1.0, 2.0]

    def test_values_restartable(self) -> None:
        window = HistoryWindow()
        window.push(_sample(cpu=1.0))
        window.push(_sample(cpu=2.0))
        values = window.values()
        assert list(values) == list(values)

    def test_values_unaffected_by_later_push(self) -> None:
        window = HistoryWindow()
        window.push(_sample(cpu=1.0))
        values = window.values()
        window.push(_sample(cpu=2.0))
        assert len(values) == 1

    def test_recent(self) -> None:
        window = HistoryWindow()
        for i in range(10):
            window.push(_sample(cpu=float(i)))
        assert [s.cpu_percent for s in window.recent(3)] == [7.0, 8.0, 9.0]
        assert len(window.recent(50)) == 10
        assert window.recent(0) == []


# ── compute_statistics ────────────────────────────────────────────────────


class TestComputeStatistics:
    def test_empty_window_is_zero(self) -> None:
        assert compute_statistics([]) == Statistics(0.0, 0.0, 0.0, 0)

    def test_single_sample(self) -> None:
        stats = compute_statistics([_sample(cpu=12.5, mem=4_000_000)])
        assert stats.average_cpu == pytest.approx(12.5)
        assert stats.peak_cpu == 12.5
        assert stats.average_memory == pytest.approx(4_000_000)
        assert stats.peak_memory == 4_000_000

    @pytest.mark.parametrize(
        "cpus",
        [
            [1.0, 2.0, 3.0],
            [0.0, 0.0, 0.0, 0.0],
            [99.9, 0.1, 42.0, 7.5, 300.0],
            [5.29],
        ],
    )
    def test_average_and_peak(self, cpus: list[float]) -> None:
        samples = [_sample(cpu=c, mem=int(c * 1000)) for c in cpus]
        stats = compute_statistics(samples)
        assert stats.average_cpu == pytest.approx(sum(cpus) / len(cpus))
        assert stats.peak_cpu == max(cpus)
        assert all(stats.peak_cpu >= c for c in cpus)

    def test_metrics_independent(self) -> None:
        samples = [_sample(cpu=90.0, mem=1), _sample(cpu=10.0, mem=1_000_000_000)]
        stats = compute_statistics(samples)
        assert stats.peak_cpu == 90.0
        assert stats.peak_memory == 1_000_000_000
        assert stats.average_cpu == pytest.approx(50.0)
        assert stats.average_memory == pytest.approx(500_000_000.5)

    def test_over_full_window(self) -> None:
        window = HistoryWindow()
        for i in range(100):
            window.push(_sample(cpu=float(i)))
        stats = compute_statistics(window.values())
        # Window holds 40..99
        assert stats.average_cpu == pytest.approx(sum(range(40, 100)) / 60)
        assert stats.peak_cpu == 99.0

    def test_accepts_generator(self) -> None:
        stats = compute_statistics(_sample(cpu=float(c)) for c in (2, 4))
        assert stats.average_cpu == pytest.approx(3.0)
