"""Single-snapshot mode: one sample, printed as plain text.

Optionally adds a system overview and hands both to an insight provider.
A provider is any callable that takes the context text and returns prose.
The bundled ``CommandInsight`` pipes the context into a local command.
"""

from __future__ import annotations

import logging
import os
import shlex
import subprocess
import sys
from collections.abc import Callable
from dataclasses import dataclass

import psutil

from portwatch.errors import InsightError
from portwatch.render import fmt_mb, fmt_percent
from portwatch.sampler import Sample, Sampler

logger = logging.getLogger(__name__)

InsightProvider = Callable[[str], str]


@dataclass(frozen=True)
class SystemSnapshot:
    """Host-wide figures taken alongside the process sample."""

    cpu_percent: float
    load_avg: tuple[float, float, float]
    total_memory: int
    available_memory: int
    total_swap: int
    free_swap: int
    cpu_count: int
    process_count: int


def fmt_bytes(n: int | float) -> str:
    """Human-readable byte count (binary prefixes)."""
    v = float(n)
    for unit in ("B", "KiB", "MiB", "GiB"):
        if abs(v) < 1024:
            return f"{v:.1f} {unit}"
        v /= 1024
    return f"{v:.1f} TiB"


def _pct_of(part: float, whole: float) -> float:
    return part / whole * 100.0 if whole > 0 else 0.0


def collect_system_snapshot() -> SystemSnapshot:
    """Read host CPU, load, memory and process counts.

    The CPU figure covers the time since the previous ``psutil.cpu_percent``
    call, so prime it before the process sample's settle window.
    """
    ram = psutil.virtual_memory()
    swap = psutil.swap_memory()
    la = os.getloadavg()
    return SystemSnapshot(
        cpu_percent=psutil.cpu_percent(interval=None),
        load_avg=(la[0], la[1], la[2]),
        total_memory=ram.total,
        available_memory=ram.available,
        total_swap=swap.total,
        free_swap=swap.free,
        cpu_count=psutil.cpu_count() or 1,
        process_count=len(psutil.pids()),
    )


# ── Formatting ─────────────────────────────────────────────────────────────


def format_report(name: str, pid: int, port: int, sample: Sample) -> str:
    return (
        f"Port: {port} | PID: {pid} | {name}\n"
        f"CPU: {fmt_percent(sample.cpu_percent)} | Memory: {fmt_mb(sample.memory_bytes)}"
    )


def format_system(system: SystemSnapshot) -> str:
    la = system.load_avg
    lines = [
        f"  {'System CPU':12s}  {system.cpu_percent:.1f}%  ({system.cpu_count} cores)",
        f"  {'Load avg':12s}  {la[0]:.2f} / {la[1]:.2f} / {la[2]:.2f}",
        f"  {'Memory':12s}  {fmt_bytes(system.available_memory)} free of "
        f"{fmt_bytes(system.total_memory)} "
        f"({_pct_of(system.available_memory, system.total_memory):.1f}% free)",
        f"  {'Swap':12s}  {fmt_bytes(system.free_swap)} free of "
        f"{fmt_bytes(system.total_swap)} "
        f"({_pct_of(system.free_swap, system.total_swap):.1f}% free)",
        f"  {'Processes':12s}  {system.process_count}",
    ]
    return "\n".join(lines)


def format_insight_context(
    name: str,
    pid: int,
    port: int,
    sample: Sample,
    system: SystemSnapshot | None,
) -> str:
    """Plain-text description of the snapshot for an insight provider."""
    lines = [
        f"Port: {port}",
        f"Process Name: {name}",
        f"PID: {pid}",
        f"CPU Usage: {fmt_percent(sample.cpu_percent)} ({sample.cpu_percent / 100:.2f} cores)",
        f"Memory Usage: {fmt_mb(sample.memory_bytes)} ({sample.memory_bytes} bytes)",
    ]
    if system is not None:
        lines += [
            f"Global CPU Usage: {system.cpu_percent:.2f}%",
            f"Load Average: 1min={system.load_avg[0]:.2f}, "
            f"5min={system.load_avg[1]:.2f}, 15min={system.load_avg[2]:.2f}",
            f"Total Memory: {fmt_bytes(system.total_memory)}",
            f"Available Memory: {fmt_bytes(system.available_memory)}",
            f"Total Swap: {fmt_bytes(system.total_swap)}",
            f"Free Swap: {fmt_bytes(system.free_swap)}",
            f"CPU Cores: {system.cpu_count}",
            f"Active Processes: {system.process_count}",
        ]
    return "\n".join(lines) + "\n"


# ── Insight ────────────────────────────────────────────────────────────────


class CommandInsight:
    """Runs a local command with the context on stdin and returns its stdout."""

    def __init__(self, command: str, timeout: float = 60.0) -> None:
        self.argv = shlex.split(command)
        self.timeout = timeout

    def __call__(self, context: str) -> str:
        if not self.argv:
            raise InsightError("empty insight command")
        try:
            result = subprocess.run(
                self.argv,
                input=context,
                capture_output=True,
                text=True,
                timeout=self.timeout,
            )
        except FileNotFoundError as e:
            raise InsightError(f"command not found: {self.argv[0]}") from e
        except subprocess.TimeoutExpired as e:
            raise InsightError(f"{self.argv[0]} timed out after {self.timeout:g}s") from e

        if result.returncode != 0:
            detail = result.stderr.strip().splitlines()
            reason = detail[-1] if detail else f"exit status {result.returncode}"
            raise InsightError(f"{self.argv[0]} failed: {reason}")
        text = result.stdout.strip()
        if not text:
            raise InsightError(f"{self.argv[0]} produced no output")
        return text


# ── Entry ──────────────────────────────────────────────────────────────────


def run_snapshot(
    sampler: Sampler,
    port: int,
    show_system: bool = False,
    insight: InsightProvider | None = None,
) -> Sample:
    """Take one sample, print the report and return the sample.

    Raises:
        ProcessGoneError: The process exited before or during the reads.
        MeasurementTransientError: The process could not be read.
    """
    name = sampler.describe()
    want_system = show_system or insight is not None
    if want_system:
        psutil.cpu_percent(interval=None)
    sample = sampler.sample()
    system = collect_system_snapshot() if want_system else None

    print(format_report(name, sampler.pid, port, sample))
    if show_system and system is not None:
        print()
        print(format_system(system))

    if insight is not None:
        context = format_insight_context(name, sampler.pid, port, sample, system)
        try:
            text = insight(context)
        except InsightError as e:
            logger.debug("insight provider failed", exc_info=True)
            print(f"portwatch: warning: insight unavailable: {e}", file=sys.stderr)
        else:
            print()
            print(text)
    return sample
