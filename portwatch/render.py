"""Dashboard frame composition: sparklines, progress bars and colour bands.

Everything here is pure. ``build_frame`` turns a sample history into a
``DashboardFrame`` and ``frame_lines`` lays it out as lines of
``(text, colour)`` segments. The curses layer only copies those segments
to the screen.
"""

from __future__ import annotations

import math
import time
from collections.abc import Sequence
from dataclasses import dataclass

from portwatch.history import Statistics
from portwatch.sampler import Sample

# ── Constants ──────────────────────────────────────────────────────────────

SPARK = "▁▂▃▄▅▆▇█"
SPARK_POINTS = 50
BAR_WIDTH = 40
BAR_FILL = "█"
BAR_EMPTY = "░"
FRAME_WIDTH = 64
MB = 1_000_000

QUIT_HINT = "q/c"

# Colour IDs, shared with the curses colour pairs in portwatch.dashboard
C_DEFAULT = 0
C_NORMAL = 1
C_WARNING = 2
C_CRITICAL = 3
C_TITLE = 4
C_DIM = 5
C_BLUE = 6

# (moderate, high) band starts; a value on a boundary takes the higher band
CPU_BANDS = (50.0, 80.0)
MEMORY_BANDS = (500 * MB, 1000 * MB)

Segment = tuple[str, int]
Line = list[Segment]


# ── Colour bands ───────────────────────────────────────────────────────────


def _severity_color(value: float, warn: float, crit: float) -> int:
    if value >= crit:
        return C_CRITICAL
    if value >= warn:
        return C_WARNING
    return C_NORMAL


def cpu_color(pct: float) -> int:
    return _severity_color(pct, *CPU_BANDS)


def memory_color(n_bytes: float) -> int:
    return _severity_color(n_bytes, *MEMORY_BANDS)


# ── Formatting helpers ─────────────────────────────────────────────────────


def fmt_mb(n: int | float) -> str:
    """Decimal megabytes with two places, e.g. ``42.07 MB``."""
    return f"{n / MB:.2f} MB"


def fmt_percent(pct: float) -> str:
    return f"{pct:.2f}%"


def fmt_interval(seconds: float) -> str:
    return f"{seconds:g}s"


def fmt_timestamp(ts: float) -> str:
    return time.strftime("%Y-%m-%d %H:%M:%S", time.localtime(ts))


# ── Sparklines ─────────────────────────────────────────────────────────────


def trend_levels(values: Sequence[float]) -> list[int]:
    """Bucket values into 0..7 using the min and max of ``values`` itself.

    A flat or single-value series maps entirely to level 0.
    """
    if not values:
        return []
    lo = min(values)
    hi = max(values)
    top = len(SPARK) - 1
    if hi == lo:
        return [0] * len(values)
    span = hi - lo
    return [max(0, min(top, int((v - lo) / span * top))) for v in values]


def sparkline(values: Sequence[float], points: int = SPARK_POINTS) -> str:
    """Glyph string for the newest ``points`` values, scaled locally."""
    recent = list(values)[-points:] if points > 0 else []
    return "".join(SPARK[level] for level in trend_levels(recent))


# ── Progress bars ──────────────────────────────────────────────────────────


@dataclass(frozen=True)
class Bar:
    filled: int
    color: int
    width: int = BAR_WIDTH

    @property
    def text(self) -> str:
        return BAR_FILL * self.filled + BAR_EMPTY * (self.width - self.filled)


def progress_bar(value: float, scale_max: float, color: int, width: int = BAR_WIDTH) -> Bar:
    """Fill ``value / scale_max * width`` cells, halves rounded up, clamped to the bar."""
    if scale_max <= 0:
        filled = 0
    else:
        filled = math.floor(value / scale_max * width + 0.5)
    return Bar(filled=max(0, min(width, filled)), color=color, width=width)


# ── Frame ──────────────────────────────────────────────────────────────────


@dataclass(frozen=True)
class DashboardFrame:
    """Everything one dashboard refresh shows."""

    process_name: str
    pid: int
    port: int
    timestamp: float
    sample_count: int
    latest: Sample
    stats: Statistics
    cpu_sparkline: str
    memory_sparkline: str
    cpu_bar: Bar
    memory_bar: Bar
    skipped: int = 0


def build_frame(
    process_name: str,
    pid: int,
    port: int,
    recent: Sequence[Sample],
    stats: Statistics,
    sample_count: int,
    memory_scale: float,
    skipped: int = 0,
) -> DashboardFrame:
    """Project the newest samples and their statistics into a frame.

    ``recent`` must hold at least one sample; its last entry is the current one.
    """
    latest = recent[-1]
    return DashboardFrame(
        process_name=process_name,
        pid=pid,
        port=port,
        timestamp=latest.timestamp,
        sample_count=sample_count,
        latest=latest,
        stats=stats,
        cpu_sparkline=sparkline([s.cpu_percent for s in recent]),
        memory_sparkline=sparkline([s.memory_bytes for s in recent]),
        cpu_bar=progress_bar(latest.cpu_percent, 100.0, cpu_color(latest.cpu_percent)),
        memory_bar=progress_bar(
            latest.memory_bytes, memory_scale, memory_color(latest.memory_bytes)
        ),
        skipped=skipped,
    )


def _field(label: str, value: str, color: int = C_DEFAULT) -> Line:
    return [(f" {label:<10s}", C_DIM), (value, color)]


def _metric_block(
    title: str,
    current: str,
    average: str,
    peak: str,
    bar: Bar,
    spark: str,
) -> list[Line]:
    return [
        [(f" {title}", C_TITLE)],
        [
            ("   Current ", C_DIM),
            (current, bar.color),
            ("   Avg ", C_DIM),
            (average, C_DEFAULT),
            ("   Peak ", C_DIM),
            (peak, C_DEFAULT),
        ],
        [
            ("   ", C_DEFAULT),
            (BAR_FILL * bar.filled, bar.color),
            (BAR_EMPTY * (bar.width - bar.filled), C_DIM),
        ],
        [("   Trend   ", C_DIM), (spark, C_BLUE)],
    ]


def frame_lines(frame: DashboardFrame, interval: float) -> list[Line]:
    """Lay a frame out as screen lines, top to bottom."""
    inner = FRAME_WIDTH - 2
    title = f" portwatch · port {frame.port}"
    samples = str(frame.sample_count)
    if frame.skipped:
        samples += f" ({frame.skipped} skipped)"

    lines: list[Line] = [
        [("╭" + "─" * inner + "╮", C_TITLE)],
        [("│", C_TITLE), (title[:inner].ljust(inner), C_TITLE), ("│", C_TITLE)],
        [("╰" + "─" * inner + "╯", C_TITLE)],
        [],
        _field("Process", frame.process_name),
        _field("PID", str(frame.pid)),
        _field("Port", str(frame.port)),
        _field("Time", fmt_timestamp(frame.timestamp)),
        _field("Samples", samples),
        [],
    ]
    lines += _metric_block(
        "CPU",
        fmt_percent(frame.latest.cpu_percent),
        fmt_percent(frame.stats.average_cpu),
        fmt_percent(frame.stats.peak_cpu),
        frame.cpu_bar,
        frame.cpu_sparkline,
    )
    lines.append([])
    lines += _metric_block(
        "Memory",
        fmt_mb(frame.latest.memory_bytes),
        fmt_mb(frame.stats.average_memory),
        fmt_mb(frame.stats.peak_memory),
        frame.memory_bar,
        frame.memory_sparkline,
    )
    lines.append([])
    lines.append(
        [(f" {QUIT_HINT}: quit   refresh every {fmt_interval(interval)}", C_DIM)]
    )
    return lines


def line_text(line: Line) -> str:
    return "".join(text for text, _ in line)
