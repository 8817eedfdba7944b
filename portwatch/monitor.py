"""Watch-mode tick loop.

Each tick samples the process on a worker thread while the loop keeps
polling for the quit key. It then folds the sample into the history window,
renders a frame, and waits out the rest of the interval, still polling.
All session state lives on the ``MonitorLoop`` instance and only the loop
thread touches it.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeout
from dataclasses import dataclass
from enum import Enum
from typing import Protocol

from portwatch.errors import MeasurementTransientError, ProcessGoneError
from portwatch.history import HistoryWindow, Statistics, compute_statistics
from portwatch.render import (
    C_DIM,
    MB,
    SPARK_POINTS,
    DashboardFrame,
    Line,
    build_frame,
    frame_lines,
)
from portwatch.sampler import Sample

logger = logging.getLogger(__name__)

DEFAULT_POLL_SLICE = 0.1
DEFAULT_MEMORY_SCALE = 2000 * MB


class State(Enum):
    INIT = "init"
    SAMPLING = "sampling"
    AGGREGATING = "aggregating"
    RENDERING = "rendering"
    AWAITING_INPUT = "awaiting_input"
    TERMINATING = "terminating"
    TERMINATED = "terminated"


class SampleSource(Protocol):
    pid: int

    def describe(self) -> str: ...

    def sample(self) -> Sample: ...


class Screen(Protocol):
    def draw(self, lines: list[Line]) -> None: ...


class QuitWatcher(Protocol):
    def poll(self, timeout: float) -> bool: ...


@dataclass(frozen=True)
class Outcome:
    """How a watch session ended."""

    exit_code: int
    message: str
    samples: int


class MonitorLoop:
    """Drives one watch session from ``Init`` to ``Terminated``."""

    def __init__(
        self,
        sampler: SampleSource,
        port: int,
        screen: Screen,
        watcher: QuitWatcher,
        interval: float = 1.0,
        memory_scale: float = DEFAULT_MEMORY_SCALE,
        poll_slice: float = DEFAULT_POLL_SLICE,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.sampler = sampler
        self.port = port
        self.interval = interval
        self.memory_scale = memory_scale
        self.poll_slice = poll_slice
        self._screen = screen
        self._watcher = watcher
        self._clock = clock

        self.state = State.INIT
        self.process_name = ""
        self.history = HistoryWindow()
        self.stats = Statistics()
        self.frame: DashboardFrame | None = None
        self.sample_count = 0
        self.skipped = 0
        self.outcome: Outcome | None = None

        self._pending: Sample | None = None
        self._tick_started = 0.0
        self._executor: ThreadPoolExecutor | None = None
        self._handlers: dict[State, Callable[[], State]] = {
            State.INIT: self._init,
            State.SAMPLING: self._sampling,
            State.AGGREGATING: self._aggregating,
            State.RENDERING: self._rendering,
            State.AWAITING_INPUT: self._awaiting_input,
            State.TERMINATING: self._terminating,
        }

    def run(self) -> Outcome:
        """Run ticks until the user quits or the process goes away."""
        with ThreadPoolExecutor(max_workers=1, thread_name_prefix="portwatch-sampler") as pool:
            self._executor = pool
            try:
                while self.state is not State.TERMINATED:
                    self.state = self._handlers[self.state]()
            except KeyboardInterrupt:
                self._stop(0, "stopped by user")
                self.state = self._terminating()
            finally:
                self._executor = None

        if self.outcome is None:
            raise RuntimeError("monitor loop ended without an outcome")
        return self.outcome

    def _stop(self, exit_code: int, message: str) -> State:
        if self.outcome is None:
            self.outcome = Outcome(exit_code=exit_code, message=message, samples=self.sample_count)
        return State.TERMINATING

    # ── States ────────────────────────────────────────────────────────────

    def _init(self) -> State:
        try:
            self.process_name = self.sampler.describe()
        except ProcessGoneError as e:
            return self._stop(1, str(e))
        logger.info(
            "watching port %d (pid %d, %s) every %ss",
            self.port,
            self.sampler.pid,
            self.process_name,
            self.interval,
        )
        return State.SAMPLING

    def _sampling(self) -> State:
        if self._executor is None:
            raise RuntimeError("sampling outside MonitorLoop.run()")
        self._tick_started = self._clock()
        future = self._executor.submit(self.sampler.sample)
        try:
            while True:
                if self._watcher.poll(0):
                    # The in-flight measurement finishes; its result is dropped.
                    future.exception()
                    return self._stop(0, "stopped by user")
                try:
                    self._pending = future.result(timeout=self.poll_slice)
                    break
                except FutureTimeout:
                    continue
        except ProcessGoneError as e:
            logger.info("tick %d: %s", self.sample_count + 1, e)
            return self._stop(1, str(e))
        except MeasurementTransientError as e:
            self.skipped += 1
            logger.warning("skipping tick: %s", e)
            if self.frame is None:
                self._screen.draw([[(f" Waiting for a readable sample: {e}", C_DIM)]])
            return State.AWAITING_INPUT
        return State.AGGREGATING

    def _aggregating(self) -> State:
        sample, self._pending = self._pending, None
        if sample is None:
            raise RuntimeError("aggregating without a pending sample")
        self.history.push(sample)
        self.sample_count += 1
        self.stats = compute_statistics(self.history.values())
        return State.RENDERING

    def _rendering(self) -> State:
        self.frame = build_frame(
            self.process_name,
            self.sampler.pid,
            self.port,
            self.history.recent(SPARK_POINTS),
            self.stats,
            self.sample_count,
            self.memory_scale,
            skipped=self.skipped,
        )
        self._screen.draw(frame_lines(self.frame, self.interval))
        return State.AWAITING_INPUT

    def _awaiting_input(self) -> State:
        deadline = self._tick_started + self.interval
        while True:
            remaining = deadline - self._clock()
            if self._watcher.poll(min(self.poll_slice, max(remaining, 0.0))):
                return self._stop(0, "stopped by user")
            if deadline - self._clock() <= 0:
                logger.debug("tick %d done", self.sample_count)
                return State.SAMPLING

    def _terminating(self) -> State:
        if self._executor is not None:
            self._executor.shutdown(wait=True)
        message = self.outcome.message if self.outcome is not None else ""
        logger.info("session ended after %d sample(s): %s", self.sample_count, message)
        return State.TERMINATED
