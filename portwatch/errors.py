"""Error types raised by portwatch.

Fatal errors end the session with a one-line diagnosis and a non-zero exit.
``MeasurementTransientError`` only skips the current tick.
"""

from __future__ import annotations


class PortwatchError(Exception):
    """Base class for every error portwatch reports to the user."""


class ProcessGoneError(PortwatchError):
    """The monitored process no longer exists."""

    def __init__(self, pid: int) -> None:
        super().__init__(f"process {pid} is no longer running")
        self.pid = pid


class MeasurementTransientError(PortwatchError):
    """A single read failed but the process is still there."""


class TerminalUnavailableError(PortwatchError):
    """Watch mode needs an interactive terminal and none is available."""


class PortLookupError(PortwatchError):
    """No process could be resolved for the requested port."""


class InsightError(PortwatchError):
    """The insight provider failed to produce text."""
