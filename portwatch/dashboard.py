"""Interactive terminal dashboard for --watch mode.

Hosts a ``MonitorLoop`` inside ``curses.wrapper`` so the terminal is put
back into its prior mode however the session ends. Frames come from
``portwatch.render`` as coloured segments and are copied to the screen here.
"""

from __future__ import annotations

import curses
import sys
from typing import Any

from portwatch.errors import TerminalUnavailableError
from portwatch.monitor import DEFAULT_MEMORY_SCALE, DEFAULT_POLL_SLICE, MonitorLoop, Outcome
from portwatch.render import (
    C_BLUE,
    C_CRITICAL,
    C_DIM,
    C_NORMAL,
    C_TITLE,
    C_WARNING,
    FRAME_WIDTH,
    Line,
)
from portwatch.sampler import Sampler

QUIT_KEYS = frozenset(ord(c) for c in "qQcC")

_BOLD_COLORS = {C_NORMAL, C_WARNING, C_CRITICAL, C_TITLE}


# ── Colour helpers ─────────────────────────────────────────────────────────


def _init_colors() -> None:
    curses.start_color()
    curses.use_default_colors()
    curses.init_pair(C_NORMAL, curses.COLOR_GREEN, -1)
    curses.init_pair(C_WARNING, curses.COLOR_YELLOW, -1)
    curses.init_pair(C_CRITICAL, curses.COLOR_RED, -1)
    curses.init_pair(C_TITLE, curses.COLOR_CYAN, -1)
    curses.init_pair(C_DIM, curses.COLOR_WHITE, -1)
    curses.init_pair(C_BLUE, curses.COLOR_BLUE, -1)


def _attr(color: int) -> int:
    attr = curses.color_pair(color)
    if color in _BOLD_COLORS:
        attr |= curses.A_BOLD
    return attr


def _safe(win: curses.window, *args: Any) -> None:
    """addstr wrapper that swallows out-of-bounds errors."""
    try:
        win.addstr(*args)
    except curses.error:
        pass


# ── Screen and input ───────────────────────────────────────────────────────


class CursesScreen:
    """Draws rendered frame lines onto a curses window."""

    def __init__(self, stdscr: curses.window) -> None:
        self._win = stdscr
        _init_colors()
        try:
            curses.curs_set(0)
        except curses.error:
            pass

    def draw(self, lines: list[Line]) -> None:
        self._win.erase()
        max_y, max_x = self._win.getmaxyx()
        need_y, need_x = len(lines) + 1, FRAME_WIDTH + 1
        if max_y < need_y or max_x < need_x:
            _safe(self._win, 0, 0, f"Terminal too small (need {need_x}x{need_y}+)")
            self._win.refresh()
            return

        for y, line in enumerate(lines):
            x = 0
            for text, color in line:
                if text:
                    _safe(self._win, y, x, text, _attr(color))
                x += len(text)
        self._win.refresh()


class InputWatcher:
    """Non-blocking quit-key detection on a curses window."""

    def __init__(self, stdscr: curses.window) -> None:
        self._win = stdscr

    def poll(self, timeout: float) -> bool:
        """Wait up to ``timeout`` seconds for a key; True if it asks to quit."""
        self._win.timeout(max(0, int(timeout * 1000)))
        key = self._win.getch()
        if key == -1:
            return False
        if key == curses.KEY_RESIZE:
            self._win.clear()
            return False
        return key in QUIT_KEYS


# ── Session ────────────────────────────────────────────────────────────────


def _watch_session(
    stdscr: curses.window,
    sampler: Sampler,
    port: int,
    interval: float,
    memory_scale: float,
    poll_slice: float,
) -> Outcome:
    loop = MonitorLoop(
        sampler,
        port,
        CursesScreen(stdscr),
        InputWatcher(stdscr),
        interval=interval,
        memory_scale=memory_scale,
        poll_slice=poll_slice,
    )
    return loop.run()


def run_watch(
    sampler: Sampler,
    port: int,
    interval: float = 1.0,
    memory_scale: float = DEFAULT_MEMORY_SCALE,
    poll_slice: float = DEFAULT_POLL_SLICE,
) -> Outcome:
    """Run a watch session in the current terminal and return how it ended.

    Raises:
        TerminalUnavailableError: stdin/stdout is not a TTY or curses
                                  cannot initialise the terminal.
    """
    if not (sys.stdin.isatty() and sys.stdout.isatty()):
        raise TerminalUnavailableError("--watch needs an interactive terminal")
    try:
        return curses.wrapper(
            _watch_session, sampler, port, interval, memory_scale, poll_slice
        )
    except curses.error as e:
        raise TerminalUnavailableError(f"cannot initialise terminal: {e}") from e
