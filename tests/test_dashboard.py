"""Tests for the curses layer: screen drawing, quit keys, session setup."""

from __future__ import annotations

import curses
from unittest.mock import MagicMock, patch

import pytest

from portwatch.dashboard import CursesScreen, InputWatcher, _watch_session, run_watch
from portwatch.errors import TerminalUnavailableError
from portwatch.monitor import Outcome
from portwatch.render import C_DIM, C_NORMAL, FRAME_WIDTH, MB
from portwatch.sampler import Sample

# ── InputWatcher ──────────────────────────────────────────────────────────


@pytest.mark.parametrize("key", ["q", "Q", "c", "C"])
def test_quit_keys(key: str) -> None:
    win = MagicMock()
    win.getch.return_value = ord(key)
    assert InputWatcher(win).poll(0.1) is True


@pytest.mark.parametrize("key", [ord("x"), ord(" "), ord("1"), 27])
def test_other_keys_ignored(key: int) -> None:
    win = MagicMock()
    win.getch.return_value = key
    assert InputWatcher(win).poll(0.1) is False


def test_no_key() -> None:
    win = MagicMock()
    win.getch.return_value = -1
    assert InputWatcher(win).poll(0.1) is False


def test_poll_timeout_in_milliseconds() -> None:
    win = MagicMock()
    win.getch.return_value = -1
    watcher = InputWatcher(win)
    watcher.poll(0.1)
    win.timeout.assert_called_with(100)
    watcher.poll(0)
    win.timeout.assert_called_with(0)


def test_resize_clears_and_continues() -> None:
    win = MagicMock()
    win.getch.return_value = curses.KEY_RESIZE
    assert InputWatcher(win).poll(0.1) is False
    win.clear.assert_called_once()


# ── CursesScreen ──────────────────────────────────────────────────────────


@pytest.fixture
def curses_stubs():
    with (
        patch("portwatch.dashboard._init_colors"),
        patch("portwatch.dashboard.curses.curs_set"),
        patch("portwatch.dashboard.curses.color_pair", return_value=0),
    ):
        yield


@pytest.mark.usefixtures("curses_stubs")
class TestCursesScreen:
    def test_draws_segments_left_to_right(self) -> None:
        win = MagicMock()
        win.getmaxyx.return_value = (40, 120)
        screen = CursesScreen(win)

        screen.draw([[("ab", C_DIM), ("cde", C_NORMAL)], [], [("x", C_DIM)]])

        calls = [c.args for c in win.addstr.call_args_list]
        assert [(y, x, text) for y, x, text, _ in calls] == [(0, 0, "ab"), (0, 2, "cde"), (2, 0, "x")]
        win.erase.assert_called_once()
        win.refresh.assert_called_once()

    def test_too_small_terminal(self) -> None:
        win = MagicMock()
        win.getmaxyx.return_value = (10, 40)
        screen = CursesScreen(win)

        screen.draw([[("row", C_DIM)]] * 20)

        text = win.addstr.call_args.args[2]
        assert text.startswith("Terminal too small")
        assert str(FRAME_WIDTH + 1) in text

    def test_addstr_errors_swallowed(self) -> None:
        win = MagicMock()
        win.getmaxyx.return_value = (40, 120)
        win.addstr.side_effect = curses.error
        CursesScreen(win).draw([[("edge", C_DIM)]])
        win.refresh.assert_called_once()


# ── Session ───────────────────────────────────────────────────────────────


@pytest.mark.usefixtures("curses_stubs")
def test_watch_session_quits_on_key() -> None:
    win = MagicMock()
    win.getmaxyx.return_value = (40, 120)
    win.getch.return_value = ord("q")
    sampler = MagicMock()
    sampler.pid = 4242
    sampler.describe.return_value = "node"
    sampler.sample.return_value = Sample(0.0, 1.0, 1_000_000)

    outcome = _watch_session(win, sampler, 3000, 1.0, 2000 * MB, 0.1)

    assert outcome.exit_code == 0


class TestRunWatch:
    @patch("portwatch.dashboard.sys")
    def test_requires_tty(self, mock_sys: MagicMock) -> None:
        mock_sys.stdin.isatty.return_value = False
        mock_sys.stdout.isatty.return_value = True
        with pytest.raises(TerminalUnavailableError):
            run_watch(MagicMock(), 3000)

    @patch("portwatch.dashboard.curses.wrapper", side_effect=curses.error("setupterm"))
    @patch("portwatch.dashboard.sys")
    def test_curses_init_failure(self, mock_sys: MagicMock, mock_wrapper: MagicMock) -> None:
        mock_sys.stdin.isatty.return_value = True
        mock_sys.stdout.isatty.return_value = True
        with pytest.raises(TerminalUnavailableError, match="setupterm"):
            run_watch(MagicMock(), 3000)

    @patch("portwatch.dashboard.curses.wrapper")
    @patch("portwatch.dashboard.sys")
    def test_runs_session_inside_wrapper(
        self, mock_sys: MagicMock, mock_wrapper: MagicMock
    ) -> None:
        mock_sys.stdin.isatty.return_value = True
        mock_sys.stdout.isatty.return_value = True
        mock_wrapper.return_value = Outcome(0, "stopped by user", 3)
        sampler = MagicMock()

        outcome = run_watch(sampler, 3000, interval=2.0, memory_scale=MB, poll_slice=0.05)

        assert outcome.samples == 3
        mock_wrapper.assert_called_once_with(_watch_session, sampler, 3000, 2.0, MB, 0.05)
