"""Tests for termline.terminal -- terminal state control on Unix."""

from __future__ import annotations

import os

import pytest

from termline.errors import TerminalStateError
from termline.terminal import (
    IS_WINDOWS,
    get_size,
    get_state,
    is_ansi_terminal,
    is_terminal,
    make_raw,
    raw_mode,
    set_state,
)

pytestmark = pytest.mark.skipif(IS_WINDOWS, reason="termios tests")


@pytest.fixture
def pipe_fd():
    r, w = os.pipe()
    yield r
    os.close(r)
    os.close(w)


@pytest.fixture
def pty_fd():
    try:
        master, slave = os.openpty()
    except OSError:
        pytest.skip("no pseudo terminal available")
    yield slave
    os.close(slave)
    os.close(master)


class TestNotATerminal:
    def test_pipe_is_not_a_terminal(self, pipe_fd: int) -> None:
        assert not is_terminal(pipe_fd)
        assert not is_ansi_terminal(pipe_fd)

    def test_get_state_fails(self, pipe_fd: int) -> None:
        with pytest.raises(TerminalStateError):
            get_state(pipe_fd)

    def test_make_raw_fails(self, pipe_fd: int) -> None:
        with pytest.raises(TerminalStateError):
            make_raw(pipe_fd)

    def test_raw_mode_fails_before_entering(self, pipe_fd: int) -> None:
        entered = False
        with pytest.raises(TerminalStateError):
            with raw_mode(pipe_fd):
                entered = True
        assert not entered

    def test_get_size_fails(self, pipe_fd: int) -> None:
        with pytest.raises(TerminalStateError):
            get_size(pipe_fd)

    def test_errors_are_os_errors(self, pipe_fd: int) -> None:
        with pytest.raises(OSError):
            get_state(pipe_fd)


class TestPseudoTerminal:
    def test_is_terminal(self, pty_fd: int) -> None:
        assert is_terminal(pty_fd)

    def test_ansi_depends_on_term(self, pty_fd: int, monkeypatch) -> None:
        monkeypatch.setenv("TERM", "xterm-256color")
        assert is_ansi_terminal(pty_fd)
        monkeypatch.setenv("TERM", "dumb")
        assert not is_ansi_terminal(pty_fd)

    def test_make_raw_returns_previous_state(self, pty_fd: int) -> None:
        before = get_state(pty_fd)
        previous = make_raw(pty_fd)
        try:
            assert previous == before
            assert get_state(pty_fd) != before
        finally:
            set_state(pty_fd, previous)
        assert get_state(pty_fd) == before

    def test_raw_mode_restores_state(self, pty_fd: int) -> None:
        before = get_state(pty_fd)
        with raw_mode(pty_fd) as previous:
            assert previous == before
            assert get_state(pty_fd) != before
        assert get_state(pty_fd) == before

    def test_raw_mode_restores_state_on_error(self, pty_fd: int) -> None:
        before = get_state(pty_fd)
        with pytest.raises(RuntimeError):
            with raw_mode(pty_fd):
                raise RuntimeError("boom")
        assert get_state(pty_fd) == before

    def test_get_size(self, pty_fd: int) -> None:
        columns, rows = get_size(pty_fd)
        assert columns >= 0
        assert rows >= 0
