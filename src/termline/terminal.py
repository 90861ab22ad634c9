"""Terminal mode control: raw/cooked state, size and capability queries.

On Unix the state is the ``termios`` attribute list of the descriptor; on
Windows it is the console mode word of the descriptor's handle.
"""

from __future__ import annotations

import logging
import os
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Iterator

from termline.errors import TerminalStateError

IS_WINDOWS = os.name == "nt"

if not IS_WINDOWS:
    import termios
    import tty

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Windows console mode flags
# ---------------------------------------------------------------------------

_ENABLE_PROCESSED_INPUT = 0x0001
_ENABLE_LINE_INPUT = 0x0002
_ENABLE_ECHO_INPUT = 0x0004
_ENABLE_VIRTUAL_TERMINAL_PROCESSING = 0x0004


@dataclass
class TerminalState:
    """Saved terminal state.

    ``value`` is a ``termios`` attribute list on Unix and a console mode
    integer on Windows.
    """

    value: list | int


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def is_terminal(fd: int) -> bool:
    """Return True if *fd* refers to a terminal."""
    if IS_WINDOWS:
        return _win_get_console_mode(fd) is not None
    try:
        termios.tcgetattr(fd)
    except (termios.error, OSError, ValueError):
        return False
    return True


def is_ansi_terminal(fd: int) -> bool:
    """Return True if *fd* is a terminal that understands ANSI sequences.

    On Windows virtual terminal processing is switched on when the console
    supports it but has it disabled.
    """
    if IS_WINDOWS:
        return _win_enable_virtual_terminal(fd)
    return is_terminal(fd) and os.environ.get("TERM") != "dumb"


def get_size(fd: int) -> tuple[int, int]:
    """Return ``(columns, rows)`` of the terminal behind *fd*."""
    try:
        size = os.get_terminal_size(fd)
    except (ValueError, OSError) as e:
        raise TerminalStateError(f"cannot query terminal size: {e}") from e
    return size.columns, size.lines


def get_state(fd: int) -> TerminalState:
    """Return the current state of the terminal behind *fd*."""
    if IS_WINDOWS:
        mode = _win_get_console_mode(fd)
        if mode is None:
            raise TerminalStateError(f"cannot get console mode of fd {fd}")
        return TerminalState(mode)
    try:
        return TerminalState(termios.tcgetattr(fd))
    except (termios.error, OSError, ValueError) as e:
        raise TerminalStateError(f"cannot get terminal attributes: {e}") from e


def set_state(fd: int, state: TerminalState) -> None:
    """Restore a state previously returned by :func:`get_state` or :func:`make_raw`."""
    if IS_WINDOWS:
        if not _win_set_console_mode(fd, state.value):
            raise TerminalStateError(f"cannot set console mode of fd {fd}")
        return
    try:
        termios.tcsetattr(fd, termios.TCSADRAIN, state.value)
    except (termios.error, OSError, ValueError) as e:
        raise TerminalStateError(f"cannot set terminal attributes: {e}") from e


def make_raw(fd: int) -> TerminalState:
    """Put the terminal into raw mode and return the state it was in before."""
    previous = get_state(fd)
    if IS_WINDOWS:
        mode = previous.value & ~(
            _ENABLE_PROCESSED_INPUT | _ENABLE_LINE_INPUT | _ENABLE_ECHO_INPUT
        )
        set_state(fd, TerminalState(mode))
        return previous
    try:
        tty.setraw(fd, termios.TCSADRAIN)
    except (termios.error, OSError, ValueError) as e:
        raise TerminalStateError(f"cannot enter raw mode: {e}") from e
    return previous


@contextmanager
def raw_mode(fd: int) -> Iterator[TerminalState]:
    """Hold the terminal in raw mode for the duration of the block.

    The saved state is restored on every exit path.
    """
    previous = make_raw(fd)
    logger.debug("entered raw mode on fd %d", fd)
    try:
        yield previous
    finally:
        set_state(fd, previous)
        logger.debug("restored terminal state on fd %d", fd)


# ---------------------------------------------------------------------------
# Windows helpers
# ---------------------------------------------------------------------------


def _win_handle(fd: int) -> int | None:
    import msvcrt

    try:
        return msvcrt.get_osfhandle(fd)
    except OSError:
        return None


def _win_get_console_mode(fd: int) -> int | None:
    import ctypes
    from ctypes import wintypes

    handle = _win_handle(fd)
    if handle is None:
        return None
    mode = wintypes.DWORD()
    if not ctypes.windll.kernel32.GetConsoleMode(handle, ctypes.byref(mode)):
        return None
    return mode.value


def _win_set_console_mode(fd: int, mode: int) -> bool:
    import ctypes

    handle = _win_handle(fd)
    if handle is None:
        return False
    return bool(ctypes.windll.kernel32.SetConsoleMode(handle, mode))


def _win_enable_virtual_terminal(fd: int) -> bool:
    mode = _win_get_console_mode(fd)
    if mode is None:
        return False
    if mode & _ENABLE_VIRTUAL_TERMINAL_PROCESSING:
        return True
    if not _win_set_console_mode(fd, mode | _ENABLE_VIRTUAL_TERMINAL_PROCESSING):
        return False
    mode = _win_get_console_mode(fd)
    return mode is not None and bool(mode & _ENABLE_VIRTUAL_TERMINAL_PROCESSING)
