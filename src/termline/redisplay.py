"""Redisplay strategies: bring the visible line in sync with the edit buffer.

Each strategy computes the output needed to move from what was last drawn
(tracked in :class:`RedisplayState`) to the new buffer and cursor, writes it,
and records what it drew. The ANSI strategy understands line wrapping; the
backspace strategy is for consoles without reliable cursor addressing.
"""

from __future__ import annotations

import logging
import sys
from dataclasses import dataclass
from typing import Callable, Protocol, Sequence, TextIO

from termline.errors import TerminalStateError
from termline.terminal import get_size

logger = logging.getLogger(__name__)

DEFAULT_COLUMNS = 80


@dataclass
class RedisplayState:
    """What the last redisplay left on screen.

    ``prefix_width`` is the prompt's width in columns, ``prior_pos`` the
    cursor index and ``prior_rendered_len`` the number of code points drawn.
    """

    prefix_width: int = 0
    prior_pos: int = 0
    prior_rendered_len: int = 0


class Redisplay(Protocol):
    """Interface shared by the redisplay strategies."""

    def render(self, buffer: Sequence[str], pos: int, state: RedisplayState) -> str: ...

    def redisplay(
        self, echo: bool, buffer: Sequence[str], pos: int, state: RedisplayState
    ) -> None: ...


class _RedisplayBase:
    """Shared write path; subclasses provide ``render`` per :class:`Redisplay`."""

    def __init__(self, out: TextIO) -> None:
        self._out = out

    def redisplay(
        self, echo: bool, buffer: Sequence[str], pos: int, state: RedisplayState
    ) -> None:
        """Write the output for ``(buffer, pos)`` and update *state*.

        Nothing is written while *echo* is off.
        """
        if not echo:
            return
        self._out.write(self.render(buffer, pos, state))
        self._out.flush()


# ---------------------------------------------------------------------------
# ANSI
# ---------------------------------------------------------------------------


def cursor_forward(n: int) -> str:
    """CUF: move right *n* columns."""
    return f"\x1b[{n}C" if n > 0 else ""


def cursor_cr_and_up(n: int, col: int) -> str:
    """Return to column 0 and move up *n* rows with reverse index.

    At column 0 the terminal may still be holding a pending wrap on the row
    above, so a space is written first to force the wrap.
    """
    s = " \r" if col == 0 else "\r"
    return s + "\x1bM" * n


class AnsiRedisplay(_RedisplayBase):
    """Wrap-aware redisplay using carriage return, RI and CUF sequences."""

    def __init__(self, out: TextIO, columns: Callable[[], int] | None = None) -> None:
        super().__init__(out)
        self._columns = columns or _output_columns(out)

    def render(self, buffer: Sequence[str], pos: int, state: RedisplayState) -> str:
        col = max(self._columns(), 1)
        pfx = state.prefix_width
        length = len(buffer)

        # back to where the buffer starts, just after the prompt
        s = cursor_cr_and_up(
            (pfx + state.prior_pos) // col - pfx // col, (pfx + state.prior_pos) % col
        )
        s += cursor_forward(pfx % col)
        s += "".join(buffer)

        if length < state.prior_rendered_len:
            end = pfx + state.prior_rendered_len
            s += " " * (state.prior_rendered_len - length)
        else:
            end = pfx + length
        s += cursor_cr_and_up(end // col - (pfx + pos) // col, end % col)
        s += cursor_forward((pfx + pos) % col)

        state.prior_rendered_len = length
        state.prior_pos = pos
        return s


def _output_columns(out: TextIO) -> Callable[[], int]:
    def columns() -> int:
        try:
            return get_size(out.fileno())[0] or DEFAULT_COLUMNS
        except (TerminalStateError, AttributeError, ValueError, OSError):
            return DEFAULT_COLUMNS

    return columns


# ---------------------------------------------------------------------------
# Backspace
# ---------------------------------------------------------------------------


def cursor_backward(n: int) -> str:
    return "\b" * n


class BackspaceRedisplay(_RedisplayBase):
    """Redisplay using only backspaces on a single horizontal offset."""

    def render(self, buffer: Sequence[str], pos: int, state: RedisplayState) -> str:
        length = len(buffer)
        s = cursor_backward(state.prior_pos)
        s += "".join(buffer)
        if length < state.prior_rendered_len:
            s += " " * (state.prior_rendered_len - length)
            s += cursor_backward(state.prior_rendered_len - pos)
        else:
            s += cursor_backward(length - pos)

        state.prior_rendered_len = length
        state.prior_pos = pos
        return s


def select_redisplay(out: TextIO, platform: str | None = None) -> Redisplay:
    """Pick the redisplay strategy for *platform* (default: the host)."""
    platform = platform or sys.platform
    if platform.startswith("win"):
        strategy: Redisplay = BackspaceRedisplay(out)
    else:
        strategy = AnsiRedisplay(out)
    logger.debug("using %s for platform %s", type(strategy).__name__, platform)
    return strategy
