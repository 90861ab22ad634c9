"""Command line editor with history and completion handling.

The editor reads keys one at a time in raw mode, edits a single line in
place and keeps the screen in sync through a redisplay strategy. History
navigation and completion share one "cycle through candidates" loop: each
key is passed to a step function that returns the buffer to show, until the
step function asks to stop; the key that stopped the cycle is then handled
like any other key.
"""

from __future__ import annotations

import contextlib
import logging
import os
import sys
from dataclasses import dataclass, field
from typing import Callable, TextIO

from termline.errors import EndOfInput, TerminalStateError
from termline.history import History
from termline.keys import (
    ConsoleEventReader,
    FdReader,
    Key,
    KeyReader,
    console_record_reader,
)
from termline.redisplay import Redisplay, RedisplayState, select_redisplay
from termline.terminal import is_terminal, raw_mode
from termline.utils import visible_width

logger = logging.getLogger(__name__)

CompletionHandler = Callable[[str], list[str]]
StepFunction = Callable[[str, str], tuple[bool, list[str], int]]


@dataclass
class EditorOptions:
    """Editor configuration.

    ``history_cap`` is applied to the editor's history when set.
    ``redisplay`` overrides the platform's redisplay strategy; it is called
    with the output stream. ``write_log`` names a file that receives a copy
    of everything written to the terminal.
    """

    history_cap: int | None = None
    completion_handler: CompletionHandler | None = None
    redisplay: Callable[[TextIO], Redisplay] | None = None
    write_log: str = field(default_factory=lambda: os.environ.get("TERMLINE_WRITE_LOG", ""))


class _Output:
    """Output stream wrapper that mirrors writes into the write log."""

    def __init__(self, stream: TextIO, write_log: str = "") -> None:
        self._stream = stream
        self._write_log = write_log

    def write(self, data: str) -> None:
        self._stream.write(data)
        if self._write_log:
            try:
                with open(self._write_log, "a", encoding="utf-8", newline="") as f:
                    f.write(data)
            except OSError:
                logger.debug("cannot append to write log %s", self._write_log)

    def flush(self) -> None:
        self._stream.flush()

    def fileno(self) -> int:
        return self._stream.fileno()


def _fileno(stream: object) -> int | None:
    try:
        return stream.fileno()  # type: ignore[attr-defined]
    except (AttributeError, OSError, ValueError):
        return None


# ---------------------------------------------------------------------------
# Editor
# ---------------------------------------------------------------------------


class Editor:
    """A command line editor bound to an input and an output stream.

    When both streams are terminals (or ``raw=True`` is passed) lines are
    edited interactively; otherwise lines are read from the input as they
    come. ``platform`` defaults to :data:`sys.platform` and decides the
    end-of-input key and the redisplay strategy.
    """

    def __init__(
        self,
        input: TextIO,
        output: TextIO,
        options: EditorOptions | None = None,
        *,
        history: History | None = None,
        raw: bool | None = None,
        platform: str | None = None,
    ) -> None:
        options = options or EditorOptions()
        self._in = input
        self._out = _Output(output, options.write_log)
        self._fd = _fileno(input)
        self._platform = platform or sys.platform

        if raw is None:
            out_fd = _fileno(output)
            raw = (
                self._fd is not None
                and out_fd is not None
                and is_terminal(self._fd)
                and is_terminal(out_fd)
            )
        self._raw = raw

        self._history = history if history is not None else History()
        if options.history_cap is not None:
            self._history.set_cap(options.history_cap)
        self.completion_handler = options.completion_handler

        if options.redisplay is not None:
            self._redisplay: Redisplay = options.redisplay(self._out)
        else:
            self._redisplay = select_redisplay(self._out, self._platform)

        self._keys: KeyReader | None = None

    # -- public API ---------------------------------------------------------

    @property
    def history(self) -> History:
        return self._history

    @property
    def interactive(self) -> bool:
        return self._raw

    def set_completion_handler(self, handler: CompletionHandler | None) -> None:
        self.completion_handler = handler

    def get_line(self, prompt: str = "") -> str:
        """Read a line with editing, history and completion.

        Raises :class:`EndOfInput` when the end-of-input key is typed on an
        empty line. Read errors propagate; the text typed so far is stored
        on the exception as ``partial_line``.
        """
        if self._raw:
            return self._raw_get_line(True, prompt)
        return self._std_get_line()

    def get_pass(self, prompt: str = "") -> str:
        """Read a line without echoing it."""
        if self._raw:
            return self._raw_get_line(False, prompt)
        return self._std_get_line()

    # -- sessions -----------------------------------------------------------

    def _std_get_line(self) -> str:
        line = self._in.readline()
        if not line:
            raise EndOfInput()
        return line[:-1] if line.endswith("\n") else line

    def _raw_get_line(self, echo: bool, prompt: str) -> str:
        with contextlib.ExitStack() as stack:
            if self._fd is not None:
                try:
                    stack.enter_context(raw_mode(self._fd))
                except TerminalStateError as e:
                    logger.debug("raw mode unavailable, reading plain lines: %s", e)
                    return self._std_get_line()

            self._write(prompt)
            return _LineSession(self, echo, visible_width(prompt)).run()

    def _key_reader(self) -> KeyReader:
        if self._keys is None:
            if self._fd is None:
                self._keys = KeyReader(self._in)
            elif self._is_windows:
                self._keys = KeyReader(ConsoleEventReader(console_record_reader(self._fd)))
            else:
                self._keys = KeyReader(FdReader(self._fd))
        return self._keys

    @property
    def _is_windows(self) -> bool:
        return self._platform.startswith("win")

    # -- output helpers -----------------------------------------------------

    def _write(self, data: str) -> None:
        self._out.write(data)
        self._out.flush()

    def _bell(self) -> None:
        self._write("\a")


# ---------------------------------------------------------------------------
# Line session
# ---------------------------------------------------------------------------


class _LineSession:
    """State of one raw-mode line edit: buffer, cursor and screen state."""

    def __init__(self, editor: Editor, echo: bool, prompt_width: int) -> None:
        self.editor = editor
        self.echo = echo
        self.buffer: list[str] = []
        self.pos = 0
        self.state = RedisplayState(prefix_width=prompt_width)
        self._keys = editor._key_reader()

        self._handlers: dict[str, Callable[[], None]] = {
            Key.backspace: self._delete_backward,
            Key.delete: self._delete_backward,
            Key.ctrl_u: self._delete_to_start,
            Key.ctrl_w: self._delete_word,
            Key.ctrl_d: self._delete_forward_or_eof,
            Key.ctrl_z: self._eof_on_windows,
            Key.ctrl_k: self._delete_to_end,
            Key.ctrl_t: self._transpose,
            Key.ctrl_a: self._line_start,
            Key.home: self._line_start,
            Key.home_alt: self._line_start,
            Key.ctrl_e: self._line_end,
            Key.end: self._line_end,
            Key.end_alt: self._line_end,
            Key.ctrl_b: self._cursor_left,
            Key.left: self._cursor_left,
            Key.ctrl_f: self._cursor_right,
            Key.right: self._cursor_right,
        }
        self._cyclers: dict[str, Callable[[str, str], tuple[str, str] | None]] = {
            Key.ctrl_p: self._cycle_history,
            Key.ctrl_n: self._cycle_history,
            Key.up: self._cycle_history,
            Key.down: self._cycle_history,
            Key.tab: self._cycle_completions,
        }

    @property
    def line(self) -> str:
        return "".join(self.buffer)

    def run(self) -> str:
        try:
            char, key = self._keys.read_key()
            while True:
                if key in (Key.enter, Key.newline):
                    return self._submit()
                follow = self._dispatch(char, key)
                if follow is None:
                    char, key = self._keys.read_key()
                else:
                    char, key = follow
        except (OSError, EOFError) as e:
            e.partial_line = self.line  # type: ignore[attr-defined]
            raise

    def _dispatch(self, char: str, key: str) -> tuple[str, str] | None:
        """Apply one key. Returns a key to handle next, if a cycle produced one."""
        handler = self._handlers.get(key)
        if handler is not None:
            handler()
            return None

        cycler = self._cyclers.get(key)
        if cycler is not None:
            return cycler(char, key)

        if char >= " ":
            self.buffer.insert(self.pos, char)
            self.pos += 1
            self._redisplay()
        return None

    def _redisplay(self) -> None:
        self.editor._redisplay.redisplay(self.echo, self.buffer, self.pos, self.state)

    def _bell(self) -> None:
        self.editor._bell()

    def _submit(self) -> str:
        self.pos = len(self.buffer)
        self._redisplay()
        self.editor._write("\r\n")
        return self.line

    # -- editing ------------------------------------------------------------

    def _delete_backward(self) -> None:
        if self.pos > 0:
            self.pos -= 1
            del self.buffer[self.pos]
            self._redisplay()
        else:
            self._bell()

    def _delete_to_start(self) -> None:
        if self.pos > 0:
            del self.buffer[: self.pos]
            self.pos = 0
            self._redisplay()
        else:
            self._bell()

    def _delete_word(self) -> None:
        if self.pos == 0:
            self._bell()
            return
        i = self.pos
        while i > 0 and self.buffer[i - 1] == " ":
            i -= 1
        while i > 0 and self.buffer[i - 1] != " ":
            i -= 1
        del self.buffer[i : self.pos]
        self.pos = i
        self._redisplay()

    def _delete_forward_or_eof(self) -> None:
        if not self.buffer and not self.editor._is_windows:
            raise EndOfInput()
        if self.pos < len(self.buffer):
            del self.buffer[self.pos]
            self._redisplay()
        else:
            self._bell()

    def _eof_on_windows(self) -> None:
        if not self.buffer and self.editor._is_windows:
            raise EndOfInput()

    def _delete_to_end(self) -> None:
        # readline does not bell here
        if self.pos < len(self.buffer):
            del self.buffer[self.pos :]
            self._redisplay()

    def _transpose(self) -> None:
        if self.pos == 0 or len(self.buffer) < 2:
            self._bell()
            return
        if self.pos == len(self.buffer):
            self.pos -= 1
        b = self.buffer
        b[self.pos - 1], b[self.pos] = b[self.pos], b[self.pos - 1]
        self.pos += 1
        self._redisplay()

    # -- movement -----------------------------------------------------------

    def _line_start(self) -> None:
        if self.pos > 0:
            self.pos = 0
            self._redisplay()

    def _line_end(self) -> None:
        if self.pos < len(self.buffer):
            self.pos = len(self.buffer)
            self._redisplay()

    def _cursor_left(self) -> None:
        if self.pos > 0:
            self.pos -= 1
            self._redisplay()
        else:
            self._bell()

    def _cursor_right(self) -> None:
        if self.pos < len(self.buffer):
            self.pos += 1
            self._redisplay()
        else:
            self._bell()

    # -- cycling ------------------------------------------------------------

    def _cycle(self, char: str, key: str, step: StepFunction) -> tuple[str, str]:
        """Run *step* on this and every following key until it says stop.

        The screen is redrawn after every step. Returns the key that stopped
        the cycle so that it can be handled normally.
        """
        while True:
            stop, buffer, pos = step(char, key)
            self.editor._redisplay.redisplay(True, buffer, pos, self.state)
            if stop:
                self.buffer, self.pos = buffer, pos
                return char, key
            char, key = self._keys.read_key()

    def _cycle_history(self, char: str, key: str) -> tuple[str, str] | None:
        if not self.echo:
            return None

        history = self.editor.history
        original, original_pos = list(self.buffer), self.pos
        dir = 0

        def step(char: str, key: str) -> tuple[bool, list[str], int]:
            nonlocal dir
            stop = False
            if key in (Key.ctrl_p, Key.up):
                dir -= 1
            elif key in (Key.ctrl_n, Key.down):
                dir += 1
            else:
                stop = True

            if dir > 0:
                self._bell()
                dir = 0
            elif -dir > len(history):
                self._bell()
                dir = -len(history)

            if dir == 0:
                return stop, list(original), original_pos
            line = list(history.get(0, dir)[1])
            return stop, line, len(line)

        return self._cycle(char, key, step)

    def _cycle_completions(self, char: str, key: str) -> tuple[str, str] | None:
        if not self.echo:
            return None

        handler = self.editor.completion_handler
        completions = handler(self.line[: self.pos]) if handler is not None else []
        if not completions:
            self._bell()
            return None

        original, original_pos = list(self.buffer), self.pos
        tail = self.buffer[self.pos :]
        none_selected = len(completions)
        i = none_selected

        def step(char: str, key: str) -> tuple[bool, list[str], int]:
            nonlocal i
            stop = True
            if key == Key.tab:
                stop = False
                i = (i + 1) % (none_selected + 1)
                if i == none_selected:
                    self._bell()
            if char == Key.escape or i == none_selected:
                return stop, list(original), original_pos
            completion = list(completions[i])
            return stop, completion + tail, len(completion)

        return self._cycle(char, key, step)
