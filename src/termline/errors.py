"""Exceptions raised by the line editor and terminal helpers."""

from __future__ import annotations


class EndOfInput(EOFError):
    """The user typed the end-of-input key (Ctrl-D / Ctrl-Z) on an empty line."""

    def __init__(self, message: str = "end of input") -> None:
        super().__init__(message)


class TerminalStateError(OSError):
    """The terminal state could not be queried or changed."""
