"""Inline style markup for prompts and messages.

Text such as ``"{{bold green}}line:{{reset}} "`` is turned into ANSI SGR
sequences on capable terminals and into plain text elsewhere.
"""

from __future__ import annotations

from typing import Callable

from termline.terminal import is_ansi_terminal

DEFAULT_DELIMS = "{{ }}"

ANSI_COLORS: dict[str, str] = {
    "reset": "0",
    "bold": "1",
    "black": "30",
    "red": "31",
    "green": "32",
    "yellow": "33",
    "blue": "34",
    "magenta": "35",
    "cyan": "36",
    "white": "37",
    "bgblack": "40",
    "bgred": "41",
    "bggreen": "42",
    "bgyellow": "43",
    "bgblue": "44",
    "bgmagenta": "45",
    "bgcyan": "46",
    "bgwhite": "47",
}


def null_escape_code(code: str) -> str:
    return ""


def ansi_escape_code(code: str) -> str:
    """Translate space separated style names into one SGR sequence."""
    params = [ANSI_COLORS.get(name, "") for name in code.split(" ")]
    return "\x1b[" + ";".join(params) + "m"


def escape(text: str, delims: str, code_fn: Callable[[str], str]) -> str:
    """Replace every delimited code in *text* with ``code_fn(code)``.

    *delims* has the form ``"START END"``. An unterminated code is dropped
    together with everything after it.
    """
    start, end = delims.split(" ")
    parts: list[str] = []
    rest = text
    while rest:
        i = rest.find(start)
        if i == -1:
            break
        parts.append(rest[:i])
        rest = rest[i + len(start):]

        j = rest.find(end)
        if j == -1:
            return "".join(parts)
        parts.append(code_fn(rest[:j]))
        rest = rest[j + len(end):]

    parts.append(rest)
    return "".join(parts)


def style(text: str, fd: int, delims: str = DEFAULT_DELIMS) -> str:
    """Expand markup in *text* for the terminal behind *fd*."""
    code_fn = ansi_escape_code if is_ansi_terminal(fd) else null_escape_code
    return escape(text, delims, code_fn)
