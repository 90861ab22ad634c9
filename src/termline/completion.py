"""Ready-made completion providers."""

from __future__ import annotations

import glob
import os

_GLOB_CHARS = frozenset("*?[")


def last_word(line: str) -> str:
    """Return the text after the last space in *line*."""
    i = line.rfind(" ")
    return line[i + 1:] if i != -1 else line


def glob_completer(line: str) -> list[str]:
    """Complete the last word of *line* as a filesystem glob.

    The candidates replace the whole text before the cursor, so each one
    keeps the words preceding the completed one. A word without glob
    characters is completed as a prefix; directories get a trailing
    separator.
    """
    word = last_word(line)
    head = line[: len(line) - len(word)]
    pattern = word if _GLOB_CHARS.intersection(word) else word + "*"
    try:
        matches = sorted(glob.glob(os.path.expanduser(pattern)))
    except OSError:
        return []
    return [head + (m + os.sep if os.path.isdir(m) else m) for m in matches]
