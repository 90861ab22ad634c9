"""Command line history buffer."""

from __future__ import annotations

import bisect
import logging
import threading
from dataclasses import dataclass
from typing import Callable, TextIO

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class HistoryItem:
    id: int
    line: str


class History:
    """A bounded, ordered buffer of command lines.

    Every line gets a monotonically increasing id starting at 1; ids are
    never reused, even after deletion or truncation. Lines are looked up by
    id, where the special ids 0 and -1 (or any negative id) stand for the
    first and last line.

    A negative capacity means unbounded, which is also the initial state;
    :meth:`set_cap` bounds it.

    All methods are safe to call from multiple threads.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._cap = -1
        self._next = 0
        self._items: list[HistoryItem] = []

    # -- internals (lock held) ----------------------------------------------

    def _index(self, id: int) -> int:
        """Resolve *id* to a list index, or -1 if there is no such item."""
        if id <= 0:
            if not self._items:
                return -1
            return 0 if id == 0 else len(self._items) - 1

        i = bisect.bisect_left(self._items, id, key=lambda item: item.id)
        if i < len(self._items) and self._items[i].id == id:
            return i
        return -1

    def _add(self, line: str) -> None:
        self._next += 1
        self._items.append(HistoryItem(self._next, line))
        self._recap()

    def _recap(self) -> None:
        if 0 <= self._cap < len(self._items):
            del self._items[: len(self._items) - self._cap]

    # -- public API ---------------------------------------------------------

    def get(self, id: int, dir: int = 0) -> tuple[int, str]:
        """Return ``(id, line)`` of the line *dir* steps away from *id*.

        ``dir`` 0 is the line itself, +1 the next one, -1 the previous one.
        The buffer is treated as circular. ``(0, "")`` is returned when the
        buffer is empty or *id* does not exist.
        """
        with self._lock:
            i = self._index(id)
            if i == -1:
                return 0, ""
            item = self._items[(i + dir) % len(self._items)]
            return item.id, item.line

    def __len__(self) -> int:
        with self._lock:
            return len(self._items)

    def enum(self, id: int, fn: Callable[[int, str], bool]) -> None:
        """Call ``fn(id, line)`` for each line from *id* to the newest.

        Enumeration stops as soon as *fn* returns a false value.
        """
        with self._lock:
            i = self._index(id)
            if i == -1:
                return
            for item in self._items[i:]:
                if not fn(item.id, item.line):
                    break

    def add(self, line: str) -> None:
        """Append *line*, dropping the oldest lines beyond the capacity."""
        with self._lock:
            self._add(line)

    def delete(self, id: int) -> None:
        """Remove the line identified by *id* (0 first, -1 last)."""
        with self._lock:
            i = self._index(id)
            if i != -1:
                del self._items[i]

    def clear(self) -> None:
        """Remove all lines; the capacity and id counter are kept."""
        with self._lock:
            self._items = []

    def set_cap(self, cap: int) -> None:
        """Set the capacity and drop the oldest lines that no longer fit."""
        with self._lock:
            self._cap = cap
            self._recap()

    @property
    def cap(self) -> int:
        with self._lock:
            return self._cap

    def reset(self) -> None:
        """Return to the freshly constructed state.

        Lines are dropped, the capacity is unbounded again and ids restart
        at 1.
        """
        with self._lock:
            self._cap = -1
            self._next = 0
            self._items = []

    def read(self, reader: TextIO) -> None:
        """Add every newline-terminated line from *reader*.

        A trailing line without a newline is ignored. Lines go through the
        same path as :meth:`add`, so ids and capacity apply as usual.
        """
        with self._lock:
            count = 0
            for line in reader:
                if not line.endswith("\n"):
                    break
                self._add(line[:-1])
                count += 1
        logger.debug("read %d history lines", count)

    def write(self, writer: TextIO) -> None:
        """Write every line to *writer*, each followed by a newline."""
        with self._lock:
            writer.write("".join(item.line + "\n" for item in self._items))
            writer.flush()
            count = len(self._items)
        logger.debug("wrote %d history lines", count)
