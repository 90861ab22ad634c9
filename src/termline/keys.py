"""Keystroke decoding.

A key is either a single character or, when the first character is ESC,
the three-character sequence ESC + two more characters. Arrow, Home and End
keys arrive that way from ANSI terminals; on Windows consoles the
:class:`ConsoleEventReader` synthesizes the same sequences from virtual key
codes so the editor sees one key vocabulary on every platform.
"""

from __future__ import annotations

import codecs
import os
import struct
from typing import Callable, Protocol

ESC = "\x1b"


class Key:
    """Raw key values understood by the editor."""

    enter = "\r"
    newline = "\n"
    backspace = "\b"
    delete = "\x7f"
    tab = "\t"
    escape = ESC

    ctrl_a = "\x01"
    ctrl_b = "\x02"
    ctrl_c = "\x03"
    ctrl_d = "\x04"
    ctrl_e = "\x05"
    ctrl_f = "\x06"
    ctrl_k = "\x0b"
    ctrl_n = "\x0e"
    ctrl_p = "\x10"
    ctrl_t = "\x14"
    ctrl_u = "\x15"
    ctrl_w = "\x17"
    ctrl_z = "\x1a"

    up = "\x1b[A"
    down = "\x1b[B"
    right = "\x1b[C"
    left = "\x1b[D"
    home = "\x1b[H"
    end = "\x1b[F"
    home_alt = "\x1bOH"
    end_alt = "\x1bOF"


class CharSource(Protocol):
    """Anything with a text ``read(n)`` that returns ``""`` at end of stream."""

    def read(self, n: int = ...) -> str: ...


# ---------------------------------------------------------------------------
# KeyReader
# ---------------------------------------------------------------------------


class KeyReader:
    """Reads one logical key per call from a character source.

    Errors raised by the source propagate unchanged; the end of the stream
    raises :class:`EOFError`. Unknown escape sequences are returned as-is.
    """

    def __init__(self, source: CharSource) -> None:
        self._source = source

    def _read_char(self) -> str:
        ch = self._source.read(1)
        if not ch:
            raise EOFError("end of input stream")
        return ch

    def read_key(self) -> tuple[str, str]:
        """Return ``(char, key)``.

        *char* is the first character read; *key* equals *char* except for
        escape sequences, where it is the full three-character sequence.
        """
        ch = self._read_char()
        if ch != ESC:
            return ch, ch
        return ch, ch + self._read_char() + self._read_char()


# ---------------------------------------------------------------------------
# File descriptor source
# ---------------------------------------------------------------------------


class FdReader:
    """Character source over a raw file descriptor.

    Bytes are read with :func:`os.read` and decoded incrementally as UTF-8,
    so a multi-byte character split across reads is reassembled.
    """

    def __init__(self, fd: int, chunk_size: int = 4096) -> None:
        self._fd = fd
        self._chunk_size = chunk_size
        self._decoder = codecs.getincrementaldecoder("utf-8")("replace")
        self._pending = ""

    def read(self, n: int = 1) -> str:
        while len(self._pending) < n:
            raw = os.read(self._fd, self._chunk_size)
            if not raw:
                self._pending += self._decoder.decode(b"", final=True)
                break
            self._pending += self._decoder.decode(raw)
        data, self._pending = self._pending[:n], self._pending[n:]
        return data


# ---------------------------------------------------------------------------
# Windows console events
# ---------------------------------------------------------------------------

# INPUT_RECORD with a KEY_EVENT_RECORD payload:
#   WORD EventType; (2 bytes padding)
#   BOOL bKeyDown; WORD wRepeatCount; WORD wVirtualKeyCode;
#   WORD wVirtualScanCode; WCHAR UnicodeChar; DWORD dwControlKeyState
INPUT_RECORD = struct.Struct("<HxxiHHHHI")

KEY_EVENT = 0x0001

RIGHT_ALT_PRESSED = 0x0001
LEFT_ALT_PRESSED = 0x0002
RIGHT_CTRL_PRESSED = 0x0004
LEFT_CTRL_PRESSED = 0x0008
SHIFT_PRESSED = 0x0010

_MODIFIERS = (
    RIGHT_ALT_PRESSED
    | LEFT_ALT_PRESSED
    | RIGHT_CTRL_PRESSED
    | LEFT_CTRL_PRESSED
    | SHIFT_PRESSED
)

VIRTUAL_KEY_CODES: dict[int, str] = {
    0x23: Key.end,
    0x24: Key.home,
    0x25: Key.left,
    0x26: Key.up,
    0x27: Key.right,
    0x28: Key.down,
}


def decode_console_event(record: bytes) -> str:
    """Translate one ``INPUT_RECORD`` into the characters it produces.

    Returns ``""`` for events that produce nothing: non-key events, key
    releases, modified non-character keys and unmapped virtual keys.
    """
    (
        event_type,
        key_down,
        _repeat_count,
        virtual_key,
        _scan_code,
        unicode_char,
        control_state,
    ) = INPUT_RECORD.unpack_from(record)

    if event_type != KEY_EVENT or not key_down:
        return ""

    if unicode_char:
        return chr(unicode_char)

    if control_state & _MODIFIERS:
        return ""

    return VIRTUAL_KEY_CODES.get(virtual_key, "")


class ConsoleEventReader:
    """Character source over a stream of Windows console input records.

    *read_record* returns the raw bytes of one ``INPUT_RECORD`` and ``b""``
    when the console has no more input. Characters produced by one event are
    buffered and handed out one at a time; UTF-16 surrogate halves from
    consecutive events are joined into one character.
    """

    def __init__(self, read_record: Callable[[], bytes]) -> None:
        self._read_record = read_record
        self._pending = ""
        self._high_surrogate = ""

    def read(self, n: int = 1) -> str:
        while len(self._pending) < n:
            record = self._read_record()
            if not record:
                break
            self._pending += self._join_surrogates(decode_console_event(record))
        data, self._pending = self._pending[:n], self._pending[n:]
        return data

    def _join_surrogates(self, chars: str) -> str:
        if len(chars) != 1:
            return chars
        cp = ord(chars)
        if 0xD800 <= cp < 0xDC00:
            self._high_surrogate = chars
            return ""
        if 0xDC00 <= cp < 0xE000 and self._high_surrogate:
            high, self._high_surrogate = self._high_surrogate, ""
            return (high + chars).encode("utf-16-le", "surrogatepass").decode("utf-16-le")
        return chars


def console_record_reader(fd: int) -> Callable[[], bytes]:
    """Return a function reading one raw ``INPUT_RECORD`` from console *fd*."""
    import ctypes
    import msvcrt
    from ctypes import wintypes

    kernel32 = ctypes.windll.kernel32
    handle = msvcrt.get_osfhandle(fd)

    def read_record() -> bytes:
        buf = ctypes.create_string_buffer(INPUT_RECORD.size)
        count = wintypes.DWORD()
        if not kernel32.ReadConsoleInputW(handle, buf, 1, ctypes.byref(count)):
            raise ctypes.WinError()
        if count.value == 0:
            return b""
        return buf.raw

    return read_record
