"""Tests for termline.keys -- key reading and Windows console event decoding."""

from __future__ import annotations

import io
import os

import pytest

from termline.keys import (
    INPUT_RECORD,
    KEY_EVENT,
    LEFT_CTRL_PRESSED,
    SHIFT_PRESSED,
    ConsoleEventReader,
    FdReader,
    Key,
    KeyReader,
    decode_console_event,
)

MOUSE_EVENT = 0x0002


def key_record(
    char: str = "",
    virtual_key: int = 0,
    *,
    key_down: bool = True,
    control_state: int = 0,
    event_type: int = KEY_EVENT,
) -> bytes:
    return INPUT_RECORD.pack(
        event_type, int(key_down), 1, virtual_key, 0, ord(char) if char else 0, control_state
    )


def record_source(*records: bytes):
    it = iter(records)
    return lambda: next(it, b"")


def read_all_keys(reader: KeyReader) -> list[str]:
    keys: list[str] = []
    while True:
        try:
            keys.append(reader.read_key()[1])
        except EOFError:
            return keys


# ---------------------------------------------------------------------------
# KeyReader
# ---------------------------------------------------------------------------


class TestKeyReader:
    def test_plain_characters(self) -> None:
        reader = KeyReader(io.StringIO("ab"))
        assert reader.read_key() == ("a", "a")
        assert reader.read_key() == ("b", "b")

    def test_control_characters(self) -> None:
        reader = KeyReader(io.StringIO("\x01\r"))
        assert reader.read_key() == (Key.ctrl_a, Key.ctrl_a)
        assert reader.read_key() == (Key.enter, Key.enter)

    def test_escape_sequences(self) -> None:
        reader = KeyReader(io.StringIO(Key.up + Key.left + Key.home_alt))
        assert reader.read_key() == ("\x1b", Key.up)
        assert reader.read_key() == ("\x1b", Key.left)
        assert reader.read_key() == ("\x1b", Key.home_alt)

    def test_escape_sequences_start_with_escape_key(self) -> None:
        reader = KeyReader(io.StringIO(Key.escape + "[B"))
        assert reader.read_key() == (Key.escape, Key.down)

    def test_unknown_sequence_returned_as_is(self) -> None:
        reader = KeyReader(io.StringIO("\x1b[Zx"))
        assert reader.read_key() == ("\x1b", "\x1b[Z")
        assert reader.read_key() == ("x", "x")

    def test_non_ascii_character(self) -> None:
        reader = KeyReader(io.StringIO("é"))
        assert reader.read_key() == ("é", "é")

    def test_end_of_stream(self) -> None:
        reader = KeyReader(io.StringIO(""))
        with pytest.raises(EOFError):
            reader.read_key()

    def test_end_of_stream_inside_escape(self) -> None:
        reader = KeyReader(io.StringIO("\x1b["))
        with pytest.raises(EOFError):
            reader.read_key()

    def test_source_errors_propagate(self) -> None:
        class Broken:
            def read(self, n: int = 1) -> str:
                raise OSError("device gone")

        with pytest.raises(OSError, match="device gone"):
            KeyReader(Broken()).read_key()


# ---------------------------------------------------------------------------
# FdReader
# ---------------------------------------------------------------------------


@pytest.fixture
def pipe():
    r, w = os.pipe()
    yield r, w
    for fd in (r, w):
        try:
            os.close(fd)
        except OSError:
            pass


class TestFdReader:
    def test_reads_characters(self, pipe) -> None:
        r, w = pipe
        os.write(w, b"hi")
        os.close(w)
        reader = FdReader(r)
        assert reader.read(1) == "h"
        assert reader.read(1) == "i"
        assert reader.read(1) == ""

    def test_multibyte_character_split_across_reads(self, pipe) -> None:
        r, w = pipe
        encoded = "ü".encode("utf-8")
        os.write(w, encoded[:1])
        reader = FdReader(r, chunk_size=1)
        os.write(w, encoded[1:])
        os.close(w)
        assert reader.read(1) == "ü"

    def test_invalid_bytes_are_replaced(self, pipe) -> None:
        r, w = pipe
        os.write(w, b"\xff")
        os.close(w)
        assert FdReader(r).read(1) == "\ufffd"

    def test_keys_over_pipe(self, pipe) -> None:
        r, w = pipe
        os.write(w, b"a\x1b[Cz")
        os.close(w)
        assert read_all_keys(KeyReader(FdReader(r))) == ["a", Key.right, "z"]


# ---------------------------------------------------------------------------
# Windows console events
# ---------------------------------------------------------------------------


class TestDecodeConsoleEvent:
    def test_record_size(self) -> None:
        assert INPUT_RECORD.size == 20

    def test_character_key(self) -> None:
        assert decode_console_event(key_record("x", 0x58)) == "x"

    def test_key_up_is_ignored(self) -> None:
        assert decode_console_event(key_record("x", 0x58, key_down=False)) == ""

    def test_non_key_event_is_ignored(self) -> None:
        assert decode_console_event(key_record("x", event_type=MOUSE_EVENT)) == ""

    @pytest.mark.parametrize(
        "virtual_key,expected",
        [
            (0x23, Key.end),
            (0x24, Key.home),
            (0x25, Key.left),
            (0x26, Key.up),
            (0x27, Key.right),
            (0x28, Key.down),
        ],
    )
    def test_navigation_keys(self, virtual_key: int, expected: str) -> None:
        assert decode_console_event(key_record(virtual_key=virtual_key)) == expected

    def test_unmapped_virtual_key(self) -> None:
        # F1
        assert decode_console_event(key_record(virtual_key=0x70)) == ""

    def test_modified_navigation_key_is_ignored(self) -> None:
        record = key_record(virtual_key=0x26, control_state=SHIFT_PRESSED)
        assert decode_console_event(record) == ""

    def test_modified_character_key_still_produces_character(self) -> None:
        record = key_record("\x01", 0x41, control_state=LEFT_CTRL_PRESSED)
        assert decode_console_event(record) == Key.ctrl_a


class TestConsoleEventReader:
    def test_arrow_key_becomes_escape_sequence(self) -> None:
        source = ConsoleEventReader(record_source(key_record(virtual_key=0x25), key_record("q")))
        assert read_all_keys(KeyReader(source)) == [Key.left, "q"]

    def test_skips_events_without_characters(self) -> None:
        source = ConsoleEventReader(
            record_source(
                key_record("a", key_down=False),
                key_record(virtual_key=0x10),
                key_record("b"),
            )
        )
        assert source.read(1) == "b"

    def test_end_of_input(self) -> None:
        source = ConsoleEventReader(record_source())
        assert source.read(1) == ""
        with pytest.raises(EOFError):
            KeyReader(source).read_key()

    def test_surrogate_pair_is_joined(self) -> None:
        high, low = 0xD83D, 0xDE00
        records = [
            INPUT_RECORD.pack(KEY_EVENT, 1, 1, 0, 0, high, 0),
            INPUT_RECORD.pack(KEY_EVENT, 1, 1, 0, 0, low, 0),
        ]
        source = ConsoleEventReader(record_source(*records))
        assert source.read(1) == "\U0001f600"

    def test_read_errors_propagate(self) -> None:
        def broken() -> bytes:
            raise OSError("console closed")

        with pytest.raises(OSError, match="console closed"):
            ConsoleEventReader(broken).read(1)
