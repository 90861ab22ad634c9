"""termline: raw-mode command line editing with history and completion."""

# Completion providers
from termline.completion import glob_completer

# Line editor
from termline.editor import CompletionHandler, Editor, EditorOptions

# Errors
from termline.errors import EndOfInput, TerminalStateError

# Prompt markup
from termline.markup import ansi_escape_code, escape, null_escape_code, style

# History buffer
from termline.history import History, HistoryItem

# Keyboard input decoding
from termline.keys import (
    ConsoleEventReader,
    FdReader,
    Key,
    KeyReader,
    decode_console_event,
)

# Redisplay strategies
from termline.redisplay import (
    AnsiRedisplay,
    BackspaceRedisplay,
    Redisplay,
    RedisplayState,
    select_redisplay,
)

# Terminal mode control
from termline.terminal import (
    TerminalState,
    get_size,
    get_state,
    is_ansi_terminal,
    is_terminal,
    make_raw,
    raw_mode,
    set_state,
)

# Utilities
from termline.utils import visible_width

__all__ = [
    # Editor
    "CompletionHandler",
    "Editor",
    "EditorOptions",
    "glob_completer",
    # Errors
    "EndOfInput",
    "TerminalStateError",
    # History
    "History",
    "HistoryItem",
    # Keys
    "ConsoleEventReader",
    "FdReader",
    "Key",
    "KeyReader",
    "decode_console_event",
    # Redisplay
    "AnsiRedisplay",
    "BackspaceRedisplay",
    "Redisplay",
    "RedisplayState",
    "select_redisplay",
    # Terminal
    "TerminalState",
    "get_size",
    "get_state",
    "is_ansi_terminal",
    "is_terminal",
    "make_raw",
    "raw_mode",
    "set_state",
    # Text
    "ansi_escape_code",
    "escape",
    "null_escape_code",
    "style",
    "visible_width",
]
