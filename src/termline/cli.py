"""CLI entry point for termline. Uses Click for argument parsing.

Reads lines in a loop and echoes them back, which makes it easy to try the
editor's keys, history and completion in a real terminal.
"""

from __future__ import annotations

import logging
import sys
from pathlib import Path

import click

from termline.completion import glob_completer
from termline.editor import Editor, EditorOptions
from termline.errors import EndOfInput
from termline.markup import DEFAULT_DELIMS, escape, null_escape_code, style
from termline.history import History

logger = logging.getLogger(__name__)


def load_history(history: History, path: Path) -> None:
    if not path.exists():
        return
    with path.open(encoding="utf-8", newline="\n") as f:
        history.read(f)
    logger.debug("loaded history from %s", path)


def save_history(history: History, path: Path) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("w", encoding="utf-8", newline="\n") as f:
        history.write(f)
    logger.debug("saved history to %s", path)


def _styled(text: str) -> str:
    try:
        fd = sys.stdout.fileno()
    except (AttributeError, OSError, ValueError):
        return escape(text, DEFAULT_DELIMS, null_escape_code)
    return style(text, fd)


@click.command()
@click.option("-p", "--password", is_flag=True, help="Read passwords: no echo, history or completion")
@click.option(
    "--history-file",
    type=click.Path(dir_okay=False, path_type=Path),
    envvar="TERMLINE_HISTORY_FILE",
    default=None,
    help="File to load history from and save it to",
)
@click.option(
    "--history-size",
    type=int,
    envvar="TERMLINE_HISTORY_SIZE",
    default=100,
    show_default=True,
    help="Number of lines kept in history (negative: unlimited)",
)
@click.option(
    "--log-level",
    type=click.Choice(["debug", "info", "warning", "error"]),
    default="warning",
    show_default=True,
)
def main(password: bool, history_file: Path | None, history_size: int, log_level: str) -> None:
    """Read lines with editing, history and completion and echo them back."""
    logging.basicConfig(
        level=getattr(logging, log_level.upper()),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )

    name = "pass" if password else "line"
    if password:
        options = EditorOptions()
    else:
        options = EditorOptions(history_cap=history_size, completion_handler=glob_completer)
    editor = Editor(sys.stdin, sys.stdout, options)

    if history_file is not None and not password:
        load_history(editor.history, history_file)

    prompt = _styled("{{bold}}" + name + ":{{reset}} ")
    click.echo("To quit type ^D on Unix and ^Z on Windows.")

    try:
        while True:
            try:
                if password:
                    line = editor.get_pass(prompt)
                else:
                    line = editor.get_line(prompt)
            except EndOfInput as e:
                click.echo(str(e))
                break

            click.echo(f"{name}: {line}")
            if not password:
                editor.history.add(line)
    finally:
        if history_file is not None and not password:
            save_history(editor.history, history_file)


if __name__ == "__main__":
    main()
