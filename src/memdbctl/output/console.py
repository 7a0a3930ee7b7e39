"""Rich Console factory and theme for memdbctl output.

Consoles render into a StringIO buffer so renderers keep a plain
``-> str`` contract.  In non-TTY environments (tests, pipes) Rich
disables color codes on its own.
"""

from __future__ import annotations

from io import StringIO

from rich.console import Console
from rich.theme import Theme

MEMDB_THEME = Theme(
    {
        "memdb.ok": "bold green",
        "memdb.error": "bold red",
        "memdb.warning": "bold yellow",
        "memdb.op": "bold cyan",
        "memdb.key": "dim",
        "memdb.name": "bold blue",
        "memdb.path": "dim",
        "memdb.type": "magenta",
        "memdb.null": "dim italic",
    }
)


def create_console(*, no_color: bool = False, width: int | None = None) -> Console:
    """Create a Console that renders to a StringIO buffer.

    Args:
        no_color: Disable ANSI escape codes (used in tests).
        width: Override terminal width (useful for consistent test output).
    """
    return Console(
        file=StringIO(),
        theme=MEMDB_THEME,
        no_color=no_color,
        highlight=False,
        width=width or 120,
    )


def get_output(console: Console) -> str:
    """Extract rendered text from a StringIO-backed Console."""
    assert isinstance(console.file, StringIO)
    return console.file.getvalue()
