"""Tests for the StringIO-backed console factory."""

from __future__ import annotations

from rich.text import Text

from memdbctl.output.console import create_console, get_output


class TestConsole:
    def test_captures_output(self) -> None:
        console = create_console(no_color=True)
        console.print("hello")
        assert get_output(console) == "hello\n"

    def test_theme_styles_resolve(self) -> None:
        console = create_console(no_color=True)
        console.print(Text("OK", style="memdb.ok"), Text("NULL", style="memdb.null"))
        assert "OK NULL" in get_output(console)

    def test_width_override(self) -> None:
        assert create_console(width=40).width == 40
