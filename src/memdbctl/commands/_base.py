"""Custom Click base classes with --examples support, plus a JSON parameter type.

MemdbCommand and MemdbGroup accept an ``examples`` parameter.  When
``--examples`` is passed, the command prints usage examples and exits,
which keeps ``--help`` concise.
"""

from __future__ import annotations

import json
from typing import Any

import click


def _add_examples_option(cmd: click.Command | click.Group, examples: str) -> None:
    """Attach an eager ``--examples`` flag to a Click command or group."""

    def show_examples(ctx: click.Context, _param: click.Parameter, value: bool) -> None:
        if not value:
            return
        click.echo(f"Examples for '{ctx.command_path}':\n")
        click.echo(examples)
        ctx.exit(0)

    cmd.params.append(
        click.Option(
            ["--examples"],
            is_flag=True,
            expose_value=False,
            is_eager=True,
            callback=show_examples,
            help="Show usage examples.",
        )
    )


class MemdbCommand(click.Command):
    """Click Command subclass that supports an ``--examples`` flag."""

    def __init__(self, *args: Any, examples: str | None = None, **kwargs: Any) -> None:
        super().__init__(*args, **kwargs)
        self.examples = examples
        if examples:
            _add_examples_option(self, examples)


class MemdbGroup(click.Group):
    """Click Group subclass that supports an ``--examples`` flag.

    Sets ``command_class = MemdbCommand`` so all subcommands accept the
    ``examples`` parameter without an explicit ``cls=``.
    """

    command_class = MemdbCommand

    def __init__(self, *args: Any, examples: str | None = None, **kwargs: Any) -> None:
        super().__init__(*args, **kwargs)
        self.examples = examples
        if examples:
            _add_examples_option(self, examples)


class JsonParamType(click.ParamType):
    """A JSON document given on the command line, optionally required to be
    an object (``kind=dict``) or an array (``kind=list``)."""

    name = "json"

    def __init__(self, kind: type | None = None) -> None:
        self.kind = kind

    def convert(self, value: Any, param: click.Parameter | None, ctx: click.Context | None) -> Any:
        if not isinstance(value, str):
            return value
        try:
            parsed = json.loads(value)
        except json.JSONDecodeError as exc:
            self.fail(f"invalid JSON: {exc.msg} (at char {exc.pos})", param, ctx)
        if self.kind is not None and not isinstance(parsed, self.kind):
            expected = "an object" if self.kind is dict else "an array"
            self.fail(f"expected {expected}, got {type(parsed).__name__}", param, ctx)
        return parsed


JSON_OBJECT = JsonParamType(dict)
JSON_ARRAY = JsonParamType(list)
JSON_ANY = JsonParamType()
