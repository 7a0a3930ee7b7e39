"""Operation-specific Rich renderers for ServiceResult.

Each renderer writes to a Rich Console (backed by StringIO).  Renderers
are dispatched by ``result.op`` in :func:`render_result`; unknown ops fall
through to a generic key-value renderer.

Cell values are wrapped in ``Text`` so stored data is never parsed as
Rich markup.
"""

from __future__ import annotations

import json as _json
from typing import TYPE_CHECKING, Any

from rich.table import Table
from rich.text import Text

from memdbctl.output.console import create_console, get_output

if TYPE_CHECKING:
    from rich.console import Console

    from memdbctl.services.result import ServiceResult


def render_result(result: ServiceResult, *, verbose: bool = False) -> str:
    """Render a ServiceResult to a styled string via Rich.

    Returns plain text (no ANSI) when Rich detects no terminal, which is
    the case inside Click's CliRunner and piped output.
    """
    console = create_console()
    if result.ok:
        renderer = _OP_RENDERERS.get(result.op, _render_generic)
        renderer(result, console)
        if verbose:
            _render_meta(console, result)
    else:
        _render_error(result, console, verbose=verbose)
    return get_output(console).rstrip("\n")


# ── Helpers ───────────────────────────────────────────────────────────


def _cell(value: Any) -> Text:
    if value is None:
        return Text("NULL", style="memdb.null")
    if isinstance(value, bytes):
        return Text(f"<{len(value)} bytes>", style="memdb.null")
    if isinstance(value, (dict, list)):
        return Text(_json.dumps(value, separators=(",", ":")))
    return Text(str(value))


def _status_line(console: Console, result: ServiceResult) -> None:
    console.print(Text("OK", style="memdb.ok"), Text(f"  {result.op}", style="memdb.op"))
    if result.message:
        console.print(Text(f"  {result.message}"))


def _field(console: Console, key: str, value: Any) -> None:
    """Print a single indented key-value field."""
    style = {"name": "memdb.name", "path": "memdb.path"}.get(key, "")
    value_text = _cell(value)
    if style:
        value_text.stylize(style)
    console.print(Text(f"  {key}: ", style="memdb.key"), value_text, sep="")


def _table(columns: list[str], rows: list[list[Any]], *, title: str | None = None) -> Table:
    table = Table(title=title, show_header=True, show_lines=False, pad_edge=False, expand=False)
    for name in columns:
        table.add_column(Text(name))
    for row in rows:
        table.add_row(*(_cell(value) for value in row))
    return table


def _render_meta(console: Console, result: ServiceResult) -> None:
    """Print the telemetry span tree, if any."""
    if not result.meta:
        return
    console.print()
    console.print(Text("  meta:", style="dim"))
    for key, value in result.meta.items():
        if key == "telemetry":
            _render_span(console, value, indent=4)
        else:
            console.print(Text(f"    {key}: {value}"))


def _render_span(console: Console, span: dict[str, Any], indent: int) -> None:
    duration = span.get("duration_ms", 0.0)
    if duration > 1000:
        style = "bold red"
    elif duration > 100:
        style = "yellow"
    else:
        style = "dim"
    line = Text(" " * indent)
    line.append(f"{duration:>8.2f}ms", style=style)
    line.append(f"  {span.get('name', '?')}")
    annotations = span.get("annotations") or {}
    if annotations:
        line.append(f"  ({', '.join(f'{k}={v}' for k, v in annotations.items())})")
    console.print(line)
    for child in span.get("children", []):
        _render_span(console, child, indent + 4)


# ── Error renderer ────────────────────────────────────────────────────


def _render_error(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    err = result.error
    code = err.code if err else "ERROR"
    msg = err.message if err else "Unknown error"
    console.print(
        Text("ERROR", style="memdb.error"),
        Text(f"  {result.op}", style="memdb.op"),
        Text(f" [{code}] {msg}"),
        sep="",
    )
    if verbose and err and err.detail:
        console.print(Text("  detail:", style="dim"))
        for key, value in err.detail.items():
            console.print(Text(f"    {key}: {value}"))


# ── Renderers ─────────────────────────────────────────────────────────


def _render_generic(result: ServiceResult, console: Console) -> None:
    """Fallback renderer: status line + all data as key-value pairs."""
    _status_line(console, result)
    for key, value in result.data.items():
        _field(console, key, value)
    for warning in result.warnings:
        console.print(Text(f"  warning: {warning}", style="memdb.warning"))


def _render_databases(result: ServiceResult, console: Console) -> None:
    databases = result.data.get("databases", [])
    console.print(
        _table(
            ["Name", "Path", "Type", "Reserved"],
            [[d["name"], d["path"], d["type"], "yes" if d["reserved"] else ""] for d in databases],
        )
    )
    console.print(f"\n{len(databases)} databases")


def _render_tables(result: ServiceResult, console: Console) -> None:
    tables = result.data.get("tables", [])
    _status_line(console, result)
    for name in tables:
        console.print(Text(f"  {name}", style="memdb.name"))
    console.print(f"\n{len(tables)} tables")


def _render_describe(result: ServiceResult, console: Console) -> None:
    columns = result.data.get("columns", [])
    console.print(
        _table(
            ["Column", "Type", "Nullable", "PK", "Default"],
            [
                [
                    c["name"],
                    c["type"],
                    "yes" if c["nullable"] else "no",
                    "yes" if c["primaryKey"] else "",
                    c["default"],
                ]
                for c in columns
            ],
            title=str(result.data.get("name", "")),
        )
    )


def _render_rows(result: ServiceResult, console: Console) -> None:
    """Row sets from query_data and row-returning execute_sql."""
    if "rows" not in result.data:
        _render_generic(result, console)
        return
    columns = result.data.get("columns", [])
    rows = result.data["rows"]
    console.print(_table(columns, [[row.get(col) for col in columns] for row in rows]))
    console.print(f"\n{result.data.get('count', len(rows))} rows")


def _render_graph(result: ServiceResult, console: Console) -> None:
    """Entities and relations from read_graph, search_nodes, open_nodes, recent_changes."""
    entities = result.data.get("entities", [])
    relations = result.data.get("relations", [])
    if entities:
        console.print(
            _table(
                ["Name", "Type", "Observations"],
                [[e["name"], e["entityType"], "\n".join(e["observations"])] for e in entities],
                title="Entities",
            )
        )
    if relations:
        console.print(
            _table(
                ["From", "Relation", "To"],
                [[r["from"], r["relationType"], r["to"]] for r in relations],
                title="Relations",
            )
        )
    console.print(f"\n{len(entities)} entities, {len(relations)} relations")


def _render_stats(result: ServiceResult, console: Console) -> None:
    d = result.data
    _status_line(console, result)
    for key in ("entities", "relations", "observations", "components"):
        _field(console, key, d.get(key, 0))
    if d.get("orphans"):
        _field(console, "orphans", ", ".join(d["orphans"]))
    for key, title in (("entityTypes", "Entity types"), ("relationTypes", "Relation types")):
        counts = d.get(key) or {}
        if counts:
            console.print(_table(["Type", "Count"], [[k, v] for k, v in counts.items()], title=title))


# ── Dispatch table ────────────────────────────────────────────────────

_OP_RENDERERS: dict[str, Any] = {
    "list_databases": _render_databases,
    "list_tables": _render_tables,
    "describe_table": _render_describe,
    "query_data": _render_rows,
    "execute_sql": _render_rows,
    "read_graph": _render_graph,
    "search_nodes": _render_graph,
    "open_nodes": _render_graph,
    "recent_changes": _render_graph,
    "graph_stats": _render_stats,
}
