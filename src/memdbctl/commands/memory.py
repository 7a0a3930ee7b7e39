"""Command group: the knowledge graph in the ``memory`` database."""

from __future__ import annotations

from typing import TYPE_CHECKING

import click

from memdbctl.commands._base import MemdbGroup
from memdbctl.services.memory import MemoryService

if TYPE_CHECKING:
    from memdbctl.commands._context import AppContext

_MEMORY_EXAMPLES = """\
  memdbctl memory create-entity Alice --type person -o "Leads sprint planning"
  memdbctl memory create-entity Atlas --type project
  memdbctl memory relate Alice works_on Atlas
  memdbctl memory observe Atlas "Ships in Q3"
  memdbctl memory search sprint
  memdbctl memory open Alice Atlas
  memdbctl memory delete-entity Alice"""


@click.group(cls=MemdbGroup, examples=_MEMORY_EXAMPLES)
def memory() -> None:
    """Entities, relations and observations in the knowledge graph."""


@memory.command(
    "init",
    examples="""\
  memdbctl memory init""",
)
@click.pass_obj
def init_cmd(app: AppContext) -> None:
    """Create the graph tables if they are missing."""
    app.emit(MemoryService(app.registry).initialize())


@memory.command(
    examples="""\
  memdbctl memory read
  memdbctl --json memory read""",
)
@click.pass_obj
def read(app: AppContext) -> None:
    """Show every entity and relation."""
    app.emit(MemoryService(app.registry).read_graph())


@memory.command(
    examples="""\
  memdbctl memory search sprint
  memdbctl memory search alice --include-touching""",
)
@click.argument("query")
@click.option(
    "--include-touching/--own-fields-only",
    default=None,
    help="Also return relations touching a matching entity "
    "(default from [memory] search_include_touching_relations).",
)
@click.pass_obj
def search(app: AppContext, query: str, include_touching: bool | None) -> None:
    """Case-insensitive substring search over names, types and observations."""
    app.emit(MemoryService(app.registry).search_nodes(query, include_touching=include_touching))


@memory.command(
    "open",
    examples="""\
  memdbctl memory open Alice Atlas""",
)
@click.argument("names", nargs=-1, required=True)
@click.pass_obj
def open_cmd(app: AppContext, names: tuple[str, ...]) -> None:
    """Show the named entities and the relations among them."""
    app.emit(MemoryService(app.registry).open_nodes(list(names)))


@memory.command(
    examples="""\
  memdbctl memory stats""",
)
@click.pass_obj
def stats(app: AppContext) -> None:
    """Totals, type distributions, orphans and connected components."""
    app.emit(MemoryService(app.registry).stats())


@memory.command(
    examples="""\
  memdbctl memory recent
  memdbctl memory recent --limit 25""",
)
@click.option("--limit", type=int, default=None, help="Max entities and relations.")
@click.pass_obj
def recent(app: AppContext, limit: int | None) -> None:
    """Most recently updated entities and newest relations."""
    app.emit(MemoryService(app.registry).recent_changes(limit))


@memory.command(
    "create-entity",
    examples="""\
  memdbctl memory create-entity Alice --type person
  memdbctl memory create-entity Atlas --type project -o "Kickoff in May" -o "Owned by Alice\"""",
)
@click.argument("name")
@click.option("--type", "entity_type", required=True, help="Entity type.")
@click.option("-o", "--observation", "observations", multiple=True, help="Initial observation.")
@click.pass_obj
def create_entity(
    app: AppContext, name: str, entity_type: str, observations: tuple[str, ...]
) -> None:
    """Create entity NAME."""
    app.emit(
        MemoryService(app.registry).create_entities(
            [{"name": name, "entityType": entity_type, "observations": list(observations)}]
        )
    )


@memory.command(
    examples="""\
  memdbctl memory relate Alice works_on Atlas""",
)
@click.argument("source")
@click.argument("relation_type")
@click.argument("target")
@click.pass_obj
def relate(app: AppContext, source: str, relation_type: str, target: str) -> None:
    """Create the relation SOURCE -RELATION_TYPE-> TARGET."""
    app.emit(
        MemoryService(app.registry).create_relations(
            [{"from": source, "to": target, "relationType": relation_type}]
        )
    )


@memory.command(
    examples="""\
  memdbctl memory unrelate Alice works_on Atlas""",
)
@click.argument("source")
@click.argument("relation_type")
@click.argument("target")
@click.pass_obj
def unrelate(app: AppContext, source: str, relation_type: str, target: str) -> None:
    """Delete the relation SOURCE -RELATION_TYPE-> TARGET."""
    app.emit(
        MemoryService(app.registry).delete_relations(
            [{"from": source, "to": target, "relationType": relation_type}]
        )
    )


@memory.command(
    examples="""\
  memdbctl memory observe Atlas "Ships in Q3" "Budget approved\"""",
)
@click.argument("entity")
@click.argument("contents", nargs=-1, required=True)
@click.pass_obj
def observe(app: AppContext, entity: str, contents: tuple[str, ...]) -> None:
    """Append observations to ENTITY."""
    app.emit(
        MemoryService(app.registry).add_observations(
            [{"entityName": entity, "contents": list(contents)}]
        )
    )


@memory.command(
    examples="""\
  memdbctl memory forget Atlas "Ships in Q3\"""",
)
@click.argument("entity")
@click.argument("observations", nargs=-1, required=True)
@click.pass_obj
def forget(app: AppContext, entity: str, observations: tuple[str, ...]) -> None:
    """Remove observations from ENTITY by exact text."""
    app.emit(
        MemoryService(app.registry).delete_observations(
            [{"entityName": entity, "observations": list(observations)}]
        )
    )


@memory.command(
    "delete-entity",
    examples="""\
  memdbctl memory delete-entity Alice
  memdbctl memory delete-entity Alice Atlas""",
)
@click.argument("names", nargs=-1, required=True)
@click.pass_obj
def delete_entity(app: AppContext, names: tuple[str, ...]) -> None:
    """Delete entities with their observations and every touching relation."""
    app.emit(MemoryService(app.registry).delete_entities(list(names)))
