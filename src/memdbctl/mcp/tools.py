"""MCP tool registry: 25 tools across databases, tables, rows and the graph.

Each tool is a :class:`ToolSpec` pairing a pydantic input model with a
handler that calls one service method.  :func:`dispatch_tool` validates
raw arguments and returns the wire envelope, so every tool is testable
without the mcp package; :func:`register_tools` exposes the same specs on
a FastMCP server.
"""

from __future__ import annotations

import inspect
from collections.abc import Callable
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic import ValidationError as PydanticValidationError

from memdbctl.infrastructure.database.registry import MEMORY_DB
from memdbctl.services.base import error_result
from memdbctl.services.contracts import (
    EntityInput,
    ObservationAddition,
    ObservationDeletion,
    RelationInput,
)
from memdbctl.services.data import DataService
from memdbctl.services.database import DatabaseService
from memdbctl.services.memory import MemoryService
from memdbctl.services.result import ServiceError, ServiceResult
from memdbctl.services.schema import SchemaService

if TYPE_CHECKING:
    from memdbctl.infrastructure.database.registry import DatabaseRegistry


def to_mcp_response(result: ServiceResult) -> dict[str, Any]:
    """Convert a ServiceResult to the wire envelope."""
    response: dict[str, Any] = {"success": result.ok, "op": result.op}
    if result.message:
        response["message"] = result.message
    response["data"] = result.data
    if result.warnings:
        response["warnings"] = result.warnings
    if result.error is not None:
        response["error"] = {
            "code": result.error.code,
            "message": result.error.message,
            "detail": result.error.detail,
        }
    return response


# ---------------------------------------------------------------------------
# Input models
# ---------------------------------------------------------------------------


class ToolInput(BaseModel):
    """Base for tool arguments: camelCase on the wire, unknown keys rejected."""

    model_config = ConfigDict(populate_by_name=True, extra="forbid")


class NoArgs(ToolInput):
    pass


class DatabaseNameArgs(ToolInput):
    name: str = Field(description="Database name")


class BackupArgs(ToolInput):
    name: str = Field(description="Database to back up")
    path: str = Field(description="Destination file path")


class RestoreArgs(ToolInput):
    path: str = Field(description="Backup file to restore from")
    new_name: str = Field(alias="newName", description="Name for the restored database")


class DatabaseArgs(ToolInput):
    database: str = Field(default=MEMORY_DB, description="Target database")


class TableArgs(DatabaseArgs):
    table: str = Field(description="Table name")


class CreateTableArgs(TableArgs):
    columns: list[dict[str, Any]] = Field(
        description="Column specs: [{name, type, constraints: [...]}]"
    )
    unique: list[list[str]] | None = Field(default=None, description="UNIQUE column groups")
    if_not_exists: bool = Field(default=False, alias="ifNotExists")


class ExecuteSqlArgs(DatabaseArgs):
    query: str = Field(description="One SQL statement")
    parameters: list[Any] | dict[str, Any] | None = Field(
        default=None, description="Array for ? placeholders, object for :name placeholders"
    )


class QueryDataArgs(TableArgs):
    conditions: dict[str, Any] | None = Field(default=None, description="Equality filter")
    limit: int | None = Field(default=None, description="Maximum number of rows")
    offset: int | None = Field(default=None, description="Number of rows to skip")
    order_by: str | None = Field(default=None, alias="orderBy")
    order_direction: str = Field(default="ASC", alias="orderDirection")


class InsertDataArgs(TableArgs):
    records: list[dict[str, Any]] = Field(description="Rows to insert")


class UpdateDataArgs(TableArgs):
    conditions: dict[str, Any] = Field(description="Equality filter (required)")
    updates: dict[str, Any] = Field(description="Columns to change")


class DeleteDataArgs(TableArgs):
    conditions: dict[str, Any] = Field(description="Equality filter (required)")


class CountRecordsArgs(TableArgs):
    conditions: dict[str, Any] | None = Field(default=None, description="Equality filter")


class CreateEntitiesArgs(ToolInput):
    entities: list[EntityInput]


class RelationsArgs(ToolInput):
    relations: list[RelationInput]


class AddObservationsArgs(ToolInput):
    observations: list[ObservationAddition]


class DeleteEntitiesArgs(ToolInput):
    entity_names: list[str] = Field(alias="entityNames")


class DeleteObservationsArgs(ToolInput):
    deletions: list[ObservationDeletion]


class SearchNodesArgs(ToolInput):
    query: str = Field(description="Substring to match (case-insensitive)")
    include_touching: bool | None = Field(default=None, alias="includeTouching")


class OpenNodesArgs(ToolInput):
    names: list[str]


# ---------------------------------------------------------------------------
# Registry
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ToolSpec:
    name: str
    description: str
    input_model: type[ToolInput]
    handler: Callable[[DatabaseRegistry, Any], ServiceResult]


TOOLS: dict[str, ToolSpec] = {}


def _tool(
    name: str, input_model: type[ToolInput], description: str
) -> Callable[[Callable[[DatabaseRegistry, Any], ServiceResult]], Any]:
    def decorator(
        handler: Callable[[DatabaseRegistry, Any], ServiceResult],
    ) -> Callable[[DatabaseRegistry, Any], ServiceResult]:
        TOOLS[name] = ToolSpec(name, description, input_model, handler)
        return handler

    return decorator


# --- Databases (5) ---


@_tool("list_databases", NoArgs, "List all databases, the reserved memory store first.")
def _list_databases(registry: DatabaseRegistry, _args: NoArgs) -> ServiceResult:
    return DatabaseService(registry).list_databases()


@_tool("create_database", DatabaseNameArgs, "Create a new empty database.")
def _create_database(registry: DatabaseRegistry, args: DatabaseNameArgs) -> ServiceResult:
    return DatabaseService(registry).create_database(args.name)


@_tool("drop_database", DatabaseNameArgs, "Delete a database and its file.")
def _drop_database(registry: DatabaseRegistry, args: DatabaseNameArgs) -> ServiceResult:
    return DatabaseService(registry).drop_database(args.name)


@_tool("backup_database", BackupArgs, "Copy a database to a backup file.")
def _backup_database(registry: DatabaseRegistry, args: BackupArgs) -> ServiceResult:
    return DatabaseService(registry).backup_database(args.name, args.path)


@_tool("restore_database", RestoreArgs, "Restore a backup file as a new database.")
def _restore_database(registry: DatabaseRegistry, args: RestoreArgs) -> ServiceResult:
    return DatabaseService(registry).restore_database(args.path, args.new_name)


# --- Tables (4) ---


@_tool("list_tables", DatabaseArgs, "List the tables of a database.")
def _list_tables(registry: DatabaseRegistry, args: DatabaseArgs) -> ServiceResult:
    return SchemaService(registry).list_tables(args.database)


@_tool("describe_table", TableArgs, "Show a table's columns.")
def _describe_table(registry: DatabaseRegistry, args: TableArgs) -> ServiceResult:
    return SchemaService(registry).describe_table(args.database, args.table)


@_tool("create_table", CreateTableArgs, "Create a table from column specs.")
def _create_table(registry: DatabaseRegistry, args: CreateTableArgs) -> ServiceResult:
    schema: dict[str, Any] = {"columns": args.columns}
    if args.unique:
        schema["unique"] = args.unique
    return SchemaService(registry).create_table(
        args.database, args.table, schema, if_not_exists=args.if_not_exists
    )


@_tool("drop_table", TableArgs, "Drop a table.")
def _drop_table(registry: DatabaseRegistry, args: TableArgs) -> ServiceResult:
    return SchemaService(registry).drop_table(args.database, args.table)


# --- Rows (6) ---


@_tool("execute_sql", ExecuteSqlArgs, "Execute one parameterized SQL statement.")
def _execute_sql(registry: DatabaseRegistry, args: ExecuteSqlArgs) -> ServiceResult:
    return DataService(registry).execute_sql(args.database, args.query, args.parameters)


@_tool("query_data", QueryDataArgs, "Select rows with equality conditions.")
def _query_data(registry: DatabaseRegistry, args: QueryDataArgs) -> ServiceResult:
    return DataService(registry).query_data(
        args.database,
        args.table,
        args.conditions,
        limit=args.limit,
        offset=args.offset,
        order_by=args.order_by,
        order_direction=args.order_direction,
    )


@_tool("insert_data", InsertDataArgs, "Insert rows in one transaction.")
def _insert_data(registry: DatabaseRegistry, args: InsertDataArgs) -> ServiceResult:
    return DataService(registry).insert_data(args.database, args.table, args.records)


@_tool("update_data", UpdateDataArgs, "Update rows matching equality conditions.")
def _update_data(registry: DatabaseRegistry, args: UpdateDataArgs) -> ServiceResult:
    return DataService(registry).update_data(
        args.database, args.table, args.conditions, args.updates
    )


@_tool("delete_data", DeleteDataArgs, "Delete rows matching equality conditions.")
def _delete_data(registry: DatabaseRegistry, args: DeleteDataArgs) -> ServiceResult:
    return DataService(registry).delete_data(args.database, args.table, args.conditions)


@_tool("count_records", CountRecordsArgs, "Count rows, optionally filtered.")
def _count_records(registry: DatabaseRegistry, args: CountRecordsArgs) -> ServiceResult:
    return DataService(registry).count_records(args.database, args.table, args.conditions)


# --- Knowledge graph (10) ---


@_tool("initialize_memory", NoArgs, "Create the knowledge-graph tables if missing.")
def _initialize_memory(registry: DatabaseRegistry, _args: NoArgs) -> ServiceResult:
    return MemoryService(registry).initialize()


@_tool("create_entity", CreateEntitiesArgs, "Create entities with initial observations.")
def _create_entity(registry: DatabaseRegistry, args: CreateEntitiesArgs) -> ServiceResult:
    return MemoryService(registry).create_entities(args.entities)


@_tool("create_relation", RelationsArgs, "Create typed relations between entities.")
def _create_relation(registry: DatabaseRegistry, args: RelationsArgs) -> ServiceResult:
    return MemoryService(registry).create_relations(args.relations)


@_tool("add_observation", AddObservationsArgs, "Append observations to entities.")
def _add_observation(registry: DatabaseRegistry, args: AddObservationsArgs) -> ServiceResult:
    return MemoryService(registry).add_observations(args.observations)


@_tool("delete_entity", DeleteEntitiesArgs, "Delete entities and everything attached to them.")
def _delete_entity(registry: DatabaseRegistry, args: DeleteEntitiesArgs) -> ServiceResult:
    return MemoryService(registry).delete_entities(args.entity_names)


@_tool("delete_observation", DeleteObservationsArgs, "Remove observations by exact text.")
def _delete_observation(
    registry: DatabaseRegistry, args: DeleteObservationsArgs
) -> ServiceResult:
    return MemoryService(registry).delete_observations(args.deletions)


@_tool("delete_relation", RelationsArgs, "Remove relations by exact triple.")
def _delete_relation(registry: DatabaseRegistry, args: RelationsArgs) -> ServiceResult:
    return MemoryService(registry).delete_relations(args.relations)


@_tool("read_graph", NoArgs, "Read the entire knowledge graph.")
def _read_graph(registry: DatabaseRegistry, _args: NoArgs) -> ServiceResult:
    return MemoryService(registry).read_graph()


@_tool("search_nodes", SearchNodesArgs, "Search entities and relations by substring.")
def _search_nodes(registry: DatabaseRegistry, args: SearchNodesArgs) -> ServiceResult:
    return MemoryService(registry).search_nodes(
        args.query, include_touching=args.include_touching
    )


@_tool("open_node", OpenNodesArgs, "Open entities by name with the relations among them.")
def _open_node(registry: DatabaseRegistry, args: OpenNodesArgs) -> ServiceResult:
    return MemoryService(registry).open_nodes(args.names)


# ---------------------------------------------------------------------------
# Dispatch
# ---------------------------------------------------------------------------


def dispatch_tool(
    registry: DatabaseRegistry, name: str, arguments: dict[str, Any] | None = None
) -> dict[str, Any]:
    """Validate *arguments* for tool *name*, run it, and return the envelope.

    Unknown tools yield NOT_FOUND and malformed arguments VALIDATION_ERROR;
    nothing raises.
    """
    spec = TOOLS.get(name)
    if spec is None:
        return to_mcp_response(
            ServiceResult(
                ok=False,
                op=name,
                error=ServiceError(
                    code="NOT_FOUND",
                    message=f"Unknown tool: {name}",
                    detail={"available": sorted(TOOLS)},
                ),
            )
        )
    try:
        args = spec.input_model.model_validate(arguments or {})
    except PydanticValidationError as exc:
        return to_mcp_response(error_result(name, exc))
    return to_mcp_response(spec.handler(registry, args))


def _tool_signature(model: type[ToolInput]) -> inspect.Signature:
    """Keyword-only parameters mirroring *model*'s wire (alias) names."""
    params = [
        inspect.Parameter(
            field.alias or field_name,
            inspect.Parameter.KEYWORD_ONLY,
            default=(
                inspect.Parameter.empty
                if field.is_required()
                else field.get_default(call_default_factory=True)
            ),
            annotation=field.annotation,
        )
        for field_name, field in model.model_fields.items()
    ]
    return inspect.Signature(params, return_annotation=dict[str, Any])


def register_tools(server: Any, registry: DatabaseRegistry) -> None:
    """Register every tool in :data:`TOOLS` on the FastMCP server."""
    for spec in TOOLS.values():
        server.add_tool(_bind(spec, registry), name=spec.name, description=spec.description)


def _bind(spec: ToolSpec, registry: DatabaseRegistry) -> Callable[..., dict[str, Any]]:
    """A keyword-only wrapper whose signature FastMCP turns into the input schema."""

    def tool_fn(**kwargs: Any) -> dict[str, Any]:
        return dispatch_tool(registry, spec.name, kwargs)

    tool_fn.__name__ = spec.name
    tool_fn.__doc__ = spec.description
    tool_fn.__signature__ = _tool_signature(spec.input_model)  # type: ignore[attr-defined]
    return tool_fn
