"""MemoryService: the knowledge graph stored in the reserved ``memory`` database.

Entities are named nodes with a type and an ordered list of observations;
relations are typed directed edges identified by their full
``(from, to, relationType)`` triple.  The three backing tables are created
through the schema catalog on first use, and every read and write goes
through the generic accessor on a ``memory`` transaction.

Write pipeline per operation: VALIDATE → CHECK → APPLY → RESPOND.  All
checks run before the first write, and the whole operation shares one
transaction, so a rejected batch leaves no trace.  ``delete_entities`` is
the exception: each name is its own transaction, and unknown names are
reported rather than fatal.
"""

from __future__ import annotations

from collections import Counter, defaultdict
from collections.abc import Iterable, Iterator, Mapping, Sequence
from contextlib import contextmanager
from typing import TYPE_CHECKING, Any, TypeVar

from pydantic import BaseModel

from memdbctl.infrastructure.database import accessor, catalog
from memdbctl.infrastructure.database.errors import (
    AlreadyExistsError,
    NotFoundError,
    ValidationError,
)
from memdbctl.infrastructure.database.registry import MEMORY_DB
from memdbctl.infrastructure.database.schema import (
    ENTITIES,
    MEMORY_INDEX_SQL,
    MEMORY_TABLES,
    OBSERVATIONS,
    RELATIONS,
)
from memdbctl.infrastructure.graph import build_graph, summarize
from memdbctl.services._helpers import now_iso
from memdbctl.services.base import BaseService, guarded, ok
from memdbctl.services.contracts import (
    DeleteEntitiesData,
    EntityInput,
    GraphData,
    GraphStatsData,
    ObservationAddition,
    ObservationDeletion,
    RelationInput,
    dump_validated,
)
from memdbctl.services.result import ServiceResult
from memdbctl.services.telemetry import trace_span, traced

if TYPE_CHECKING:
    from sqlalchemy import Connection

# Insertion order for entities is rowid order; the accessor only orders by
# declared columns, so the full listings are fixed raw statements.
_ALL_ENTITIES_SQL = "SELECT name, entity_type, created_at, updated_at FROM entities ORDER BY rowid"
_ALL_RELATIONS_SQL = (
    "SELECT id, from_entity, to_entity, relation_type, created_at FROM relations ORDER BY id"
)
_SEARCH_ENTITIES_SQL = (
    "SELECT e.name, e.entity_type, e.created_at, e.updated_at FROM entities AS e "
    "WHERE instr(casefold(e.name), :needle) > 0 "
    "OR instr(casefold(e.entity_type), :needle) > 0 "
    "OR EXISTS (SELECT 1 FROM observations AS o "
    "WHERE o.entity_name = e.name AND instr(casefold(o.content), :needle) > 0) "
    "ORDER BY e.rowid"
)
_SEARCH_RELATIONS_SQL = (
    "SELECT id, from_entity, to_entity, relation_type, created_at FROM relations "
    "WHERE instr(casefold(relation_type), :needle) > 0 "
    "OR instr(casefold(from_entity), :needle) > 0 "
    "OR instr(casefold(to_entity), :needle) > 0 "
    "ORDER BY id"
)


T = TypeVar("T", bound=BaseModel)


def _validate_items(model_cls: type[T], items: Iterable[Any]) -> list[T]:
    if isinstance(items, (str, bytes, Mapping)) or not isinstance(items, Iterable):
        raise ValidationError(f"Expected a list of {model_cls.__name__} items")
    return [
        item if isinstance(item, model_cls) else model_cls.model_validate(item) for item in items
    ]


def _name_list(names: Iterable[str]) -> list[str]:
    """Distinct entity names in first-seen order."""
    if isinstance(names, (str, bytes, Mapping)) or not isinstance(names, Iterable):
        raise ValidationError("Entity names must be a list of strings")
    listed = list(names)
    bad = [name for name in listed if not isinstance(name, str)]
    if bad:
        raise ValidationError(f"Entity names must be strings, got {bad[0]!r}")
    return list(dict.fromkeys(listed))


def _relation_item(row: dict[str, Any]) -> dict[str, Any]:
    return {
        "from": row["from_entity"],
        "to": row["to_entity"],
        "relationType": row["relation_type"],
        "createdAt": row["created_at"],
    }


class MemoryService(BaseService):
    """Knowledge-graph operations over entities, observations and relations."""

    # ------------------------------------------------------------------
    # Bootstrap and shared helpers
    # ------------------------------------------------------------------

    def _bootstrap(self, conn: Connection) -> list[str]:
        """Create any missing memory tables and indexes; returns tables created."""
        created = [
            name
            for name, schema in MEMORY_TABLES
            if catalog.create_table(conn, name, schema, if_not_exists=True)
        ]
        for ddl in MEMORY_INDEX_SQL:
            conn.exec_driver_sql(ddl)
        return created

    @contextmanager
    def _transaction(self) -> Iterator[Connection]:
        """A ``memory`` transaction with the graph tables guaranteed present."""
        with self._registry.transaction(MEMORY_DB) as conn:
            if not self._registry.is_bootstrapped(MEMORY_DB):
                self._bootstrap(conn)
            yield conn
        # Only a committed bootstrap counts.
        self._registry.mark_bootstrapped(MEMORY_DB)

    @staticmethod
    def _entity_exists(conn: Connection, name: str) -> bool:
        return accessor.count_rows(conn, ENTITIES, {"name": name}) > 0

    @staticmethod
    def _observations_for(conn: Connection, names: Iterable[str] | None) -> dict[str, list[str]]:
        """Observation texts per entity, in insertion order."""
        grouped: dict[str, list[str]] = defaultdict(list)
        if names is None:
            rows, _ = accessor.select_rows(conn, OBSERVATIONS, order_by="id")
        else:
            rows = []
            for name in names:
                found, _ = accessor.select_rows(
                    conn, OBSERVATIONS, {"entity_name": name}, order_by="id"
                )
                rows.extend(found)
        for row in rows:
            grouped[row["entity_name"]].append(row["content"])
        return grouped

    def _entity_items(
        self,
        conn: Connection,
        rows: Sequence[dict[str, Any]],
        *,
        all_observations: bool = False,
    ) -> list[dict[str, Any]]:
        observations = self._observations_for(
            conn, None if all_observations else [row["name"] for row in rows]
        )
        return [
            {
                "name": row["name"],
                "entityType": row["entity_type"],
                "observations": observations.get(row["name"], []),
                "createdAt": row["created_at"],
                "updatedAt": row["updated_at"],
            }
            for row in rows
        ]

    @staticmethod
    def _all_relation_rows(conn: Connection) -> list[dict[str, Any]]:
        return accessor.execute_raw(conn, _ALL_RELATIONS_SQL)["rows"]

    def _require_entities(self, conn: Connection, names: Iterable[str]) -> None:
        missing = sorted({n for n in names if not self._entity_exists(conn, n)})
        if missing:
            raise NotFoundError(
                f"Entities not found: {', '.join(missing)}",
                names=missing,
            )

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    @traced
    @guarded("initialize_memory")
    def initialize(self) -> ServiceResult:
        """Create the graph tables if absent; safe to call any number of times."""
        with self._registry.transaction(MEMORY_DB) as conn:
            created = self._bootstrap(conn)
        self._registry.mark_bootstrapped(MEMORY_DB)
        return ok(
            "initialize_memory",
            {
                "database": MEMORY_DB,
                "tables": [name for name, _ in MEMORY_TABLES],
                "created": created,
            },
            message="Memory database initialized successfully",
        )

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    @traced
    @guarded("create_entities")
    def create_entities(self, entities: Iterable[EntityInput | dict[str, Any]]) -> ServiceResult:
        """Create entities and their initial observations, all or nothing.

        Fails with ALREADY_EXISTS (``detail.names``) if any name is already
        in the graph or appears twice in *entities*.
        """
        op = "create_entities"
        items = _validate_items(EntityInput, entities)

        with self._transaction() as conn:
            counts = Counter(item.name for item in items)
            clashes = {name for name, n in counts.items() if n > 1}
            clashes.update(name for name in counts if self._entity_exists(conn, name))
            if clashes:
                names = sorted(clashes)
                raise AlreadyExistsError(
                    f"Entities already exist: {', '.join(names)}",
                    names=names,
                )

            now = now_iso()
            if items:
                accessor.insert_rows(
                    conn,
                    ENTITIES,
                    [
                        {
                            "name": item.name,
                            "entity_type": item.entity_type,
                            "created_at": now,
                            "updated_at": now,
                        }
                        for item in items
                    ],
                )
            observation_rows = [
                {"entity_name": item.name, "content": text, "created_at": now}
                for item in items
                for text in item.observations
            ]
            if observation_rows:
                accessor.insert_rows(conn, OBSERVATIONS, observation_rows)

        created = [
            {
                "name": item.name,
                "entityType": item.entity_type,
                "observations": list(item.observations),
                "createdAt": now,
                "updatedAt": now,
            }
            for item in items
        ]
        data = dump_validated(GraphData, {"entities": created, "relations": []})
        return ok(
            op,
            {"entities": data["entities"], "count": len(created)},
            message=f"Created {len(created)} entities",
        )

    @traced
    @guarded("create_relations")
    def create_relations(
        self, relations: Iterable[RelationInput | dict[str, Any]]
    ) -> ServiceResult:
        """Create relations whose triple is not yet present.

        Repeats (in the graph or within *relations*) are skipped silently.
        Fails with NOT_FOUND if any endpoint entity is missing.
        """
        op = "create_relations"
        items = _validate_items(RelationInput, relations)

        with self._transaction() as conn:
            self._require_entities(
                conn, {n for item in items for n in (item.from_entity, item.to_entity)}
            )
            now = now_iso()
            seen: set[tuple[str, str, str]] = set()
            fresh: list[RelationInput] = []
            for item in items:
                if item.triple in seen:
                    continue
                seen.add(item.triple)
                existing = accessor.count_rows(
                    conn,
                    RELATIONS,
                    {
                        "from_entity": item.from_entity,
                        "to_entity": item.to_entity,
                        "relation_type": item.relation_type,
                    },
                )
                if not existing:
                    fresh.append(item)
            if fresh:
                accessor.insert_rows(
                    conn,
                    RELATIONS,
                    [
                        {
                            "from_entity": item.from_entity,
                            "to_entity": item.to_entity,
                            "relation_type": item.relation_type,
                            "created_at": now,
                        }
                        for item in fresh
                    ],
                )

        created = [
            {
                "from": item.from_entity,
                "to": item.to_entity,
                "relationType": item.relation_type,
                "createdAt": now,
            }
            for item in fresh
        ]
        data = dump_validated(GraphData, {"entities": [], "relations": created})
        return ok(
            op,
            {
                "relations": data["relations"],
                "count": len(created),
                "skipped": len(items) - len(created),
            },
            message=f"Created {len(created)} relations",
        )

    @traced
    @guarded("add_observations")
    def add_observations(
        self, additions: Iterable[ObservationAddition | dict[str, Any]]
    ) -> ServiceResult:
        """Append observation texts, in order, to existing entities.

        Fails with NOT_FOUND (and writes nothing) if any entity is unknown.
        """
        op = "add_observations"
        items = _validate_items(ObservationAddition, additions)

        with self._transaction() as conn:
            self._require_entities(conn, (item.entity_name for item in items))
            now = now_iso()
            results: list[dict[str, Any]] = []
            for item in items:
                if item.contents:
                    accessor.insert_rows(
                        conn,
                        OBSERVATIONS,
                        [
                            {"entity_name": item.entity_name, "content": text, "created_at": now}
                            for text in item.contents
                        ],
                    )
                    accessor.update_rows(
                        conn, ENTITIES, {"name": item.entity_name}, {"updated_at": now}
                    )
                results.append(
                    {"entityName": item.entity_name, "addedObservations": list(item.contents)}
                )

        return ok(
            op,
            {"results": results, "count": len(results)},
            message=f"Added observations to {len(results)} entities",
        )

    @traced
    @guarded("delete_entities")
    def delete_entities(self, names: Iterable[str]) -> ServiceResult:
        """Delete entities with every relation touching them and all their observations."""
        op = "delete_entities"
        unique = _name_list(names)
        deleted: list[str] = []
        not_found: list[str] = []
        relations_deleted = observations_deleted = 0

        for name in unique:
            with self._transaction() as conn:
                if not self._entity_exists(conn, name):
                    not_found.append(name)
                    continue
                relations_deleted += accessor.delete_rows(conn, RELATIONS, {"from_entity": name})
                relations_deleted += accessor.delete_rows(conn, RELATIONS, {"to_entity": name})
                observations_deleted += accessor.delete_rows(
                    conn, OBSERVATIONS, {"entity_name": name}
                )
                accessor.delete_rows(conn, ENTITIES, {"name": name})
            deleted.append(name)

        data = dump_validated(
            DeleteEntitiesData,
            {
                "deleted": deleted,
                "notFound": not_found,
                "relationsDeleted": relations_deleted,
                "observationsDeleted": observations_deleted,
            },
        )
        return ok(op, data, message=f"Deleted {len(deleted)} entities")

    @traced
    @guarded("delete_observations")
    def delete_observations(
        self, deletions: Iterable[ObservationDeletion | dict[str, Any]]
    ) -> ServiceResult:
        """Remove observations by exact text; unmatched text is ignored."""
        op = "delete_observations"
        items = _validate_items(ObservationDeletion, deletions)
        removed = 0
        not_found: list[str] = []

        with self._transaction() as conn:
            now = now_iso()
            for item in items:
                if not self._entity_exists(conn, item.entity_name):
                    not_found.append(item.entity_name)
                    continue
                removed_here = sum(
                    accessor.delete_rows(
                        conn, OBSERVATIONS, {"entity_name": item.entity_name, "content": text}
                    )
                    for text in item.observations
                )
                if removed_here:
                    accessor.update_rows(
                        conn, ENTITIES, {"name": item.entity_name}, {"updated_at": now}
                    )
                removed += removed_here

        warnings = [f"Entity not found: {name}" for name in not_found]
        return ok(
            op,
            {"removed": removed, "notFound": not_found},
            warnings=warnings,
            message=f"Deleted observations from {len(items) - len(not_found)} entities",
        )

    @traced
    @guarded("delete_relations")
    def delete_relations(
        self, relations: Iterable[RelationInput | dict[str, Any]]
    ) -> ServiceResult:
        """Remove relations by exact triple; missing triples are a no-op."""
        op = "delete_relations"
        items = _validate_items(RelationInput, relations)
        with self._transaction() as conn:
            deleted = sum(
                accessor.delete_rows(
                    conn,
                    RELATIONS,
                    {
                        "from_entity": item.from_entity,
                        "to_entity": item.to_entity,
                        "relation_type": item.relation_type,
                    },
                )
                for item in items
            )
        return ok(op, {"deleted": deleted}, message=f"Deleted {deleted} relations")

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    @traced
    @guarded("read_graph")
    def read_graph(self) -> ServiceResult:
        """Every entity and relation, in insertion order."""
        with self._transaction() as conn:
            rows = accessor.execute_raw(conn, _ALL_ENTITIES_SQL)["rows"]
            entities = self._entity_items(conn, rows, all_observations=True)
            relations = [_relation_item(row) for row in self._all_relation_rows(conn)]
        return ok(
            "read_graph",
            dump_validated(GraphData, {"entities": entities, "relations": relations}),
        )

    @traced
    @guarded("search_nodes")
    def search_nodes(self, query: str, *, include_touching: bool | None = None) -> ServiceResult:
        """Case-insensitive substring search over names, types and observations.

        Entities match on name, type, or any observation.  Relations match on
        their own type or endpoint names; with *include_touching* (default
        from ``[memory] search_include_touching_relations``) a relation also
        matches when either endpoint is a matching entity.  Case folding is
        Unicode ``str.casefold``, applied to both sides of the comparison.
        """
        if not isinstance(query, str) or not query.strip():
            raise ValidationError("Search query must be a non-empty string")
        if include_touching is None:
            include_touching = self.settings.memory.search_include_touching_relations
        params = {"needle": query.casefold()}

        with self._transaction() as conn, trace_span("substring_scan") as span:
            rows = accessor.execute_raw(conn, _SEARCH_ENTITIES_SQL, params)["rows"]
            entities = self._entity_items(conn, rows)
            matched = accessor.execute_raw(conn, _SEARCH_RELATIONS_SQL, params)["rows"]
            if include_touching and rows:
                names = {row["name"] for row in rows}
                ids = {row["id"] for row in matched}
                touching = [
                    row
                    for row in self._all_relation_rows(conn)
                    if row["id"] not in ids
                    and (row["from_entity"] in names or row["to_entity"] in names)
                ]
                matched = sorted([*matched, *touching], key=lambda row: row["id"])
            if span:
                span.annotate("entities", len(entities))
                span.annotate("relations", len(matched))

        data = dump_validated(
            GraphData,
            {"entities": entities, "relations": [_relation_item(row) for row in matched]},
        )
        return ok("search_nodes", {"query": query, **data})

    @traced
    @guarded("open_nodes")
    def open_nodes(self, names: Iterable[str]) -> ServiceResult:
        """Fetch the named entities plus relations among them.

        Unknown names are omitted.  A relation is included only when both of
        its endpoints are among the opened entities.
        """
        unique = _name_list(names)
        with self._transaction() as conn:
            rows: list[dict[str, Any]] = []
            for name in unique:
                found, _ = accessor.select_rows(conn, ENTITIES, {"name": name})
                rows.extend(found)
            entities = self._entity_items(conn, rows)
            opened = {row["name"] for row in rows}
            relations = [
                _relation_item(row)
                for row in self._all_relation_rows(conn)
                if row["from_entity"] in opened and row["to_entity"] in opened
            ]
        return ok(
            "open_nodes",
            dump_validated(GraphData, {"entities": entities, "relations": relations}),
        )

    @traced
    @guarded("graph_stats")
    def stats(self) -> ServiceResult:
        """Totals, type distributions, orphans and weakly connected components."""
        with self._transaction() as conn:
            with trace_span("build_graph") as span:
                g = build_graph(conn)
                if span:
                    span.annotate("nodes", g.number_of_nodes())
                    span.annotate("edges", g.number_of_edges())
            observations = accessor.count_rows(conn, OBSERVATIONS)
        summary = summarize(g)
        return ok(
            "graph_stats",
            dump_validated(GraphStatsData, {**summary, "observations": observations}),
        )

    @traced
    @guarded("recent_changes")
    def recent_changes(self, limit: int | None = None) -> ServiceResult:
        """Most recently updated entities and most recently created relations."""
        limit = limit if limit is not None else self.settings.memory.recent_limit
        if isinstance(limit, bool) or not isinstance(limit, int):
            raise ValidationError(f"Limit must be an integer, got {limit!r}")
        if limit < 1:
            raise ValidationError(f"Limit must be >= 1, got {limit}")
        with self._transaction() as conn:
            rows, _ = accessor.select_rows(
                conn, ENTITIES, order_by="updated_at", order_direction="DESC", limit=limit
            )
            entities = self._entity_items(conn, rows)
            relation_rows, _ = accessor.select_rows(
                conn, RELATIONS, order_by="id", order_direction="DESC", limit=limit
            )
        data = dump_validated(
            GraphData,
            {"entities": entities, "relations": [_relation_item(row) for row in relation_rows]},
        )
        return ok("recent_changes", {"limit": limit, **data})
