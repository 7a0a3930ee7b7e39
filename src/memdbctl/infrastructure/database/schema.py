"""Table descriptors for the knowledge graph stored in the ``memory`` database.

The tables are created through the schema catalog like any user table, so
the same descriptor format documents both.  Secondary indexes are plain DDL
because the catalog only builds tables.
"""

from __future__ import annotations

from memdbctl.infrastructure.database.catalog import ColumnSpec, TableSchema

ENTITIES = "entities"
OBSERVATIONS = "observations"
RELATIONS = "relations"

entities = TableSchema(
    columns=(
        ColumnSpec("name", "TEXT", ("PRIMARY KEY",)),
        ColumnSpec("entity_type", "TEXT", ("NOT NULL",)),
        ColumnSpec("created_at", "TEXT", ("NOT NULL",)),
        ColumnSpec("updated_at", "TEXT", ("NOT NULL",)),
    ),
)

observations = TableSchema(
    columns=(
        ColumnSpec("id", "INTEGER", ("PRIMARY KEY AUTOINCREMENT",)),
        ColumnSpec("entity_name", "TEXT", ("NOT NULL", "REFERENCES entities(name)")),
        ColumnSpec("content", "TEXT", ("NOT NULL",)),
        ColumnSpec("created_at", "TEXT", ("NOT NULL",)),
    ),
)

relations = TableSchema(
    columns=(
        ColumnSpec("id", "INTEGER", ("PRIMARY KEY AUTOINCREMENT",)),
        ColumnSpec("from_entity", "TEXT", ("NOT NULL", "REFERENCES entities(name)")),
        ColumnSpec("to_entity", "TEXT", ("NOT NULL", "REFERENCES entities(name)")),
        ColumnSpec("relation_type", "TEXT", ("NOT NULL",)),
        ColumnSpec("created_at", "TEXT", ("NOT NULL",)),
    ),
    unique=(("from_entity", "to_entity", "relation_type"),),
)

# Creation order matters: observations and relations reference entities.
MEMORY_TABLES: tuple[tuple[str, TableSchema], ...] = (
    (ENTITIES, entities),
    (OBSERVATIONS, observations),
    (RELATIONS, relations),
)

MEMORY_INDEX_SQL: tuple[str, ...] = (
    "CREATE INDEX IF NOT EXISTS ix_observations_entity ON observations (entity_name)",
    "CREATE INDEX IF NOT EXISTS ix_relations_from ON relations (from_entity)",
    "CREATE INDEX IF NOT EXISTS ix_relations_to ON relations (to_entity)",
)
