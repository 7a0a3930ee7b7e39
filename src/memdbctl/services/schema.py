"""SchemaService: table DDL and introspection on any named database."""

from __future__ import annotations

from typing import Any

from memdbctl.infrastructure.database import catalog
from memdbctl.infrastructure.database.catalog import TableSchema
from memdbctl.services.base import BaseService, guarded, ok
from memdbctl.services.result import ServiceResult
from memdbctl.services.telemetry import traced


class SchemaService(BaseService):
    """Create, describe, list and drop tables."""

    @traced
    @guarded("create_table")
    def create_table(
        self,
        db: str,
        table: str,
        schema: TableSchema | dict[str, Any],
        *,
        if_not_exists: bool = False,
    ) -> ServiceResult:
        """Create *table* from a column descriptor.

        *schema* is a :class:`TableSchema` or the raw
        ``{"columns": [{name, type, constraints}], "unique": [[...]]}`` form.
        With *if_not_exists*, an existing table is left untouched and the
        result reports ``created: False``.
        """
        if not isinstance(schema, TableSchema):
            schema = TableSchema.from_dict(schema)
        with self._registry.transaction(db) as conn:
            created = catalog.create_table(conn, table, schema, if_not_exists=if_not_exists)
        message = f"Table '{table}' created successfully" if created else None
        return ok(
            "create_table",
            {"database": db, "table": table, "created": created},
            message=message,
        )

    @traced
    @guarded("describe_table")
    def describe_table(self, db: str, table: str) -> ServiceResult:
        with self._registry.transaction(db) as conn:
            info = catalog.describe_table(conn, table)
        return ok("describe_table", info)

    @traced
    @guarded("list_tables")
    def list_tables(self, db: str) -> ServiceResult:
        with self._registry.transaction(db) as conn:
            tables = catalog.list_tables(conn)
        return ok("list_tables", {"database": db, "tables": tables, "count": len(tables)})

    @traced
    @guarded("drop_table")
    def drop_table(self, db: str, table: str) -> ServiceResult:
        with self._registry.transaction(db) as conn:
            catalog.drop_table(conn, table)
        return ok(
            "drop_table",
            {"database": db, "table": table},
            message=f"Table '{table}' dropped successfully",
        )
