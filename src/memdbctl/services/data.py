"""DataService: equality-filtered CRUD and raw parameterized SQL.

Each call is one transaction on the target database, so a failing record
in an insert batch rolls back every record before it.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Any

from memdbctl.infrastructure.database import accessor
from memdbctl.infrastructure.database.errors import ValidationError
from memdbctl.services.base import BaseService, guarded, ok
from memdbctl.services.result import ServiceResult
from memdbctl.services.telemetry import trace_span, traced


class DataService(BaseService):
    """Row-level access to user tables."""

    @traced
    @guarded("insert_data")
    def insert_data(
        self,
        db: str,
        table: str,
        records: Sequence[Mapping[str, Any]],
    ) -> ServiceResult:
        with self._registry.transaction(db) as conn:
            inserted = accessor.insert_rows(conn, table, records)
        return ok(
            "insert_data",
            {"table": table, "insertedCount": inserted},
            message=f"Inserted {inserted} record(s) into '{table}'",
        )

    @traced
    @guarded("query_data")
    def query_data(
        self,
        db: str,
        table: str,
        conditions: Mapping[str, Any] | None = None,
        *,
        limit: int | None = None,
        offset: int | None = None,
        order_by: str | None = None,
        order_direction: str = "ASC",
    ) -> ServiceResult:
        """Select rows matching *conditions* (all rows when empty).

        *limit* falls back to ``[query] default_limit`` and is clamped to
        ``[1, max_limit]``.
        """
        query_cfg = self.settings.query
        effective_limit = accessor.clamp_limit(
            limit, default=query_cfg.default_limit, maximum=query_cfg.max_limit
        )
        if offset is not None and (isinstance(offset, bool) or not isinstance(offset, int)):
            raise ValidationError(f"Offset must be an integer, got {offset!r}")
        if offset is not None and offset < 0:
            raise ValidationError(f"Offset must be >= 0, got {offset}")
        with self._registry.transaction(db) as conn, trace_span("select") as span:
            rows, columns = accessor.select_rows(
                conn,
                table,
                conditions,
                limit=effective_limit,
                offset=offset or 0,
                order_by=order_by,
                order_direction=order_direction,
            )
            if span:
                span.annotate("rows", len(rows))
        return ok(
            "query_data",
            {"table": table, "rows": rows, "columns": columns, "count": len(rows)},
        )

    @traced
    @guarded("update_data")
    def update_data(
        self,
        db: str,
        table: str,
        conditions: Mapping[str, Any],
        updates: Mapping[str, Any],
    ) -> ServiceResult:
        with self._registry.transaction(db) as conn:
            changes = accessor.update_rows(conn, table, conditions, updates)
        return ok(
            "update_data",
            {"table": table, "changes": changes},
            message=f"Updated {changes} row(s) in '{table}'",
        )

    @traced
    @guarded("delete_data")
    def delete_data(
        self,
        db: str,
        table: str,
        conditions: Mapping[str, Any],
    ) -> ServiceResult:
        with self._registry.transaction(db) as conn:
            changes = accessor.delete_rows(conn, table, conditions)
        return ok(
            "delete_data",
            {"table": table, "changes": changes},
            message=f"Deleted {changes} row(s) from '{table}'",
        )

    @traced
    @guarded("count_records")
    def count_records(
        self,
        db: str,
        table: str,
        conditions: Mapping[str, Any] | None = None,
    ) -> ServiceResult:
        with self._registry.transaction(db) as conn:
            count = accessor.count_rows(conn, table, conditions)
        return ok("count_records", {"table": table, "count": count})

    @traced
    @guarded("execute_sql")
    def execute_sql(
        self,
        db: str,
        query: str,
        parameters: Sequence[Any] | Mapping[str, Any] | None = None,
    ) -> ServiceResult:
        """Run one statement with driver-bound *parameters*.

        A list binds ``?`` placeholders positionally; a mapping binds
        ``:name`` placeholders.
        """
        with self._registry.transaction(db) as conn:
            payload = accessor.execute_raw(conn, query, parameters)
        return ok("execute_sql", payload)
