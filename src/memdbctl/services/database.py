"""DatabaseService: lifecycle of the named databases.

Thin wrapper over :class:`DatabaseRegistry` that turns its return values
and exceptions into ``ServiceResult`` envelopes.
"""

from __future__ import annotations

from pathlib import Path

from memdbctl.services.base import BaseService, guarded, ok
from memdbctl.services.result import ServiceResult
from memdbctl.services.telemetry import traced


class DatabaseService(BaseService):
    """Create, drop, list, back up and restore named databases."""

    @traced
    @guarded("list_databases")
    def list_databases(self) -> ServiceResult:
        databases = self._registry.entries()
        return ok("list_databases", {"databases": databases, "count": len(databases)})

    @traced
    @guarded("create_database")
    def create_database(self, name: str) -> ServiceResult:
        path = self._registry.create(name)
        return ok(
            "create_database",
            {"name": name, "path": str(path)},
            message=f"Database '{name}' created successfully",
        )

    @traced
    @guarded("drop_database")
    def drop_database(self, name: str) -> ServiceResult:
        path = self._registry.drop(name)
        return ok(
            "drop_database",
            {"name": name, "path": str(path)},
            message=f"Database '{name}' dropped successfully",
        )

    @traced
    @guarded("backup_database")
    def backup_database(self, name: str, dest_path: str | Path) -> ServiceResult:
        """Copy a checkpointed, byte-identical image of *name* to *dest_path*."""
        info = self._registry.backup(name, dest_path)
        return ok(
            "backup_database",
            info,
            message=f"Database '{name}' backed up successfully to {info['path']}",
        )

    @traced
    @guarded("restore_database")
    def restore_database(self, src_path: str | Path, new_name: str) -> ServiceResult:
        """Register a validated copy of the backup at *src_path* as *new_name*."""
        info = self._registry.restore(src_path, new_name)
        return ok(
            "restore_database",
            info,
            message=f"Database '{new_name}' restored successfully from {info['source']}",
        )

    @traced
    @guarded("close_all_connections")
    def close_all_connections(self) -> ServiceResult:
        """Dispose every open engine; individual failures become warnings."""
        closed, failures = self._registry.close_all()
        return ok(
            "close_all_connections",
            {"closed": closed, "count": len(closed)},
            warnings=[f"Failed to close {failure}" for failure in failures],
        )
