"""Named SQLite databases: engines, registry, schema catalog, and row access."""

from memdbctl.infrastructure.database.engine import create_db_engine
from memdbctl.infrastructure.database.errors import (
    AlreadyExistsError,
    ConstraintViolationError,
    MemdbError,
    NotFoundError,
    QueryError,
    StorageIOError,
    ValidationError,
)
from memdbctl.infrastructure.database.registry import MEMORY_DB, DatabaseRegistry
from memdbctl.infrastructure.database.schema import (
    ENTITIES,
    MEMORY_TABLES,
    OBSERVATIONS,
    RELATIONS,
)

__all__ = [
    "ENTITIES",
    "MEMORY_DB",
    "MEMORY_TABLES",
    "OBSERVATIONS",
    "RELATIONS",
    "AlreadyExistsError",
    "ConstraintViolationError",
    "DatabaseRegistry",
    "MemdbError",
    "NotFoundError",
    "QueryError",
    "StorageIOError",
    "ValidationError",
    "create_db_engine",
]
