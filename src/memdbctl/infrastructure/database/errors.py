"""Error taxonomy for the persistence layer.

Infrastructure functions raise these; the service layer converts them into
``ServiceResult`` failures keyed by :attr:`MemdbError.code`.
"""

from __future__ import annotations

from typing import Any


class MemdbError(Exception):
    """Base class for every failure the persistence layer reports."""

    code = "ERROR"

    def __init__(self, message: str, **detail: Any) -> None:
        super().__init__(message)
        self.message = message
        self.detail: dict[str, Any] = detail


class NotFoundError(MemdbError):
    """A database, table, entity or relation does not exist."""

    code = "NOT_FOUND"


class AlreadyExistsError(MemdbError):
    """A create call collided with something that already exists."""

    code = "ALREADY_EXISTS"


class ValidationError(MemdbError):
    """Malformed schema, empty required condition, or unknown column."""

    code = "VALIDATION_ERROR"


class ConstraintViolationError(MemdbError):
    """A uniqueness or foreign-key breach reported by the storage engine."""

    code = "CONSTRAINT_VIOLATION"


class StorageIOError(MemdbError):
    """File system, backup, or restore failure."""

    code = "IO_ERROR"


class QueryError(MemdbError):
    """Malformed raw SQL or a parameter-count mismatch."""

    code = "QUERY_ERROR"
