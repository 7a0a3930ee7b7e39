"""BaseService and the ``guarded`` error boundary.

Every service receives the process's :class:`DatabaseRegistry` at
construction time and owns its transaction boundaries via
``self._registry.transaction(name)``.

Public service methods are wrapped in :func:`guarded`, which turns any
persistence-layer or bad-input exception into a failed ``ServiceResult``,
so callers only ever see the envelope.
"""

from __future__ import annotations

import functools
import logging
from collections.abc import Callable
from typing import TYPE_CHECKING, Any, Concatenate, ParamSpec, TypeVar

from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.exc import DBAPIError, IntegrityError, SQLAlchemyError

from memdbctl.infrastructure.database.errors import MemdbError
from memdbctl.services.result import ServiceError, ServiceResult

if TYPE_CHECKING:
    from memdbctl.config.settings import MemdbSettings
    from memdbctl.infrastructure.database.registry import DatabaseRegistry

logger = logging.getLogger(__name__)


class BaseService:
    """Abstract base for the service-layer classes.

    Usage::

        class DataService(BaseService):
            @guarded("count_records")
            def count_records(self, db: str, table: str) -> ServiceResult:
                with self._registry.transaction(db) as conn:
                    ...
    """

    def __init__(self, registry: DatabaseRegistry) -> None:
        self._registry = registry

    @property
    def settings(self) -> MemdbSettings:
        return self._registry.settings


def _driver_message(exc: DBAPIError) -> str:
    """The driver's own message, without SQLAlchemy's statement dump."""
    return str(exc.orig) if exc.orig is not None else str(exc)


def error_result(op: str, exc: Exception) -> ServiceResult:
    """Map *exc* onto the error taxonomy.

    Raises:
        Exception: *exc* itself when it belongs to no known category.
    """
    if isinstance(exc, MemdbError):
        code, message, detail = exc.code, exc.message, exc.detail
    elif isinstance(exc, IntegrityError):
        code, message, detail = "CONSTRAINT_VIOLATION", _driver_message(exc), {}
    elif isinstance(exc, DBAPIError):
        code, message, detail = "QUERY_ERROR", _driver_message(exc), {}
    elif isinstance(exc, SQLAlchemyError):
        code, message, detail = "QUERY_ERROR", str(exc), {}
    elif isinstance(exc, PydanticValidationError):
        code, message = "VALIDATION_ERROR", f"Invalid input for {op}"
        detail = {"errors": exc.errors(include_url=False, include_context=False)}
    elif isinstance(exc, (TypeError, ValueError)):
        # Wrongly typed arguments from in-process callers.
        code, message, detail = "VALIDATION_ERROR", f"Invalid input for {op}: {exc}", {}
    elif isinstance(exc, OSError):
        code, message, detail = "IO_ERROR", str(exc), {}
    else:
        raise exc
    return ServiceResult(
        ok=False,
        op=op,
        error=ServiceError(code=code, message=message, detail=detail),
    )


S = TypeVar("S", bound="BaseService")
P = ParamSpec("P")


def guarded(
    op: str,
) -> Callable[
    [Callable[Concatenate[S, P], ServiceResult]], Callable[Concatenate[S, P], ServiceResult]
]:
    """Decorator: convert persistence and input failures into ``ServiceResult(ok=False)``.

    The transaction context inside the method has already rolled back by
    the time the exception reaches this wrapper.
    """

    def decorator(
        func: Callable[Concatenate[S, P], ServiceResult],
    ) -> Callable[Concatenate[S, P], ServiceResult]:
        @functools.wraps(func)
        def wrapper(self: S, *args: P.args, **kwargs: P.kwargs) -> ServiceResult:
            try:
                return func(self, *args, **kwargs)
            except (MemdbError, SQLAlchemyError, OSError, TypeError, ValueError) as exc:
                logger.debug("%s failed: %s", op, exc, exc_info=True)
                return error_result(op, exc)

        return wrapper

    return decorator


def ok(op: str, data: dict[str, Any] | None = None, **fields: Any) -> ServiceResult:
    """Successful result for *op* carrying *data*."""
    return ServiceResult(ok=True, op=op, data=data or {}, **fields)
