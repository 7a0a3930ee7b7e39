"""Telemetry primitives: Span, @traced, trace_span.

Near-zero overhead when disabled (single ContextVar.get per call).
When enabled via --verbose, builds hierarchical span trees with timing
and injects them into ServiceResult.meta.
"""

from __future__ import annotations

import functools
import time
from collections.abc import Callable, Generator
from contextlib import contextmanager
from contextvars import ContextVar
from dataclasses import dataclass, field
from typing import Any, ParamSpec, TypeVar

import structlog

from memdbctl.services.result import ServiceResult

_log = structlog.get_logger("memdbctl.telemetry")

_verbose_enabled: ContextVar[bool] = ContextVar("_verbose_enabled", default=False)
_current_span: ContextVar[Span | None] = ContextVar("_current_span", default=None)


@dataclass
class Span:
    """Hierarchical timing span with free-form annotations."""

    name: str
    parent: Span | None = None
    children: list[Span] = field(default_factory=list)
    start_time: float = field(default_factory=time.perf_counter)
    end_time: float | None = None
    annotations: dict[str, Any] = field(default_factory=dict)

    @property
    def duration_ms(self) -> float:
        if self.end_time is None:
            return 0.0
        return (self.end_time - self.start_time) * 1000

    def end(self) -> None:
        self.end_time = time.perf_counter()

    def annotate(self, key: str, value: Any) -> None:
        self.annotations[key] = value

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {
            "name": self.name,
            "duration_ms": round(self.duration_ms, 2),
        }
        if self.annotations:
            result["annotations"] = self.annotations
        if self.children:
            result["children"] = [c.to_dict() for c in self.children]
        return result


@contextmanager
def trace_span(name: str) -> Generator[Span | None]:
    """Open a child span under the current one; yields None when disabled."""
    parent = _current_span.get() if _verbose_enabled.get() else None
    if parent is None:
        yield None
        return

    child = Span(name=name, parent=parent)
    parent.children.append(child)
    token = _current_span.set(child)
    try:
        yield child
    finally:
        child.end()
        _current_span.reset(token)


def _finish(span: Span, *, ok: bool) -> None:
    span.end()
    _log.debug(
        "span.complete",
        span_name=span.name,
        duration_ms=round(span.duration_ms, 2),
        ok=ok,
        children=len(span.children),
    )


P = ParamSpec("P")
R = TypeVar("R")


def traced(func: Callable[P, R]) -> Callable[P, R]:
    """Time a service method and merge the span into ``ServiceResult.meta``."""

    @functools.wraps(func)
    def wrapper(*args: P.args, **kwargs: P.kwargs) -> R:
        if not _verbose_enabled.get():
            return func(*args, **kwargs)

        span = Span(name=func.__qualname__)
        token = _current_span.set(span)
        try:
            result = func(*args, **kwargs)
        except Exception:
            _finish(span, ok=False)
            raise
        finally:
            _current_span.reset(token)

        ok = result.ok if isinstance(result, ServiceResult) else True
        _finish(span, ok=ok)
        if isinstance(result, ServiceResult):
            meta = {**(result.meta or {}), "telemetry": span.to_dict()}
            result = result.model_copy(update={"meta": meta})  # type: ignore[assignment]
        return result

    return wrapper


def enable_telemetry() -> None:
    """Enable verbose telemetry (called by AppContext at startup)."""
    _verbose_enabled.set(True)


def disable_telemetry() -> None:
    _verbose_enabled.set(False)


def get_current_span() -> Span | None:
    """The active span, or None when telemetry is off."""
    if not _verbose_enabled.get():
        return None
    return _current_span.get()
