"""ServiceResult and ServiceError: the envelope every operation returns.

The CLI and the MCP adapter consume this type and nothing else; no
exception crosses the service boundary.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field


class ServiceError(BaseModel):
    """Structured error payload within a ServiceResult."""

    model_config = {"frozen": True}

    code: str
    message: str
    detail: dict[str, Any] = Field(default_factory=dict)


class ServiceResult(BaseModel):
    """Uniform outcome of a service operation.

    Attributes:
        ok: Whether the operation succeeded.
        op: Name of the operation (e.g. ``"insert_data"``).
        message: Short human-readable summary, when the operation has one.
        data: Operation-specific payload on success.
        warnings: Non-fatal issues encountered during the operation.
        error: Structured error if ``ok`` is False.
        meta: Optional metadata (timing spans).
    """

    model_config = {"frozen": True}

    ok: bool
    op: str
    message: str | None = None
    data: dict[str, Any] = Field(default_factory=dict)
    warnings: list[str] = Field(default_factory=list)
    error: ServiceError | None = None
    meta: dict[str, Any] | None = None

    @classmethod
    def failure(
        cls,
        op: str,
        code: str,
        message: str,
        **detail: Any,
    ) -> ServiceResult:
        """Shorthand for ``ServiceResult(ok=False, ..., error=ServiceError(...))``."""
        return cls(ok=False, op=op, error=ServiceError(code=code, message=message, detail=detail))
