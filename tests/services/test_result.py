"""Tests for ServiceResult and ServiceError."""

import json

import pytest
from pydantic import ValidationError

from memdbctl.services.result import ServiceError, ServiceResult


class TestServiceResult:
    def test_success_construction(self) -> None:
        result = ServiceResult(ok=True, op="insert_data", data={"insertedCount": 2})
        assert result.ok is True
        assert result.op == "insert_data"
        assert result.data == {"insertedCount": 2}
        assert result.message is None
        assert result.warnings == []
        assert result.error is None
        assert result.meta is None

    def test_error_construction(self) -> None:
        error = ServiceError(code="NOT_FOUND", message="Table 'ghost' does not exist")
        result = ServiceResult(ok=False, op="describe_table", error=error)
        assert result.ok is False
        assert result.error is not None
        assert result.error.code == "NOT_FOUND"

    def test_failure_shorthand(self) -> None:
        result = ServiceResult.failure("drop_database", "NOT_FOUND", "missing", name="ghost")
        assert result.ok is False
        assert result.error == ServiceError(
            code="NOT_FOUND", message="missing", detail={"name": "ghost"}
        )

    def test_json_serialization(self) -> None:
        result = ServiceResult(
            ok=True,
            op="count_records",
            message="done",
            data={"count": 3},
            meta={"duration_ms": 4},
        )
        parsed = json.loads(result.model_dump_json())
        assert parsed["ok"] is True
        assert parsed["message"] == "done"
        assert parsed["data"]["count"] == 3
        assert parsed["meta"]["duration_ms"] == 4

    def test_frozen(self) -> None:
        result = ServiceResult(ok=True, op="test")
        with pytest.raises(ValidationError):
            result.ok = False  # type: ignore[misc]


class TestServiceError:
    def test_default_detail(self) -> None:
        assert ServiceError(code="QUERY_ERROR", message="bad").detail == {}
