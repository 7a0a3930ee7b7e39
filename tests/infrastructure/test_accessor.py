"""Tests for the generic equality-filtered accessor."""

from __future__ import annotations

from pathlib import Path

import pytest
from sqlalchemy.exc import IntegrityError

from memdbctl.infrastructure.database import accessor
from memdbctl.infrastructure.database.engine import create_db_engine
from memdbctl.infrastructure.database.errors import NotFoundError, QueryError, ValidationError


@pytest.fixture
def engine(tmp_path: Path):
    eng = create_db_engine(tmp_path / "a.db")
    with eng.begin() as conn:
        conn.exec_driver_sql(
            "CREATE TABLE users (id INTEGER PRIMARY KEY, name TEXT NOT NULL, "
            "email TEXT UNIQUE, age INTEGER)"
        )
    try:
        yield eng
    finally:
        eng.dispose()


@pytest.fixture
def seeded(engine):
    with engine.begin() as conn:
        accessor.insert_rows(
            conn,
            "users",
            [
                {"name": "Ada", "email": "ada@example.com", "age": 36},
                {"name": "Bob", "email": "bob@example.com", "age": None},
                {"name": "Cy", "email": None, "age": 36},
            ],
        )
    return engine


class TestClampLimit:
    @pytest.mark.parametrize(
        ("limit", "expected"),
        [(None, 100), (5, 5), (0, 1), (-3, 1), (5000, 1000)],
    )
    def test_clamps(self, limit: int | None, expected: int) -> None:
        assert accessor.clamp_limit(limit, default=100, maximum=1000) == expected

    @pytest.mark.parametrize("limit", ["ten", "5", 2.5, True])
    def test_non_integer_rejected(self, limit: object) -> None:
        with pytest.raises(ValidationError):
            accessor.clamp_limit(limit, default=100, maximum=1000)  # type: ignore[arg-type]


class TestSelectAndCount:
    def test_select_all(self, seeded) -> None:
        with seeded.begin() as conn:
            rows, columns = accessor.select_rows(conn, "users", order_by="id")
        assert columns == ["id", "name", "email", "age"]
        assert [row["name"] for row in rows] == ["Ada", "Bob", "Cy"]

    def test_equality_conditions_are_anded(self, seeded) -> None:
        with seeded.begin() as conn:
            rows, _ = accessor.select_rows(conn, "users", {"age": 36, "name": "Cy"})
        assert [row["name"] for row in rows] == ["Cy"]

    def test_none_matches_null(self, seeded) -> None:
        with seeded.begin() as conn:
            rows, _ = accessor.select_rows(conn, "users", {"age": None})
        assert [row["name"] for row in rows] == ["Bob"]

    def test_column_names_case_insensitive(self, seeded) -> None:
        with seeded.begin() as conn:
            rows, _ = accessor.select_rows(conn, "users", {"NAME": "Ada"}, order_by="ID")
        assert len(rows) == 1

    def test_order_limit_offset(self, seeded) -> None:
        with seeded.begin() as conn:
            rows, _ = accessor.select_rows(
                conn, "users", order_by="name", order_direction="desc", limit=2, offset=1
            )
        assert [row["name"] for row in rows] == ["Bob", "Ada"]

    def test_unknown_column(self, seeded) -> None:
        with seeded.begin() as conn, pytest.raises(ValidationError) as exc_info:
            accessor.select_rows(conn, "users", {"nickname": "x"})
        assert exc_info.value.detail["allowed"] == ["id", "name", "email", "age"]

    def test_bad_direction(self, seeded) -> None:
        with seeded.begin() as conn, pytest.raises(ValidationError):
            accessor.select_rows(conn, "users", order_by="id", order_direction="SIDEWAYS")

    def test_missing_table(self, engine) -> None:
        with engine.begin() as conn, pytest.raises(NotFoundError):
            accessor.select_rows(conn, "ghost")

    def test_injection_literal_is_just_a_value(self, seeded) -> None:
        payload = "'; DROP TABLE users; --"
        with seeded.begin() as conn:
            rows, _ = accessor.select_rows(conn, "users", {"name": payload})
            assert rows == []
            assert accessor.count_rows(conn, "users") == 3

    def test_count_with_conditions(self, seeded) -> None:
        with seeded.begin() as conn:
            assert accessor.count_rows(conn, "users", {"age": 36}) == 2


class TestWrites:
    def test_insert_requires_records(self, engine) -> None:
        with engine.begin() as conn, pytest.raises(ValidationError):
            accessor.insert_rows(conn, "users", [])

    def test_insert_rejects_non_scalar(self, engine) -> None:
        with engine.begin() as conn, pytest.raises(ValidationError):
            accessor.insert_rows(conn, "users", [{"name": {"first": "Ada"}}])

    def test_insert_validates_before_writing(self, engine) -> None:
        with engine.begin() as conn:
            with pytest.raises(ValidationError):
                accessor.insert_rows(conn, "users", [{"name": "Ok"}, {"bogus": 1}])
            assert accessor.count_rows(conn, "users") == 0

    def test_constraint_violation_propagates(self, seeded) -> None:
        with seeded.begin() as conn, pytest.raises(IntegrityError):
            accessor.insert_rows(conn, "users", [{"name": "Dup", "email": "ada@example.com"}])

    def test_update(self, seeded) -> None:
        with seeded.begin() as conn:
            assert accessor.update_rows(conn, "users", {"age": 36}, {"age": 37}) == 2
            assert accessor.count_rows(conn, "users", {"age": 37}) == 2

    def test_update_requires_conditions(self, seeded) -> None:
        with seeded.begin() as conn, pytest.raises(ValidationError):
            accessor.update_rows(conn, "users", {}, {"age": 1})

    def test_update_requires_values(self, seeded) -> None:
        with seeded.begin() as conn, pytest.raises(ValidationError):
            accessor.update_rows(conn, "users", {"id": 1}, {})

    def test_delete(self, seeded) -> None:
        with seeded.begin() as conn:
            assert accessor.delete_rows(conn, "users", {"name": "Bob"}) == 1
            assert accessor.count_rows(conn, "users") == 2

    def test_delete_requires_conditions(self, seeded) -> None:
        with seeded.begin() as conn, pytest.raises(ValidationError):
            accessor.delete_rows(conn, "users", {})


class TestExecuteRaw:
    def test_positional_parameters(self, seeded) -> None:
        with seeded.begin() as conn:
            result = accessor.execute_raw(
                conn, "SELECT name FROM users WHERE age = ? ORDER BY id", [36]
            )
        assert result == {
            "rows": [{"name": "Ada"}, {"name": "Cy"}],
            "columns": ["name"],
            "count": 2,
        }

    def test_named_parameters(self, seeded) -> None:
        with seeded.begin() as conn:
            result = accessor.execute_raw(
                conn, "SELECT id FROM users WHERE name = :name", {"name": "Bob"}
            )
        assert result["count"] == 1

    def test_write_reports_changes(self, seeded) -> None:
        with seeded.begin() as conn:
            result = accessor.execute_raw(conn, "UPDATE users SET age = ? WHERE age IS NULL", [1])
        assert result == {"changes": 1}

    def test_injection_literal_bound_as_value(self, seeded) -> None:
        with seeded.begin() as conn:
            accessor.execute_raw(
                conn,
                "INSERT INTO users (name) VALUES (?)",
                ["'; DROP TABLE users; --"],
            )
            assert accessor.count_rows(conn, "users") == 4

    @pytest.mark.parametrize(
        "sql",
        [
            "BEGIN",
            "commit",
            "  ROLLBACK",
            "SAVEPOINT s1",
            "ATTACH 'x.db' AS x",
            "/* x */ COMMIT",
            "-- end it\nCOMMIT",
            "/* a */ -- b\n  /* multi\nline */ ROLLBACK",
        ],
    )
    def test_transaction_control_rejected(self, seeded, sql: str) -> None:
        with seeded.begin() as conn, pytest.raises(ValidationError):
            accessor.execute_raw(conn, sql)

    def test_syntax_error(self, seeded) -> None:
        with seeded.begin() as conn, pytest.raises(QueryError):
            accessor.execute_raw(conn, "SELEC * FROM users")

    def test_parameter_count_mismatch(self, seeded) -> None:
        with seeded.begin() as conn, pytest.raises(QueryError):
            accessor.execute_raw(conn, "SELECT * FROM users WHERE id = ? AND age = ?", [1])

    def test_empty_statement(self, seeded) -> None:
        with seeded.begin() as conn, pytest.raises(ValidationError):
            accessor.execute_raw(conn, "   ")
