"""Tests for descriptor-driven DDL and table introspection."""

from __future__ import annotations

from pathlib import Path

import pytest
from sqlalchemy.dialects import sqlite

from memdbctl.infrastructure.database import catalog
from memdbctl.infrastructure.database.catalog import ColumnSpec, TableSchema
from memdbctl.infrastructure.database.engine import create_db_engine
from memdbctl.infrastructure.database.errors import (
    AlreadyExistsError,
    NotFoundError,
    ValidationError,
)

PREPARER = sqlite.dialect().identifier_preparer

USERS = TableSchema(
    columns=(
        ColumnSpec("id", "INTEGER", ("PRIMARY KEY",)),
        ColumnSpec("name", "TEXT", ("NOT NULL",)),
        ColumnSpec("email", "TEXT", ("UNIQUE",)),
        ColumnSpec("score", "REAL", ("DEFAULT 0",)),
    )
)


@pytest.fixture
def engine(tmp_path: Path):
    eng = create_db_engine(tmp_path / "c.db")
    try:
        yield eng
    finally:
        eng.dispose()


class TestTableSchemaFromDict:
    def test_parses_columns_and_unique(self) -> None:
        schema = TableSchema.from_dict(
            {
                "columns": [
                    {"name": "a", "type": "TEXT"},
                    {"name": "b", "type": "INTEGER", "constraints": ["NOT NULL"]},
                ],
                "unique": [["a", "b"]],
            }
        )
        assert schema.columns[1] == ColumnSpec("b", "INTEGER", ("NOT NULL",))
        assert schema.unique == (("a", "b"),)

    @pytest.mark.parametrize(
        "raw",
        [
            None,
            {"columns": "id INTEGER"},
            {"columns": [{"type": "TEXT"}]},
            {"columns": [{"name": "a"}]},
            {"columns": [{"name": "a", "type": "TEXT", "constraints": "NOT NULL"}]},
            {"columns": [{"name": "a", "type": "TEXT"}], "unique": ["a"]},
        ],
    )
    def test_rejects_malformed(self, raw: object) -> None:
        with pytest.raises(ValidationError):
            TableSchema.from_dict(raw)


class TestRenderConstraint:
    @pytest.mark.parametrize(
        ("raw", "expected"),
        [
            ("not null", "NOT NULL"),
            ("unique", "UNIQUE"),
            ("primary key autoincrement", "PRIMARY KEY AUTOINCREMENT"),
            ("PRIMARY KEY DESC", "PRIMARY KEY DESC"),
            ("default 42", "DEFAULT 42"),
            ("DEFAULT 'it''s'", "DEFAULT 'it''s'"),
            ("default current_timestamp", "DEFAULT CURRENT_TIMESTAMP"),
            ("collate nocase", "COLLATE NOCASE"),
            (
                "references users(id) on delete cascade",
                'REFERENCES "users"("id") ON DELETE CASCADE',
            ),
        ],
    )
    def test_allow_listed(self, raw: str, expected: str) -> None:
        assert catalog.render_constraint(raw, PREPARER) == expected

    @pytest.mark.parametrize(
        "raw",
        ["CHECK (1)", "DEFAULT (random())", "NOT NULL; DROP TABLE users", "GENERATED ALWAYS"],
    )
    def test_rejects_everything_else(self, raw: str) -> None:
        with pytest.raises(ValidationError):
            catalog.render_constraint(raw, PREPARER)


class TestBuildCreateTableSql:
    def test_quotes_identifiers(self) -> None:
        ddl = catalog.build_create_table_sql("users", USERS, PREPARER)
        assert ddl.startswith('CREATE TABLE "users" (')
        assert '"id" INTEGER PRIMARY KEY' in ddl
        assert '"score" REAL DEFAULT 0' in ddl

    def test_if_not_exists(self) -> None:
        ddl = catalog.build_create_table_sql("users", USERS, PREPARER, if_not_exists=True)
        assert ddl.startswith("CREATE TABLE IF NOT EXISTS")

    def test_unique_group(self) -> None:
        schema = TableSchema(
            columns=(ColumnSpec("a", "TEXT"), ColumnSpec("b", "TEXT")),
            unique=(("A", "b"),),
        )
        ddl = catalog.build_create_table_sql("pairs", schema, PREPARER)
        assert 'UNIQUE ("a", "b")' in ddl

    @pytest.mark.parametrize(
        ("table", "schema"),
        [
            ("bad name", USERS),
            ("users; DROP TABLE x", USERS),
            ("sqlite_stuff", USERS),
            ("empty", TableSchema(columns=())),
            ("t", TableSchema(columns=(ColumnSpec("a b", "TEXT"),))),
            ("t", TableSchema(columns=(ColumnSpec("a", "TEXT); DROP TABLE x; --"),))),
            ("t", TableSchema(columns=(ColumnSpec("a", "TEXT"), ColumnSpec("A", "TEXT")))),
            ("t", TableSchema(columns=(ColumnSpec("a", "TEXT"),), unique=(("zz",),))),
        ],
    )
    def test_rejects_invalid(self, table: str, schema: TableSchema) -> None:
        with pytest.raises(ValidationError):
            catalog.build_create_table_sql(table, schema, PREPARER)

    def test_accepts_parameterized_types(self) -> None:
        schema = TableSchema(
            columns=(ColumnSpec("a", "varchar(255)"), ColumnSpec("b", "DECIMAL(10, 2)"))
        )
        ddl = catalog.build_create_table_sql("t", schema, PREPARER)
        assert '"a" VARCHAR(255)' in ddl
        assert '"b" DECIMAL(10, 2)' in ddl


class TestDdlAndIntrospection:
    def test_create_list_describe_drop(self, engine) -> None:
        with engine.begin() as conn:
            assert catalog.create_table(conn, "users", USERS) is True
            assert catalog.list_tables(conn) == ["users"]
            info = catalog.describe_table(conn, "users")

        assert info["name"] == "users"
        by_name = {col["name"]: col for col in info["columns"]}
        assert [col["name"] for col in info["columns"]] == ["id", "name", "email", "score"]
        assert by_name["id"]["primaryKey"] is True
        assert by_name["id"]["nullable"] is False
        assert by_name["name"]["nullable"] is False
        assert by_name["email"]["nullable"] is True
        assert by_name["score"]["default"] == "0"

        with engine.begin() as conn:
            catalog.drop_table(conn, "users")
            assert catalog.list_tables(conn) == []

    def test_create_existing_table(self, engine) -> None:
        with engine.begin() as conn:
            catalog.create_table(conn, "users", USERS)
            with pytest.raises(AlreadyExistsError):
                catalog.create_table(conn, "users", USERS)
            assert catalog.create_table(conn, "users", USERS, if_not_exists=True) is False

    def test_describe_missing_table(self, engine) -> None:
        with engine.begin() as conn, pytest.raises(NotFoundError):
            catalog.describe_table(conn, "ghost")

    def test_drop_missing_table(self, engine) -> None:
        with engine.begin() as conn, pytest.raises(NotFoundError):
            catalog.drop_table(conn, "ghost")
