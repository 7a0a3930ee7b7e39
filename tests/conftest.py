"""Shared pytest fixtures for memdbctl tests."""

from __future__ import annotations

from collections.abc import Iterator
from pathlib import Path

import pytest
from click.testing import CliRunner

from memdbctl.config.settings import MemdbSettings
from memdbctl.infrastructure.database.registry import DatabaseRegistry
from memdbctl.services.memory import MemoryService
from memdbctl.services.telemetry import disable_telemetry


@pytest.fixture(autouse=True)
def _clean_environment(monkeypatch: pytest.MonkeyPatch) -> Iterator[None]:
    """Keep host config out of tests and reset telemetry afterwards."""
    for var in ("MEMDBCTL_CONFIG", "MEMDBCTL_DATA_DIR"):
        monkeypatch.delenv(var, raising=False)
    yield
    disable_telemetry()


@pytest.fixture
def cli_runner() -> CliRunner:
    """Provide a Click CLI test runner."""
    return CliRunner()


@pytest.fixture
def data_dir(tmp_path: Path) -> Path:
    """Directory holding the ``<name>.db`` files for one test."""
    path = tmp_path / "data"
    path.mkdir()
    return path


@pytest.fixture
def settings(data_dir: Path) -> MemdbSettings:
    return MemdbSettings.from_cli(data_dir=data_dir)


@pytest.fixture
def registry(settings: MemdbSettings) -> Iterator[DatabaseRegistry]:
    """Registry over the temp data directory; every engine closed at teardown."""
    reg = DatabaseRegistry(settings)
    try:
        yield reg
    finally:
        reg.close_all()


@pytest.fixture
def memory(registry: DatabaseRegistry) -> MemoryService:
    return MemoryService(registry)


@pytest.fixture
def users_db(registry: DatabaseRegistry) -> str:
    """A ``proj`` database with an empty ``users`` table."""
    from memdbctl.services.database import DatabaseService
    from memdbctl.services.schema import SchemaService

    assert DatabaseService(registry).create_database("proj").ok
    result = SchemaService(registry).create_table(
        "proj",
        "users",
        {
            "columns": [
                {"name": "id", "type": "INTEGER", "constraints": ["PRIMARY KEY"]},
                {"name": "name", "type": "TEXT", "constraints": ["NOT NULL"]},
                {"name": "email", "type": "TEXT", "constraints": ["UNIQUE"]},
            ]
        },
    )
    assert result.ok, result.error
    return "proj"


@pytest.fixture
def _isolated_data_dir(data_dir: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    """Change CWD to the temp data directory so the CLI writes there.

    Use via ``@pytest.mark.usefixtures("_isolated_data_dir")`` on command
    test classes.
    """
    monkeypatch.chdir(data_dir)
