"""DatabaseRegistry: the name to file to engine map for every named database.

One registry is constructed per process (CLI invocation or MCP server) and
passed by reference to every service.  Engines are opened lazily on first
access to a name and torn down together by :meth:`close_all`, which keeps
going past individual failures so no handle is left open.

Database ``<name>`` always lives at ``<data_dir>/<name>.db``.  The name
``memory`` is reserved for the knowledge graph and is created on demand.
"""

from __future__ import annotations

import logging
import os
import re
import shutil
import tempfile
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import TYPE_CHECKING, Any

import structlog
from sqlalchemy import create_engine
from sqlalchemy.exc import DBAPIError

from memdbctl.infrastructure.database.engine import checkpoint, create_db_engine, looks_like_sqlite
from memdbctl.infrastructure.database.errors import (
    AlreadyExistsError,
    NotFoundError,
    StorageIOError,
    ValidationError,
)

if TYPE_CHECKING:
    from collections.abc import Iterator

    from sqlalchemy import Connection
    from sqlalchemy.engine import Engine

    from memdbctl.config.settings import MemdbSettings

logger = logging.getLogger(__name__)

MEMORY_DB = "memory"
DB_SUFFIX = ".db"

_NAME_RE = re.compile(r"^[A-Za-z0-9_][A-Za-z0-9_-]*$")
_SIDE_FILES = ("-wal", "-shm", "-journal")


def validate_db_name(name: str) -> str:
    """Return *name* if it is a safe database name, else raise ValidationError.

    Names are restricted so ``<data_dir>/<name>.db`` can never point
    outside the data directory.
    """
    if not isinstance(name, str) or not _NAME_RE.match(name):
        msg = (
            f"Invalid database name: {name!r}. Use letters, digits, '_' or '-' "
            "(not starting with '-')."
        )
        raise ValidationError(msg, name=name)
    return name


def _copy_durably(src: Path, fd: int) -> None:
    """Copy *src* into the already-open file descriptor *fd* and fsync it."""
    with os.fdopen(fd, "wb") as out, src.open("rb") as inp:
        shutil.copyfileobj(inp, out)
        out.flush()
        os.fsync(out.fileno())


def _remove_side_files(path: Path) -> None:
    for suffix in _SIDE_FILES:
        path.with_name(path.name + suffix).unlink(missing_ok=True)


class DatabaseRegistry:
    """Owns every open engine, keyed by logical database name."""

    def __init__(self, settings: MemdbSettings) -> None:
        self._settings = settings
        self._data_dir = Path(settings.data_dir)
        self._data_dir.mkdir(parents=True, exist_ok=True)
        self._engines: dict[str, Engine] = {}
        # Names whose one-time table bootstrap committed on the current engine.
        self._bootstrapped: set[str] = set()
        self._lock = threading.RLock()

    def __enter__(self) -> DatabaseRegistry:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close_all()

    @property
    def settings(self) -> MemdbSettings:
        return self._settings

    @property
    def data_dir(self) -> Path:
        """Directory holding the ``<name>.db`` files."""
        return self._data_dir

    def path_for(self, name: str) -> Path:
        """Resolve the file path for database *name*."""
        return self._data_dir / f"{validate_db_name(name)}{DB_SUFFIX}"

    def exists(self, name: str) -> bool:
        """True if *name* is open, has a file on disk, or is the memory store."""
        with self._lock:
            return name == MEMORY_DB or name in self._engines or self.path_for(name).exists()

    def open_names(self) -> list[str]:
        """Names with a live engine, in opening order."""
        with self._lock:
            return list(self._engines)

    def is_bootstrapped(self, name: str) -> bool:
        with self._lock:
            return name in self._bootstrapped

    def mark_bootstrapped(self, name: str) -> None:
        """Record that *name*'s service tables exist until its engine is closed."""
        with self._lock:
            if name in self._engines:
                self._bootstrapped.add(name)

    # ------------------------------------------------------------------
    # Engine access
    # ------------------------------------------------------------------

    def _open(self, path: Path) -> Engine:
        return create_db_engine(path, journal_mode=self._settings.database.journal_mode)

    def engine(self, name: str) -> Engine:
        """Return the engine for *name*, opening it on first access.

        Raises:
            NotFoundError: No file exists for *name* (never for ``memory``).
        """
        with self._lock:
            engine = self._engines.get(name)
            if engine is not None:
                return engine
            path = self.path_for(name)
            if name != MEMORY_DB and not path.exists():
                raise NotFoundError(f"Database '{name}' does not exist", name=name)
            engine = self._open(path)
            self._engines[name] = engine
            logger.debug("Opened database %s at %s", name, path)
            return engine

    @contextmanager
    def transaction(self, name: str) -> Iterator[Connection]:
        """One SQLite transaction on database *name*.

        Commits when the block exits normally and rolls back on any
        exception, which then propagates to the caller.  Log records emitted
        inside the block carry ``db=<name>``.

        Usage::

            with registry.transaction("memory") as conn:
                insert_rows(conn, "entities", records)
                insert_rows(conn, "observations", observations)
        """
        with structlog.contextvars.bound_contextvars(db=name), self.engine(name).begin() as conn:
            yield conn

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def create(self, name: str) -> Path:
        """Create an empty database file for *name* and open it."""
        with self._lock:
            path = self.path_for(name)
            if name == MEMORY_DB:
                raise AlreadyExistsError(
                    f"Database '{name}' already exists (reserved for the knowledge graph)",
                    name=name,
                )
            if name in self._engines or path.exists():
                raise AlreadyExistsError(f"Database '{name}' already exists", name=name)
            engine = self._open(path)
            # First connect materializes the file and writes the journal mode.
            with engine.connect():
                pass
            self._engines[name] = engine
            logger.debug("Created database %s at %s", name, path)
            return path

    def drop(self, name: str) -> Path:
        """Close *name*'s engine and delete its file (plus WAL side files)."""
        with self._lock:
            if name == MEMORY_DB:
                raise ValidationError(
                    f"Database '{name}' is reserved for the knowledge graph and cannot be dropped",
                    name=name,
                )
            path = self.path_for(name)
            if name not in self._engines and not path.exists():
                raise NotFoundError(f"Database '{name}' does not exist", name=name)
            engine = self._engines.pop(name, None)
            self._bootstrapped.discard(name)
            if engine is not None:
                engine.dispose()
            try:
                path.unlink(missing_ok=True)
                _remove_side_files(path)
            except OSError as exc:
                raise StorageIOError(f"Could not delete {path}: {exc}", name=name) from exc
            logger.debug("Dropped database %s", name)
            return path

    def entries(self) -> list[dict[str, Any]]:
        """Every known database: the memory store first, then by name."""
        with self._lock:
            names = set(self._engines)
            for candidate in self._data_dir.glob(f"*{DB_SUFFIX}"):
                if candidate.is_file() and _NAME_RE.match(candidate.stem):
                    names.add(candidate.stem)
            names.discard(MEMORY_DB)
            ordered = [MEMORY_DB, *sorted(names)]
            return [
                {
                    "name": name,
                    "path": str(self.path_for(name)),
                    "type": "sqlite",
                    "reserved": name == MEMORY_DB,
                }
                for name in ordered
            ]

    def close_all(self) -> tuple[list[str], list[str]]:
        """Dispose every engine; never stops early.

        Returns:
            ``(closed, failures)``: names disposed cleanly, and one
            ``"<name>: <error>"`` string per engine whose dispose raised.
        """
        with self._lock:
            engines = list(self._engines.items())
            self._engines.clear()
            self._bootstrapped.clear()

        closed: list[str] = []
        failures: list[str] = []
        for name, engine in engines:
            try:
                engine.dispose()
            except Exception as exc:  # noqa: BLE001
                logger.warning("Failed to close database %s: %s", name, exc)
                failures.append(f"{name}: {exc}")
            else:
                closed.append(name)
        return closed, failures

    # ------------------------------------------------------------------
    # Backup / restore
    # ------------------------------------------------------------------

    def backup(self, name: str, dest_path: Path | str) -> dict[str, Any]:
        """Copy *name*'s file byte-for-byte to *dest_path*.

        The WAL is checkpointed first so the main file holds every
        committed write.  The copy lands in a temporary sibling of
        *dest_path* and is renamed into place only once fully written.
        """
        with self._lock:
            engine = self.engine(name)
            source = self.path_for(name)
            dest = Path(dest_path).expanduser().resolve()
            if dest == source.resolve():
                raise ValidationError("Backup destination is the live database file", name=name)

            try:
                dest.parent.mkdir(parents=True, exist_ok=True)
                checkpoint(engine)
                fd, tmp_name = tempfile.mkstemp(
                    prefix=f".{dest.name}.", suffix=".tmp", dir=dest.parent
                )
                tmp = Path(tmp_name)
                try:
                    _copy_durably(source, fd)
                    os.replace(tmp, dest)
                except BaseException:
                    tmp.unlink(missing_ok=True)
                    raise
            except OSError as exc:
                raise StorageIOError(f"Backup of '{name}' failed: {exc}", name=name) from exc

            size = dest.stat().st_size
            logger.debug("Backed up %s to %s (%d bytes)", name, dest, size)
            return {"name": name, "path": str(dest), "size": size}

    def restore(self, src_path: Path | str, new_name: str) -> dict[str, Any]:
        """Register a copy of the backup at *src_path* as database *new_name*.

        The source must carry the SQLite header (an empty file counts as an
        empty database) and pass ``PRAGMA quick_check``.  Validation runs on
        a staged copy inside the data directory; only a valid copy is
        renamed onto ``<new_name>.db``.
        """
        with self._lock:
            target = self.path_for(new_name)
            if self.exists(new_name):
                raise AlreadyExistsError(f"Database '{new_name}' already exists", name=new_name)

            src = Path(src_path).expanduser()
            if not src.is_file():
                raise StorageIOError(f"Backup file not found: {src}", path=str(src))
            if src.stat().st_size and not looks_like_sqlite(src):
                raise StorageIOError(f"Not a SQLite database file: {src}", path=str(src))

            try:
                fd, tmp_name = tempfile.mkstemp(
                    prefix=f".{new_name}.", suffix=".restore", dir=self._data_dir
                )
                tmp = Path(tmp_name)
                try:
                    _copy_durably(src, fd)
                    _verify_integrity(tmp)
                    os.replace(tmp, target)
                except BaseException:
                    tmp.unlink(missing_ok=True)
                    _remove_side_files(tmp)
                    raise
            except OSError as exc:
                raise StorageIOError(f"Restore from {src} failed: {exc}", path=str(src)) from exc

            self._engines[new_name] = self._open(target)
            logger.debug("Restored %s from %s", new_name, src)
            return {"name": new_name, "path": str(target), "source": str(src)}


def _verify_integrity(path: Path) -> None:
    """Raise StorageIOError unless *path* opens and passes ``quick_check``."""
    checker = create_engine(f"sqlite:///{path}")
    try:
        with checker.connect() as conn:
            verdict = conn.exec_driver_sql("PRAGMA quick_check").scalar()
    except DBAPIError as exc:
        raise StorageIOError(f"Not a valid SQLite database: {exc.orig}", path=str(path)) from exc
    finally:
        checker.dispose()
        _remove_side_files(path)
    if verdict != "ok":
        raise StorageIOError(f"Integrity check failed: {verdict}", path=str(path))
