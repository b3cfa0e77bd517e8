"""Database: a directory of entity files sharing one password.

    db = Database("data/app", password="s3cret", auto_commit_interval=10.0)
    users = db.collection("users")            # data/app/users.enc
    settings = db.document("settings", encrypt=False)   # data/app/settings.json

The database hands out at most one live instance per entity file, so the
cache for a file is never split between two objects. It does not coordinate
with other processes: one process owns a database directory at a time.
"""

from __future__ import annotations

import contextlib
import logging
import shutil
import threading
from pathlib import Path
from typing import TYPE_CHECKING, TypeVar

from octavia.collection import Collection
from octavia.document import Document
from octavia.entity import ENCRYPTED_SUFFIX, PLAIN_SUFFIX, check_name, entity_path
from octavia.envelope import PBKDF2_ITERATIONS
from octavia.errors import (
    CreateFailedError,
    EntityDeletedError,
    InvalidArgumentError,
    InvalidNameError,
    InvalidPasswordError,
    StorageIOError,
)
from octavia.models import DatabaseInfo, stat_times

if TYPE_CHECKING:
    from types import TracebackType

    from octavia.entity import Entity

logger = logging.getLogger("octavia.database")

DEFAULT_AUTO_COMMIT_INTERVAL = 10.0  # seconds

_E = TypeVar("_E", Collection, Document)


class Database:
    """Factory and owner of the entities stored under one root directory."""

    def __init__(
        self,
        path: Path | str,
        password: str,
        auto_commit_interval: float | None = DEFAULT_AUTO_COMMIT_INTERVAL,
        *,
        kdf_iterations: int = PBKDF2_ITERATIONS,
    ) -> None:
        if not isinstance(path, (str, Path)) or not str(path).strip():
            msg = f"Database name is invalid: {path!r}"
            raise InvalidNameError(msg)
        if not isinstance(password, str) or not password.strip():
            msg = "Database password is invalid"
            raise InvalidPasswordError(msg)
        if auto_commit_interval is not None and auto_commit_interval < 0:
            msg = f"auto_commit_interval must be >= 0, got {auto_commit_interval!r}"
            raise InvalidArgumentError(msg)

        self.path = Path(path).expanduser().resolve()
        self._password = password
        self.auto_commit_interval = auto_commit_interval or None
        self.kdf_iterations = kdf_iterations
        self._entities: dict[Path, Entity] = {}
        self._registry_lock = threading.Lock()
        self._deleted = False

        try:
            self.path.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            msg = f"Failed to create database {self.path}: {exc}"
            raise CreateFailedError(msg, self.path) from exc

    @property
    def name(self) -> str:
        return self.path.name

    # ------------------------------------------------------------------
    # Entity factory
    # ------------------------------------------------------------------

    def _open(self, cls: type[_E], name: str, encrypt: bool) -> _E:
        if self._deleted:
            msg = f"Database {self.path} has been deleted"
            raise EntityDeletedError(msg)
        check_name(name, cls.kind)
        file_path = entity_path(self.path, name, encrypt)
        with self._registry_lock:
            existing = self._entities.get(file_path)
            if existing is not None and not existing.deleted:
                if not isinstance(existing, cls):
                    msg = f"{name!r} is already open as a {existing.kind}"
                    raise InvalidArgumentError(msg)
                return existing
            entity = cls(
                name,
                self.path,
                self._password,
                encrypt=encrypt,
                auto_commit_interval=self.auto_commit_interval,
                kdf_iterations=self.kdf_iterations,
            )
            self._entities[file_path] = entity
            return entity

    def collection(self, name: str, encrypt: bool = True) -> Collection:
        """Open (or create) the collection `name`."""
        return self._open(Collection, name, encrypt)

    def document(self, name: str, encrypt: bool = True) -> Document:
        """Open (or create) the document `name`."""
        return self._open(Document, name, encrypt)

    def collection_exists(self, name: str) -> bool:
        return self._exists(name)

    def document_exists(self, name: str) -> bool:
        return self._exists(name)

    def _exists(self, name: str) -> bool:
        return any(entity_path(self.path, name, enc).exists() for enc in (True, False))

    def entities(self) -> list[str]:
        """Names of all entity files on disk (encrypted and plain)."""
        if not self.path.is_dir():
            return []
        return sorted(
            p.stem for p in self.path.iterdir()
            if p.is_file() and p.suffix in (ENCRYPTED_SUFFIX, PLAIN_SUFFIX)
        )

    # ------------------------------------------------------------------
    # Whole-database operations
    # ------------------------------------------------------------------

    def info(self) -> DatabaseInfo:
        """Aggregate size and file list of everything under the root."""
        try:
            created, modified = stat_times(self.path)
            files = sorted(p for p in self.path.rglob("*") if p.is_file())
            size = sum(p.stat().st_size for p in files)
        except OSError as exc:
            msg = f"Failed to get database information: {exc}"
            raise StorageIOError(msg, self.path) from exc
        return DatabaseInfo(
            database=self.name,
            path=self.path,
            created=created,
            modified=modified,
            files=files,
            size=size,
        )

    def commit(self) -> int:
        """Commit every open entity. Returns how many actually wrote."""
        return sum(1 for e in self._live_entities() if e.commit())

    def close(self) -> None:
        """Stop auto-commit threads and flush all open entities."""
        for entity in self._live_entities():
            entity.close()

    def delete(self) -> None:
        """Remove the database directory and invalidate every entity from it.

        Entity locks are held across the removal so no commit can recreate a
        file. If removal fails, every entity stays live with its pending changes.
        """
        with self._registry_lock:
            entities = list(self._entities.values())
            with contextlib.ExitStack() as stack:
                for entity in entities:
                    stack.enter_context(entity._lock)
                try:
                    shutil.rmtree(self.path)
                except FileNotFoundError:
                    pass
                except OSError as exc:
                    msg = f"Failed to delete {self.path} database: {exc}"
                    raise StorageIOError(msg, self.path) from exc
                for entity in entities:
                    if not entity.deleted:
                        entity._mark_deleted()
            self._entities.clear()
            self._deleted = True
        for entity in entities:
            entity._stop_auto_commit()
        logger.info("deleted database %s", self.path)

    def _live_entities(self) -> list[Entity]:
        with self._registry_lock:
            return [e for e in self._entities.values() if not e.deleted]

    def __enter__(self) -> Database:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()

    def __repr__(self) -> str:
        return f"<Database {str(self.path)!r} entities={len(self._live_entities())}>"

