"""Cached entity lifecycle shared by Collection and Document.

An entity is one file under the database root plus an in-memory copy of its
content:

    <root>/<name>.json    plain envelope
    <root>/<name>.enc     encrypted envelope

Lifecycle:
    open      load the file into the cache, or create it with an empty cache
    mutate    change the cache only and set the dirty flag
    commit    encode the cache, write <file>.tmp, os.replace over the file,
              clear the dirty flag (left set if anything fails)
    delete    remove the file, then stop auto-commit; the entity is dead afterwards

Every cache access runs under one RLock per entity, shared with the
auto-commit thread. The file is assumed to be owned by this process alone.
"""

from __future__ import annotations

import contextlib
import copy
import logging
import os
import threading
from pathlib import Path
from typing import TYPE_CHECKING, Any, ClassVar

from octavia import envelope
from octavia.errors import (
    DecryptionError,
    EntityDeletedError,
    InvalidNameError,
    StorageIOError,
)
from octavia.models import EntityInfo, stat_times
from octavia.scheduler import AutoCommitter

if TYPE_CHECKING:
    from types import TracebackType

logger = logging.getLogger("octavia.entity")

ENCRYPTED_SUFFIX = ".enc"
PLAIN_SUFFIX = ".json"


def check_name(name: Any, what: str = "entity") -> str:
    """Reject names that are empty or would escape the database directory."""
    if not isinstance(name, str) or not name.strip():
        msg = f"Invalid {what} name: {name!r}"
        raise InvalidNameError(msg)
    if "/" in name or "\\" in name or "\x00" in name or name.startswith("."):
        msg = f"Invalid {what} name: {name!r} (no path separators or leading dot)"
        raise InvalidNameError(msg)
    return name


def entity_path(root: Path, name: str, encrypt: bool) -> Path:
    return root / (name + (ENCRYPTED_SUFFIX if encrypt else PLAIN_SUFFIX))


class Entity:
    """Base class: one file, one cache, one dirty flag."""

    kind: ClassVar[str] = "entity"

    def __init__(
        self,
        name: str,
        root: Path | str,
        password: str,
        *,
        encrypt: bool = True,
        auto_commit_interval: float | None = None,
        kdf_iterations: int = envelope.PBKDF2_ITERATIONS,
    ) -> None:
        self.name = check_name(name, self.kind)
        self.root = Path(root)
        self.encrypt = bool(encrypt)
        self.file_path = entity_path(self.root, self.name, self.encrypt)
        self._password = password
        self._kdf_iterations = kdf_iterations
        self._lock = threading.RLock()
        self._dirty = False
        self._deleted = False
        self._cache: Any = self._empty()

        if self.file_path.exists():
            self._cache = self._read()
        else:
            self._write(self._cache)
        logger.debug("opened %s %s (encrypted=%s, %d records)", self.kind, self.name, self.encrypt, self._count())

        self._committer: AutoCommitter | None = None
        if auto_commit_interval:
            self._committer = AutoCommitter(self, auto_commit_interval)
            self._committer.start()

    # ------------------------------------------------------------------
    # Container shape (overridden by Collection / Document)
    # ------------------------------------------------------------------

    def _empty(self) -> Any:
        raise NotImplementedError

    def _check_shape(self, value: Any) -> Any:
        raise NotImplementedError

    def _count(self) -> int:
        return len(self._cache)

    # ------------------------------------------------------------------
    # File I/O
    # ------------------------------------------------------------------

    def _read(self) -> Any:
        try:
            blob = self.file_path.read_bytes()
        except OSError as exc:
            msg = f"Failed to read {self.file_path}: {exc}"
            raise StorageIOError(msg, self.file_path) from exc
        if self.encrypt:
            value = envelope.decode(blob, self._password)
        else:
            value = envelope.decode_plain(blob)
        return self._check_shape(value)

    def _write(self, value: Any) -> None:
        """Encode value and atomically replace the file with it."""
        if self.encrypt:
            blob = envelope.encode(value, self._password, iterations=self._kdf_iterations)
        else:
            blob = envelope.encode_plain(value)
        tmp = self.file_path.with_name(self.file_path.name + ".tmp")
        try:
            with tmp.open("wb") as f:
                f.write(blob)
                f.flush()
                os.fsync(f.fileno())
            tmp.replace(self.file_path)
        except OSError as exc:
            with contextlib.suppress(OSError):
                tmp.unlink()
            msg = f"Failed to write {self.file_path}: {exc}"
            raise StorageIOError(msg, self.file_path) from exc

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    @property
    def dirty(self) -> bool:
        """True when the cache holds changes that are not on disk yet."""
        with self._lock:
            return self._dirty

    @property
    def deleted(self) -> bool:
        return self._deleted

    @property
    def auto_commit_interval(self) -> float | None:
        return self._committer.interval if self._committer else None

    def _ensure_live(self) -> None:
        if self._deleted:
            msg = f"{self.kind} {self.name!r} has been deleted"
            raise EntityDeletedError(msg)

    def _mark_dirty(self, commit: bool = False) -> None:
        """Call with the lock held, after the cache has changed."""
        self._dirty = True
        if commit:
            self.commit()

    def _shape_error(self, what: str) -> DecryptionError:
        return DecryptionError(f"{self.file_path} does not hold a {self.kind}: expected {what}")

    # ------------------------------------------------------------------
    # Public lifecycle
    # ------------------------------------------------------------------

    def commit(self) -> bool:
        """Write the cache to disk if dirty. Returns True if a write happened."""
        with self._lock:
            self._ensure_live()
            if not self._dirty:
                return False
            self._write(self._cache)
            self._dirty = False
            logger.debug("committed %s %s", self.kind, self.name)
            return True

    def reload(self) -> None:
        """Discard the cache (and any uncommitted changes) and re-read the file."""
        with self._lock:
            self._ensure_live()
            self._cache = self._read()
            self._dirty = False

    def info(self) -> EntityInfo:
        with self._lock:
            self._ensure_live()
            try:
                size = self.file_path.stat().st_size
                created, modified = stat_times(self.file_path)
            except OSError as exc:
                msg = f"Failed to get information for {self.file_path}: {exc}"
                raise StorageIOError(msg, self.file_path) from exc
            return EntityInfo(
                database=self.root.name,
                database_path=self.root,
                name=self.name,
                kind=self.kind,
                file_path=self.file_path,
                encrypted=self.encrypt,
                size=size,
                created=created,
                modified=modified,
                record_count=self._count(),
                dirty=self._dirty,
            )

    def _stop_auto_commit(self) -> None:
        if self._committer is not None:
            self._committer.stop()

    def close(self) -> None:
        """Stop auto-commit and flush pending changes. Explicit commits still work."""
        self._stop_auto_commit()
        with self._lock:
            if not self._deleted:
                self.commit()

    def delete(self) -> None:
        """Remove the backing file. Further use raises EntityDeletedError.

        If the file cannot be removed the entity stays live, auto-commit included.
        """
        with self._lock:
            self._ensure_live()
            try:
                self.file_path.unlink(missing_ok=True)
            except OSError as exc:
                msg = f"Failed to delete {self.file_path}: {exc}"
                raise StorageIOError(msg, self.file_path) from exc
            self._mark_deleted()
        # Joined outside the lock: a tick may be waiting on it.
        self._stop_auto_commit()
        logger.info("deleted %s %s", self.kind, self.name)

    def _mark_deleted(self) -> None:
        """Enter the deleted state without touching the file. Call with the lock held."""
        self._cache = self._empty()
        self._dirty = False
        self._deleted = True

    def _snapshot(self, value: Any) -> Any:
        return copy.deepcopy(value)

    def __enter__(self) -> Entity:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()

    def __repr__(self) -> str:
        state = "deleted" if self._deleted else ("dirty" if self._dirty else "clean")
        return f"<{type(self).__name__} {self.name!r} encrypted={self.encrypt} {state}>"
