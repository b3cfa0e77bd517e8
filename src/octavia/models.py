"""Info snapshots returned by Database.info() and Entity.info()."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from datetime import UTC, datetime
from pathlib import Path
from typing import Any


def stat_times(path: Path) -> tuple[datetime, datetime]:
    """(created, modified) as aware UTC datetimes.

    Linux has no birth time in os.stat, so created falls back to st_ctime.
    """
    st = path.stat()
    born = getattr(st, "st_birthtime", st.st_ctime)
    return (
        datetime.fromtimestamp(born, UTC),
        datetime.fromtimestamp(st.st_mtime, UTC),
    )


def format_size(n_bytes: int) -> str:
    """Bytes -> "0.00 MB", matching the database info report."""
    return f"{n_bytes / 1024 / 1024:.2f} MB"


@dataclass
class EntityInfo:
    """Snapshot of one collection or document file."""

    database: str
    database_path: Path
    name: str
    kind: str                   # collection | document
    file_path: Path
    encrypted: bool
    size: int                   # bytes on disk
    created: datetime
    modified: datetime
    record_count: int           # records (collection) or keys (document)
    dirty: bool = False

    def to_dict(self) -> dict[str, Any]:
        d = asdict(self)
        d["database_path"] = str(self.database_path)
        d["file_path"] = str(self.file_path)
        d["created"] = self.created.isoformat()
        d["modified"] = self.modified.isoformat()
        return d


@dataclass
class DatabaseInfo:
    """Snapshot of a database directory."""

    database: str
    path: Path
    created: datetime
    modified: datetime
    files: list[Path] = field(default_factory=list)
    size: int = 0

    @property
    def size_mb(self) -> str:
        return format_size(self.size)

    def to_dict(self) -> dict[str, Any]:
        return {
            "database": self.database,
            "path": str(self.path),
            "created": self.created.isoformat(),
            "modified": self.modified.isoformat(),
            "files": [str(f) for f in self.files],
            "size": self.size,
            "size_mb": self.size_mb,
        }
