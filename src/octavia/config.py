"""OctaviaConfig: project-local config for the octavia command line.

Default layout (all relative to the project root):

    octavia.toml          # project config (safe to commit)
    .env                  # OCTAVIA_PASSWORD=... (gitignore this)
    .octavia/
        data/             # database directory: one file per entity
            users.enc
            settings.json
        .gitignore        # auto-written: ignores data/

octavia.toml example:

    [database]
    path = ".octavia/data"
    auto_commit_interval = 10.0   # seconds, 0 disables the background commit
    encrypt = true                # default for new collections/documents

    [logging]
    level = "WARNING"

The password is never read from octavia.toml: set OCTAVIA_PASSWORD in the
environment or in .env.
"""

from __future__ import annotations

import os
import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from octavia.database import DEFAULT_AUTO_COMMIT_INTERVAL, Database
from octavia.errors import InvalidPasswordError

_CONFIG_FILENAME = "octavia.toml"
_DEFAULT_DATA_DIR = ".octavia/data"
_GITIGNORE_CONTENT = "data/\n"
PASSWORD_ENV = "OCTAVIA_PASSWORD"


@dataclass
class DatabaseConfig:
    path: Path = field(default_factory=Path)
    auto_commit_interval: float = DEFAULT_AUTO_COMMIT_INTERVAL
    encrypt: bool = True


@dataclass
class LoggingConfig:
    level: str = "WARNING"


@dataclass
class OctaviaConfig:
    """Resolved configuration for one project."""

    root: Path                      # directory that contains octavia.toml
    name: str = ""
    database: DatabaseConfig = field(default_factory=DatabaseConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    password: str = field(default="", repr=False)

    @property
    def config_path(self) -> Path:
        return self.root / _CONFIG_FILENAME

    def ensure_dirs(self) -> None:
        """Create the data dir and a .gitignore that keeps it out of git."""
        self.database.path.mkdir(parents=True, exist_ok=True)
        gitignore = self.database.path.parent / ".gitignore"
        if self.database.path.parent != self.root and not gitignore.exists():
            gitignore.write_text(_GITIGNORE_CONTENT)

    def open_database(self, password: str | None = None, *, auto_commit: bool = True) -> Database:
        pw = password if password is not None else self.password
        if not pw:
            msg = f"No database password: set {PASSWORD_ENV} in the environment or .env"
            raise InvalidPasswordError(msg)
        return Database(
            self.database.path,
            pw,
            auto_commit_interval=(self.database.auto_commit_interval or None) if auto_commit else None,
        )


def _unquote(value: str) -> str:
    if len(value) >= 2 and value[0] == value[-1] and value[0] in "\"'":
        return value[1:-1]
    return value


def _load_env(root: Path) -> dict[str, str]:
    """Secrets file next to octavia.toml.

    Lines look like `OCTAVIA_PASSWORD=...`, optionally prefixed with `export`
    and with the value in matching quotes. Blank lines and # comments are
    skipped. A project without .env yields an empty mapping.
    """
    dotenv = root / ".env"
    if not dotenv.is_file():
        return {}
    pairs: dict[str, str] = {}
    for raw_line in dotenv.read_text().splitlines():
        entry = raw_line.strip()
        if entry.startswith("export "):
            entry = entry[len("export "):].lstrip()
        if not entry or entry.startswith("#"):
            continue
        key, sep, value = entry.partition("=")
        if sep and key.strip():
            pairs[key.strip()] = _unquote(value.strip())
    return pairs


def _find_root(start: Path) -> Path:
    """Walk upward from start looking for octavia.toml."""
    for directory in (start, *start.parents):
        if (directory / _CONFIG_FILENAME).exists():
            return directory
    return start


def load_config(root: Path | str | None = None) -> OctaviaConfig:
    """Load octavia.toml from root (or search upward from cwd if root is None)."""
    root_path = _find_root(Path(root).resolve() if root else Path.cwd())
    config_path = root_path / _CONFIG_FILENAME

    raw: dict[str, Any] = {}
    if config_path.exists():
        with config_path.open("rb") as f:
            raw = tomllib.load(f)

    db_section = raw.get("database", {})
    log_section = raw.get("logging", {})
    project = raw.get("project", {})

    # Environment wins over .env so CI can inject the secret
    env = _load_env(root_path)
    password = os.environ.get(PASSWORD_ENV) or env.get(PASSWORD_ENV, "")

    return OctaviaConfig(
        root=root_path,
        name=project.get("name", root_path.name),
        database=DatabaseConfig(
            path=root_path / db_section.get("path", _DEFAULT_DATA_DIR),
            auto_commit_interval=float(db_section.get("auto_commit_interval", DEFAULT_AUTO_COMMIT_INTERVAL)),
            encrypt=bool(db_section.get("encrypt", True)),
        ),
        logging=LoggingConfig(
            level=str(log_section.get("level", "WARNING")).upper(),
        ),
        password=password,
    )


def init_config(root: Path, name: str | None = None) -> Path:
    """Write a default octavia.toml at root. Raises if already exists."""
    config_path = root / _CONFIG_FILENAME
    if config_path.exists():
        msg = f"octavia.toml already exists at {config_path}"
        raise FileExistsError(msg)

    project_name = name or root.name
    content = f"""\
[project]
name = "{project_name}"

[database]
path = "{_DEFAULT_DATA_DIR}"
# auto_commit_interval = {DEFAULT_AUTO_COMMIT_INTERVAL}   # seconds; 0 disables background commits
# encrypt = true                # default for new collections/documents

# [logging]
# level = "WARNING"

# The password is read from {PASSWORD_ENV} (environment or .env), never from this file.
"""
    config_path.write_text(content)
    return config_path
