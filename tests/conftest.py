"""Shared fixtures for octavia tests."""

from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

from octavia import Database

if TYPE_CHECKING:
    from collections.abc import Iterator
    from pathlib import Path

# Keeps PBKDF2 fast in tests; the codec stores the count in each envelope.
FAST_ITERATIONS = 1_000
PASSWORD = "correct horse battery staple"


def make_db(path: Path, password: str = PASSWORD, interval: float | None = None) -> Database:
    return Database(path, password, auto_commit_interval=interval, kdf_iterations=FAST_ITERATIONS)


@pytest.fixture
def db_path(tmp_path: Path) -> Path:
    return tmp_path / "db"


@pytest.fixture
def db(db_path: Path) -> Iterator[Database]:
    database = make_db(db_path)
    yield database
    database.close()
