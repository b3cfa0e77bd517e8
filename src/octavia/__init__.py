"""Embedded, file-backed document store with optional password encryption.

Layout:
    <database>/
        users.enc         # collection, encrypted envelope (AES-256-CBC, PBKDF2)
        settings.json     # document, plain JSON

Each collection (ordered list of records) or document (key -> value map) is
one file, loaded into memory when opened. Mutations change the in-memory copy
and mark it dirty; commit() (explicit, commit=True, or the per-entity
auto-commit thread) writes it back atomically.

    from octavia import Database

    db = Database("data", password="s3cret")
    users = db.collection("users")
    users.insert({"id": 1, "name": "a"}, commit=True)
"""

from octavia.collection import Collection
from octavia.database import Database
from octavia.document import Document
from octavia.errors import (
    CreateFailedError,
    DecryptionError,
    EncryptionError,
    EntityDeletedError,
    IncorrectPasswordError,
    InvalidArgumentError,
    InvalidNameError,
    InvalidPasswordError,
    OctaviaError,
    SchemaMismatchError,
    StorageIOError,
)
from octavia.models import DatabaseInfo, EntityInfo
from octavia.schema import FieldType

__all__ = [
    "Collection",
    "CreateFailedError",
    "Database",
    "DatabaseInfo",
    "DecryptionError",
    "Document",
    "EncryptionError",
    "EntityDeletedError",
    "EntityInfo",
    "FieldType",
    "IncorrectPasswordError",
    "InvalidArgumentError",
    "InvalidNameError",
    "InvalidPasswordError",
    "OctaviaError",
    "SchemaMismatchError",
    "StorageIOError",
]
