"""Exception hierarchy for octavia.

Everything raised by the store derives from OctaviaError, so callers can catch
one type. "No match" from find/update/remove is never an exception: those
operations return None, an empty list or a zero count instead.
"""

from __future__ import annotations

from typing import Any


class OctaviaError(Exception):
    """Base class for all octavia errors."""


# ---------------------------------------------------------------------------
# Argument validation (raised before any cache mutation)
# ---------------------------------------------------------------------------


class InvalidArgumentError(OctaviaError, ValueError):
    """An operation got a value of the wrong shape or type."""


class InvalidNameError(InvalidArgumentError):
    """Database or entity name is empty or unusable as a file name."""


class InvalidPasswordError(InvalidArgumentError):
    """Database password is empty or not a string."""


class SchemaMismatchError(InvalidArgumentError):
    """A record field does not have the type its schema asks for."""

    def __init__(self, path: str, expected: str, actual: str) -> None:
        self.path = path
        self.expected = expected
        self.actual = actual
        super().__init__(f"Invalid type for {path}: expected {expected}, got {actual}")


# ---------------------------------------------------------------------------
# Envelope codec
# ---------------------------------------------------------------------------


class EncryptionError(OctaviaError):
    """Serializing or encrypting a cache snapshot failed."""


class DecryptionError(OctaviaError):
    """An envelope could not be decoded (corrupt, truncated or unknown format)."""


class IncorrectPasswordError(DecryptionError):
    """The envelope was written with a different password."""


# ---------------------------------------------------------------------------
# Filesystem / lifecycle
# ---------------------------------------------------------------------------


class StorageIOError(OctaviaError):
    """Reading, writing or deleting a file under the database root failed."""

    def __init__(self, message: str, path: Any = None) -> None:
        self.path = path
        super().__init__(message)


class CreateFailedError(StorageIOError):
    """The database root directory could not be created."""


class EntityDeletedError(OctaviaError):
    """The entity (or its database) was deleted and can no longer be used."""
