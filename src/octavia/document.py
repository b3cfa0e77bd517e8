"""Document: a single key -> value mapping in one file."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from octavia import envelope, query
from octavia.entity import Entity
from octavia.errors import InvalidArgumentError


def _require_key(key: Any) -> str:
    if not isinstance(key, str):
        msg = f"Document keys must be strings, got {type(key).__name__}"
        raise InvalidArgumentError(msg)
    return key


class Document(Entity):
    """Map-backed entity.

    update() deep-merges like Collection.update(): nested objects keep the
    keys the patch does not mention. Use set() to replace a value outright.
    """

    kind = "document"
    _cache: dict[str, Any]

    def _empty(self) -> dict[str, Any]:
        return {}

    def _check_shape(self, value: Any) -> dict[str, Any]:
        if not isinstance(value, dict):
            raise self._shape_error("an object")
        return value

    def get(self, key: str, default: Any = None) -> Any:
        _require_key(key)
        with self._lock:
            self._ensure_live()
            if key not in self._cache:
                return default
            return self._snapshot(self._cache[key])

    def set(self, key: str, value: Any, *, commit: bool = False) -> None:
        _require_key(key)
        stored = envelope.to_json_tree(value)
        with self._lock:
            self._ensure_live()
            self._cache[key] = stored
            self._mark_dirty(commit)

    def update(self, patch: Mapping[str, Any], *, commit: bool = False) -> dict[str, Any]:
        """Deep-merge patch into the document. Returns the merged document."""
        query.require_mapping(patch, "patch")
        clean = envelope.to_json_tree(patch)
        with self._lock:
            self._ensure_live()
            query.deep_update(self._cache, clean)
            if clean:
                self._mark_dirty(commit)
            return self._snapshot(self._cache)

    def remove(self, key: str, *, commit: bool = False) -> bool:
        """Drop key. Returns False (and stays clean) if it was not there."""
        _require_key(key)
        with self._lock:
            self._ensure_live()
            if key not in self._cache:
                return False
            del self._cache[key]
            self._mark_dirty(commit)
            return True

    def keys(self) -> list[str]:
        with self._lock:
            self._ensure_live()
            return list(self._cache)

    def to_dict(self) -> dict[str, Any]:
        with self._lock:
            self._ensure_live()
            return self._snapshot(self._cache)

    def __contains__(self, key: object) -> bool:
        with self._lock:
            self._ensure_live()
            return key in self._cache

    def __len__(self) -> int:
        with self._lock:
            self._ensure_live()
            return len(self._cache)
