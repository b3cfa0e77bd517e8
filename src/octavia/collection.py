"""Collection: an ordered list of records in one file.

    users = db.collection("users", encrypt=False)
    users.insert({"id": 1, "name": "a", "age": 20})
    users.find({"age": 20})                       # -> {"id": 1, ...}
    users.update({"id": 1}, {"status": "active"})
    users.remove_many({"age": 20})                # -> 1
    users.commit()

Lookups scan the whole list. Records returned to callers are copies.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import TYPE_CHECKING, Any

from octavia import envelope, query
from octavia.entity import Entity
from octavia.errors import InvalidArgumentError
from octavia.schema import validate

if TYPE_CHECKING:
    from octavia.schema import Schema


class Collection(Entity):
    """Array-backed entity."""

    kind = "collection"
    _cache: list[dict[str, Any]]

    def _empty(self) -> list[dict[str, Any]]:
        return []

    def _check_shape(self, value: Any) -> list[dict[str, Any]]:
        if not isinstance(value, list) or not all(isinstance(r, dict) for r in value):
            raise self._shape_error("a list of objects")
        return value

    # ------------------------------------------------------------------
    # Insert
    # ------------------------------------------------------------------

    def insert(
        self,
        record: Mapping[str, Any],
        schema: Schema | None = None,
        *,
        commit: bool = False,
    ) -> dict[str, Any]:
        """Append one record. Returns a copy of what was stored."""
        query.require_mapping(record, "record")
        validate(record, schema)
        stored = envelope.to_json_tree(record)
        with self._lock:
            self._ensure_live()
            self._cache.append(stored)
            self._mark_dirty(commit)
            return self._snapshot(stored)

    def insert_many(
        self,
        records: list[Mapping[str, Any]],
        schema: Schema | None = None,
        *,
        commit: bool = False,
    ) -> int:
        """Append several records; all of them are validated before any is added."""
        if not isinstance(records, (list, tuple)):
            msg = f"Datatype error: records must be a list, got {type(records).__name__}"
            raise InvalidArgumentError(msg)
        for record in records:
            query.require_mapping(record, "record")
            validate(record, schema)
        stored = [envelope.to_json_tree(r) for r in records]
        if not stored:
            return 0
        with self._lock:
            self._ensure_live()
            self._cache.extend(stored)
            self._mark_dirty(commit)
        return len(stored)

    # ------------------------------------------------------------------
    # Read
    # ------------------------------------------------------------------

    def find(self, q: Mapping[str, Any]) -> dict[str, Any] | None:
        """First record matching q, or None."""
        query.require_mapping(q)
        with self._lock:
            self._ensure_live()
            found = query.find_first(self._cache, q)
            return self._snapshot(found) if found is not None else None

    def find_many(self, q: Mapping[str, Any]) -> list[dict[str, Any]]:
        """All records matching q, in insertion order ([] if none)."""
        query.require_mapping(q)
        with self._lock:
            self._ensure_live()
            return self._snapshot(query.filter_records(self._cache, q))

    def all(self) -> list[dict[str, Any]]:
        with self._lock:
            self._ensure_live()
            return self._snapshot(self._cache)

    def count(self, q: Mapping[str, Any] | None = None) -> int:
        with self._lock:
            self._ensure_live()
            if q is None:
                return len(self._cache)
            query.require_mapping(q)
            return sum(1 for r in self._cache if query.match_query(r, q))

    def __len__(self) -> int:
        return self.count()

    # ------------------------------------------------------------------
    # Update
    # ------------------------------------------------------------------

    def _prepare_patch(self, q: Any, patch: Any, schema: Schema | None) -> dict[str, Any]:
        query.require_mapping(q)
        query.require_mapping(patch, "patch")
        validate(patch, schema)
        return envelope.to_json_tree(patch)

    def update(
        self,
        q: Mapping[str, Any],
        patch: Mapping[str, Any],
        schema: Schema | None = None,
        *,
        commit: bool = False,
    ) -> dict[str, Any] | None:
        """Deep-merge patch into the first match. Returns the updated record or None."""
        clean = self._prepare_patch(q, patch, schema)
        with self._lock:
            self._ensure_live()
            target = query.find_first(self._cache, q)
            if target is None:
                return None
            if clean:
                query.deep_update(target, clean)
                self._mark_dirty(commit)
            return self._snapshot(target)

    def update_many(
        self,
        q: Mapping[str, Any],
        patch: Mapping[str, Any],
        schema: Schema | None = None,
        *,
        commit: bool = False,
    ) -> int:
        """Deep-merge patch into every match. Returns how many records matched."""
        clean = self._prepare_patch(q, patch, schema)
        with self._lock:
            self._ensure_live()
            targets = query.filter_records(self._cache, q)
            for target in targets:
                query.deep_update(target, clean)
            if targets and clean:
                self._mark_dirty(commit)
            return len(targets)

    # ------------------------------------------------------------------
    # Remove
    # ------------------------------------------------------------------

    def remove(self, q: Mapping[str, Any], *, commit: bool = False) -> dict[str, Any] | None:
        """Remove the first match and return it, or None if nothing matched."""
        query.require_mapping(q)
        with self._lock:
            self._ensure_live()
            index = query.find_index(self._cache, q)
            if index is None:
                return None
            removed = self._cache.pop(index)
            self._mark_dirty(commit)
            return removed

    def remove_many(self, q: Mapping[str, Any], *, commit: bool = False) -> int:
        """Remove every match. Returns the count; 0 leaves the collection clean."""
        query.require_mapping(q)
        with self._lock:
            self._ensure_live()
            kept, removed = query.partition(self._cache, q)
            if not removed:
                return 0
            self._cache = kept
            self._mark_dirty(commit)
            return len(removed)
