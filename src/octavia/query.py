"""Query matching and deep-merge updates over in-memory records.

A query is a mapping of field -> expected value. Nested mappings in the query
descend into nested record fields:

    match_query({"a": {"x": 1, "y": 2}, "b": 3}, {"a": {"x": 1}})   # True
    match_query({"a": None}, {"a": {"x": 1}})                        # False

Scalars compare strictly: True does not match 1, and a missing field never
matches, not even a None expectation.
"""

from __future__ import annotations

import copy
from collections.abc import Iterable, Mapping
from typing import Any

from octavia.errors import InvalidArgumentError

_MISSING = object()


def require_mapping(value: Any, what: str = "query") -> Mapping[str, Any]:
    if not isinstance(value, Mapping):
        msg = f"Datatype error: {what} must be an object, got {type(value).__name__}"
        raise InvalidArgumentError(msg)
    return value


def _strict_equal(actual: Any, expected: Any) -> bool:
    if isinstance(actual, bool) or isinstance(expected, bool):
        return isinstance(actual, bool) and isinstance(expected, bool) and actual is expected
    return bool(actual == expected)


def match_query(record: Mapping[str, Any], query: Mapping[str, Any]) -> bool:
    """True if record satisfies every key of query (empty query matches all)."""
    for key, expected in query.items():
        actual = record.get(key, _MISSING)
        if actual is _MISSING:
            return False
        if isinstance(expected, Mapping):
            if not isinstance(actual, Mapping) or not match_query(actual, expected):
                return False
        elif not _strict_equal(actual, expected):
            return False
    return True


def find_index(records: list[dict[str, Any]], query: Mapping[str, Any]) -> int | None:
    for i, record in enumerate(records):
        if match_query(record, query):
            return i
    return None


def find_first(records: Iterable[dict[str, Any]], query: Mapping[str, Any]) -> dict[str, Any] | None:
    return next((r for r in records if match_query(r, query)), None)


def filter_records(records: Iterable[dict[str, Any]], query: Mapping[str, Any]) -> list[dict[str, Any]]:
    return [r for r in records if match_query(r, query)]


def partition(
    records: Iterable[dict[str, Any]],
    query: Mapping[str, Any],
) -> tuple[list[dict[str, Any]], list[dict[str, Any]]]:
    """Split records into (kept, removed), both in original order."""
    kept: list[dict[str, Any]] = []
    removed: list[dict[str, Any]] = []
    for record in records:
        (removed if match_query(record, query) else kept).append(record)
    return kept, removed


def deep_update(target: dict[str, Any], patch: Mapping[str, Any]) -> dict[str, Any]:
    """Merge patch into target in place and return target.

    Where both sides hold a mapping the merge recurses, so sibling keys the
    patch does not mention survive. Any other patch value replaces the target's
    value outright (objects over scalars, scalars over objects, whole lists).
    """
    for key, value in patch.items():
        current = target.get(key)
        if isinstance(value, Mapping) and isinstance(current, dict):
            deep_update(current, value)
        else:
            target[key] = copy.deepcopy(value)
    return target
