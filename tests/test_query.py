"""Tests for query matching and deep merge."""

from __future__ import annotations

import pytest

from octavia.errors import InvalidArgumentError
from octavia.query import (
    deep_update,
    filter_records,
    find_first,
    find_index,
    match_query,
    partition,
    require_mapping,
)

RECORD = {
    "id": 1,
    "name": "madhan",
    "active": True,
    "score": 2.5,
    "tags": ["js", "go"],
    "deep": {"btns": {"text": "click", "index": 0}, "none": None},
}


class TestMatchQuery:
    def test_empty_query_matches_everything(self):
        assert match_query(RECORD, {})
        assert match_query({}, {})

    def test_scalar_equality(self):
        assert match_query(RECORD, {"id": 1, "name": "madhan"})
        assert not match_query(RECORD, {"id": 2})

    def test_nested_query(self):
        assert match_query(RECORD, {"deep": {"btns": {"text": "click"}}})
        assert not match_query(RECORD, {"deep": {"btns": {"text": "other"}}})

    def test_nested_query_against_null_or_missing(self):
        assert not match_query(RECORD, {"deep": {"none": {"x": 1}}})
        assert not match_query(RECORD, {"missing": {"x": 1}})
        assert not match_query({"deep": 5}, {"deep": {"x": 1}})

    def test_missing_field_never_matches(self):
        assert not match_query(RECORD, {"nope": "x"})
        assert not match_query(RECORD, {"nope": None})

    def test_explicit_null_matches_null(self):
        assert match_query({"a": None}, {"a": None})

    def test_bool_and_int_are_distinct(self):
        assert not match_query({"flag": 1}, {"flag": True})
        assert not match_query({"flag": True}, {"flag": 1})
        assert not match_query({"n": 0}, {"n": False})
        assert match_query(RECORD, {"active": True})

    def test_int_matches_equal_float(self):
        assert match_query({"n": 2}, {"n": 2.0})

    def test_list_compares_by_value(self):
        assert match_query(RECORD, {"tags": ["js", "go"]})
        assert not match_query(RECORD, {"tags": ["go", "js"]})

    def test_empty_nested_query_requires_object(self):
        assert match_query(RECORD, {"deep": {}})
        assert not match_query(RECORD, {"name": {}})


class TestFind:
    RECORDS = [{"id": 1, "g": "a"}, {"id": 2, "g": "b"}, {"id": 3, "g": "a"}]

    def test_find_first(self):
        assert find_first(self.RECORDS, {"g": "a"}) == {"id": 1, "g": "a"}
        assert find_first(self.RECORDS, {"g": "z"}) is None

    def test_find_index(self):
        assert find_index(self.RECORDS, {"g": "b"}) == 1
        assert find_index(self.RECORDS, {"g": "z"}) is None

    def test_filter_keeps_order(self):
        assert [r["id"] for r in filter_records(self.RECORDS, {"g": "a"})] == [1, 3]

    def test_partition(self):
        kept, removed = partition(self.RECORDS, {"g": "a"})
        assert [r["id"] for r in kept] == [2]
        assert [r["id"] for r in removed] == [1, 3]

    def test_partition_nothing_matches(self):
        kept, removed = partition(self.RECORDS, {"g": "z"})
        assert kept == self.RECORDS
        assert removed == []


class TestDeepUpdate:
    def test_preserves_siblings(self):
        target = {"a": {"x": 1, "y": 2}}
        assert deep_update(target, {"a": {"x": 9}}) == {"a": {"x": 9, "y": 2}}

    def test_adds_new_keys(self):
        target = {"id": 1, "name": "a", "age": 20}
        deep_update(target, {"status": "active"})
        assert target == {"id": 1, "name": "a", "age": 20, "status": "active"}

    def test_mutates_nested_object_in_place(self):
        inner = {"x": 1}
        target = {"a": inner}
        deep_update(target, {"a": {"z": 3}})
        assert target["a"] is inner
        assert inner == {"x": 1, "z": 3}

    def test_scalar_replaces_object(self):
        target = {"a": {"x": 1}}
        deep_update(target, {"a": 5})
        assert target == {"a": 5}

    def test_object_replaces_scalar(self):
        target = {"a": 5}
        deep_update(target, {"a": {"x": 1}})
        assert target == {"a": {"x": 1}}

    def test_object_replaces_null(self):
        target = {"a": None}
        deep_update(target, {"a": {"x": 1}})
        assert target == {"a": {"x": 1}}

    def test_lists_are_replaced_not_merged(self):
        target = {"tags": ["a", "b", "c"]}
        deep_update(target, {"tags": ["z"]})
        assert target == {"tags": ["z"]}

    def test_three_levels(self):
        target = {"deep": {"tags": {"a": True, "b": False}, "btns": {"text": "click"}}}
        deep_update(target, {"deep": {"tags": {"b": True}}})
        assert target == {"deep": {"tags": {"a": True, "b": True}, "btns": {"text": "click"}}}

    def test_patch_values_are_copied(self):
        patch = {"a": {"list": [1]}}
        target: dict = {}
        deep_update(target, patch)
        patch["a"]["list"].append(2)
        assert target == {"a": {"list": [1]}}


class TestRequireMapping:
    @pytest.mark.parametrize("bad", [None, [], "x", 1, [{"a": 1}]])
    def test_rejects_non_mappings(self, bad):
        with pytest.raises(InvalidArgumentError):
            require_mapping(bad)

    def test_accepts_dict(self):
        assert require_mapping({"a": 1}) == {"a": 1}
