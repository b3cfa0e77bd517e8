"""Tests for optional schema validation."""

from __future__ import annotations

import pytest

from octavia.errors import InvalidArgumentError, SchemaMismatchError
from octavia.schema import FieldType, parse_schema, type_name, validate

SCHEMA = {
    "id": FieldType.NUMBER,
    "username": FieldType.STRING,
    "records": FieldType.OBJECT,
    "languages": FieldType.ARRAY,
    "deep": {
        "tags": {"a": FieldType.BOOLEAN},
        "btns": {"text": FieldType.STRING, "index": FieldType.NUMBER},
    },
}

GOOD = {
    "id": 1,
    "username": "madhan",
    "records": {},
    "languages": ["js", "go"],
    "deep": {"tags": {"a": True}, "btns": {"text": "click", "index": 0}},
    "unchecked": object(),
}


class TestValidate:
    def test_valid_record(self):
        validate(GOOD, SCHEMA)

    def test_no_schema_means_no_validation(self):
        validate({"id": "not a number"}, None)

    def test_fields_missing_from_record_are_fine(self):
        validate({"id": 3}, SCHEMA)

    @pytest.mark.parametrize(
        ("record", "path", "expected", "actual"),
        [
            ({"id": "1"}, "id", "number", "string"),
            ({"id": True}, "id", "number", "boolean"),
            ({"username": None}, "username", "string", "null"),
            ({"records": []}, "records", "object", "array"),
            ({"languages": {}}, "languages", "array", "object"),
            ({"deep": []}, "deep", "object", "array"),
            ({"deep": {"btns": {"index": "0"}}}, "deep.btns.index", "number", "string"),
            ({"deep": {"tags": {"a": 1}}}, "deep.tags.a", "boolean", "number"),
        ],
    )
    def test_mismatch(self, record, path, expected, actual):
        with pytest.raises(SchemaMismatchError) as exc_info:
            validate(record, SCHEMA)
        err = exc_info.value
        assert (err.path, err.expected, err.actual) == (path, expected, actual)
        assert path in str(err)

    def test_float_is_a_number(self):
        validate({"id": 1.5}, SCHEMA)

    def test_plain_string_rules(self):
        validate({"id": 1}, {"id": "number"})
        with pytest.raises(SchemaMismatchError):
            validate({"id": "1"}, {"id": "Number"})
        with pytest.raises(InvalidArgumentError):
            validate({"id": 1}, {"id": "integer"})

    def test_schema_mismatch_is_invalid_argument(self):
        assert issubclass(SchemaMismatchError, InvalidArgumentError)


class TestParseSchema:
    def test_from_strings(self):
        schema = parse_schema({"age": "number", "deep": {"on": "Boolean"}})
        assert schema == {"age": FieldType.NUMBER, "deep": {"on": FieldType.BOOLEAN}}

    def test_field_types_pass_through(self):
        assert parse_schema({"a": FieldType.ARRAY}) == {"a": FieldType.ARRAY}

    @pytest.mark.parametrize("raw", [{"a": "date"}, {"a": 3}, ["number"]])
    def test_rejects_unknown(self, raw):
        with pytest.raises(InvalidArgumentError):
            parse_schema(raw)


def test_type_name():
    assert [type_name(v) for v in (None, True, 1, 1.0, "s", [], (), {})] == [
        "null", "boolean", "number", "number", "string", "array", "array", "object",
    ]
