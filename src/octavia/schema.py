"""Optional record schemas.

A schema maps field names to either a FieldType tag or a nested schema:

    schema = {
        "id": FieldType.NUMBER,
        "name": FieldType.STRING,
        "tags": FieldType.ARRAY,
        "deep": {"enabled": FieldType.BOOLEAN},
    }

Only fields present in both the record and the schema are checked.
"""

from __future__ import annotations

from collections.abc import Mapping
from enum import StrEnum
from typing import Any, Union

from octavia.errors import InvalidArgumentError, SchemaMismatchError


class FieldType(StrEnum):
    STRING = "string"
    NUMBER = "number"
    BOOLEAN = "boolean"
    ARRAY = "array"
    OBJECT = "object"


Schema = Mapping[str, Union[FieldType, "Schema"]]


def type_name(value: Any) -> str:
    """JSON-ish name of a value's type, used in mismatch messages."""
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "boolean"
    if isinstance(value, (int, float)):
        return "number"
    if isinstance(value, str):
        return "string"
    if isinstance(value, (list, tuple)):
        return "array"
    if isinstance(value, Mapping):
        return "object"
    return type(value).__name__


def _matches(value: Any, tag: FieldType) -> bool:
    if tag is FieldType.NUMBER:
        return isinstance(value, (int, float)) and not isinstance(value, bool)
    return type_name(value) == tag.value


def _field_type(key: str, rule: Any) -> FieldType:
    if isinstance(rule, FieldType):
        return rule
    if isinstance(rule, str):
        try:
            return FieldType(rule.lower())
        except ValueError as exc:
            msg = f"Unknown schema type for {key}: {rule!r}"
            raise InvalidArgumentError(msg) from exc
    msg = f"Unknown schema rule for {key}: {rule!r}"
    raise InvalidArgumentError(msg)


def validate(record: Mapping[str, Any], schema: Schema | None, *, _prefix: str = "") -> None:
    """Raise SchemaMismatchError on the first field that violates schema."""
    if schema is None:
        return
    for key, value in record.items():
        rule = schema.get(key)
        if rule is None:
            continue
        path = f"{_prefix}{key}"
        if isinstance(rule, Mapping):
            if not isinstance(value, Mapping):
                raise SchemaMismatchError(path, FieldType.OBJECT.value, type_name(value))
            validate(value, rule, _prefix=f"{path}.")
        else:
            tag = _field_type(key, rule)
            if not _matches(value, tag):
                raise SchemaMismatchError(path, tag.value, type_name(value))


def parse_schema(raw: Mapping[str, Any]) -> dict[str, Any]:
    """Build a schema from plain strings, e.g. one loaded from JSON or TOML.

    >>> parse_schema({"age": "number", "deep": {"on": "boolean"}})["age"]
    <FieldType.NUMBER: 'number'>
    """
    if not isinstance(raw, Mapping):
        msg = f"Schema must be an object, got {type_name(raw)}"
        raise InvalidArgumentError(msg)
    schema: dict[str, Any] = {}
    for key, rule in raw.items():
        if isinstance(rule, Mapping):
            schema[key] = parse_schema(rule)
        else:
            schema[key] = _field_type(key, rule)
    return schema
