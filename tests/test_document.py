"""Tests for Document operations."""

from __future__ import annotations

import json

import pytest

from octavia import Database, Document
from octavia.errors import InvalidArgumentError
from tests.conftest import make_db


@pytest.fixture
def settings(db: Database) -> Document:
    return db.document("settings", encrypt=False)


class TestGetSet:
    def test_empty_document_file_is_created(self, settings):
        assert json.loads(settings.file_path.read_text()) == {}
        assert settings.file_path.name == "settings.json"

    def test_set_then_get(self, settings):
        settings.set("theme", "dark")
        assert settings.get("theme") == "dark"
        assert settings.dirty

    def test_get_missing_returns_default(self, settings):
        assert settings.get("nope") is None
        assert settings.get("nope", 5) == 5

    def test_get_returns_copy(self, settings):
        settings.set("list", [1, 2])
        settings.get("list").append(3)
        assert settings.get("list") == [1, 2]

    def test_set_commit_true(self, settings):
        settings.set("k", {"a": 1}, commit=True)
        assert not settings.dirty
        assert json.loads(settings.file_path.read_text()) == {"k": {"a": 1}}

    def test_keys_must_be_strings(self, settings):
        with pytest.raises(InvalidArgumentError):
            settings.set(1, "x")
        with pytest.raises(InvalidArgumentError):
            settings.get(None)

    def test_set_rejects_unserializable(self, settings):
        with pytest.raises(InvalidArgumentError):
            settings.set("k", {1, 2})
        assert "k" not in settings


class TestUpdate:
    def test_update_deep_merges(self, settings):
        settings.set("theme", {"mode": "dark", "accent": "blue"})
        merged = settings.update({"theme": {"mode": "light"}, "lang": "en"})
        assert merged == {"theme": {"mode": "light", "accent": "blue"}, "lang": "en"}

    def test_update_replaces_non_objects(self, settings):
        settings.set("theme", {"mode": "dark"})
        settings.update({"theme": "default"})
        assert settings.get("theme") == "default"

    def test_set_replaces_outright(self, settings):
        settings.set("theme", {"mode": "dark", "accent": "blue"})
        settings.set("theme", {"mode": "light"})
        assert settings.get("theme") == {"mode": "light"}

    def test_empty_update_stays_clean(self, settings):
        settings.update({})
        assert not settings.dirty

    def test_update_requires_object(self, settings):
        with pytest.raises(InvalidArgumentError):
            settings.update(["a"])


class TestRemove:
    def test_remove_existing(self, settings):
        settings.set("a", 1, commit=True)
        assert settings.remove("a") is True
        assert "a" not in settings
        assert settings.dirty

    def test_remove_missing_stays_clean(self, settings):
        assert settings.remove("a") is False
        assert not settings.dirty

    def test_remove_commit_true(self, settings):
        settings.update({"a": 1, "b": 2}, commit=True)
        settings.remove("a", commit=True)
        assert json.loads(settings.file_path.read_text()) == {"b": 2}


class TestEncryptedDocument:
    def test_round_trip_through_disk(self, db_path):
        doc = make_db(db_path).document("secrets")
        doc.update({"token": "abc", "nested": {"n": [1, 2]}}, commit=True)
        assert doc.file_path.name == "secrets.enc"
        assert b"abc" not in doc.file_path.read_bytes()

        again = make_db(db_path).document("secrets")
        assert again.to_dict() == {"token": "abc", "nested": {"n": [1, 2]}}
        assert sorted(again.keys()) == ["nested", "token"]
        assert len(again) == 2
