"""Tests for dataset and record operations."""
from datetime import datetime

import pytest

from errors import (
    DatasetNotFoundError,
    MalformedPayloadError,
    NotFoundError,
    RecordNotFoundError,
    UniqueConstraintError,
    ValidationError,
)
from models import Record


@pytest.fixture()
def todos(store):
    return store.create_dataset(
        "Todos", "todo", dataset_id="todos",
        fields=[
            {"key": "title", "type": "text", "displayName": "Title"},
            {"key": "deadline", "type": "date", "displayName": "Deadline"},
        ],
    )


class TestDatasets:

    def test_create_and_get(self, store, todos):
        fetched = store.get_dataset("todos")
        assert fetched.name == "Todos"
        assert [f.key for f in fetched.fields] == ["title", "deadline"]
        assert fetched.created_at == fetched.last_modified

    def test_create_without_id_assigns_one(self, store):
        dataset = store.create_dataset("Scratch", "custom")
        assert dataset.id
        assert store.get_dataset(dataset.id).name == "Scratch"

    def test_create_duplicate_id_rejected(self, store, todos):
        with pytest.raises(ValidationError):
            store.create_dataset("Again", "todo", dataset_id="todos")

    def test_create_rejects_bad_type(self, store):
        with pytest.raises(ValidationError):
            store.create_dataset("Bad", "not-a-type")

    def test_list_is_ordered_by_name(self, store):
        store.create_dataset("Zeta", "custom", dataset_id="zeta")
        store.create_dataset("Alpha", "custom", dataset_id="alpha")
        assert [d.id for d in store.list_datasets()] == ["alpha", "zeta"]

    def test_update_replaces_fields_and_bumps_timestamp(self, store, todos):
        updated = store.update_dataset("todos", fields=[{"key": "title", "type": "text", "isUnique": True}])
        assert [f.key for f in updated.fields] == ["title"]
        assert updated.fields[0].is_unique
        assert updated.name == "Todos"
        assert updated.last_modified >= todos.last_modified

    def test_update_validates_fields(self, store, todos):
        with pytest.raises(ValidationError):
            store.update_dataset("todos", fields=[{
                "key": "x", "type": "text", "isRelation": True, "relatedDataset": "todos", "relatedField": "id",
                "preventDeleteIfReferenced": True, "cascadeDeleteIfReferenced": True,
            }])
        assert [f.key for f in store.get_dataset("todos").fields] == ["title", "deadline"]

    def test_missing_dataset_is_not_found(self, store):
        with pytest.raises(DatasetNotFoundError):
            store.get_dataset("nope")
        with pytest.raises(DatasetNotFoundError):
            store.update_dataset("nope", name="x")
        with pytest.raises(DatasetNotFoundError):
            store.delete_dataset("nope")

    def test_delete_dataset_removes_its_records(self, store, db, todos):
        store.add_record("todos", {"title": "a"})
        store.add_record("todos", {"title": "b"})
        deleted = store.delete_dataset("todos")
        assert len(deleted) == 2
        with db.session_scope() as session:
            assert session.query(Record).filter_by(dataset_id="todos").count() == 0
        with pytest.raises(DatasetNotFoundError):
            store.get_dataset("todos")


class TestRecords:

    def test_add_assigns_id_and_timestamps(self, store, todos):
        record = store.add_record("todos", {"title": "Buy milk"})
        assert record["id"]
        assert record["title"] == "Buy milk"
        assert record["createdAt"] == record["lastModified"]

    def test_add_keeps_caller_id(self, store, todos):
        record = store.add_record("todos", {"title": "x"}, record_id="todo-000001")
        assert store.get_record("todo-000001")["id"] == record["id"]

    def test_add_rejects_invalid_id(self, store, todos):
        with pytest.raises(ValidationError):
            store.add_record("todos", {"title": "x"}, record_id="a/b")

    def test_add_to_missing_dataset(self, store):
        with pytest.raises(DatasetNotFoundError):
            store.add_record("nope", {"title": "x"})

    def test_add_rejects_malformed_payload(self, store, todos):
        with pytest.raises(MalformedPayloadError):
            store.add_record("todos", "not json")
        with pytest.raises(MalformedPayloadError):
            store.add_record("todos", ["a", "list"])

    def test_metadata_keys_are_not_stored(self, store, db, todos):
        record = store.add_record("todos", {"title": "x", "id": "ignored-id-123", "createdAt": "yesterday"})
        with db.session_scope() as session:
            assert session.get(Record, record["id"]).data == {"title": "x"}

    def test_get_missing_record_is_typed_not_found(self, store):
        with pytest.raises(RecordNotFoundError) as excinfo:
            store.get_record("missing-record-id")
        assert isinstance(excinfo.value, NotFoundError)
        assert excinfo.value.kind == "not-found"

    def test_update_replaces_payload(self, store, todos):
        record = store.add_record("todos", {"title": "old", "deadline": "2024-01-01"})
        updated = store.update_record(record["id"], {"title": "new"})
        assert updated["title"] == "new"
        assert "deadline" not in updated
        assert updated["createdAt"] == record["createdAt"]
        assert datetime.fromisoformat(updated["lastModified"]) >= datetime.fromisoformat(record["lastModified"])

    def test_update_missing_record(self, store):
        with pytest.raises(RecordNotFoundError):
            store.update_record("missing-record-id", {"title": "x"})

    def test_delete_returns_payload(self, store, todos):
        record = store.add_record("todos", {"title": "gone"})
        deleted = store.delete_record(record["id"])
        assert deleted["title"] == "gone"
        with pytest.raises(RecordNotFoundError):
            store.get_record(record["id"])
        with pytest.raises(RecordNotFoundError):
            store.delete_record(record["id"])

    def test_list_records(self, store, todos):
        store.add_record("todos", {"title": "a"})
        store.add_record("todos", {"title": "b"})
        assert sorted(r["title"] for r in store.list_records("todos")) == ["a", "b"]


class TestImport:

    def test_import_inserts_all(self, store, todos):
        count = store.import_records("todos", [{"title": "a"}, {"title": "b"}, '{"title": "c"}'])
        assert count == 3
        assert len(store.list_records("todos")) == 3

    def test_import_is_atomic(self, store, todos):
        store.update_dataset("todos", fields=[{"key": "title", "type": "text", "displayName": "Title", "isUnique": True}])
        store.add_record("todos", {"title": "taken"})
        with pytest.raises(UniqueConstraintError):
            store.import_records("todos", [{"title": "fresh"}, {"title": "taken"}])
        assert [r["title"] for r in store.list_records("todos")] == ["taken"]

    def test_import_checks_uniqueness_within_batch(self, store, todos):
        store.update_dataset("todos", fields=[{"key": "title", "type": "text", "isUnique": True}])
        with pytest.raises(UniqueConstraintError):
            store.import_records("todos", [{"title": "same"}, {"title": "same"}])
        assert store.list_records("todos") == []

    def test_import_malformed_entry_imports_nothing(self, store, todos):
        with pytest.raises(MalformedPayloadError):
            store.import_records("todos", [{"title": "ok"}, 42])
        assert store.list_records("todos") == []
