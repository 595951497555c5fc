"""Tests for per-field uniqueness."""
import pytest

from errors import ConstraintViolationError, UniqueConstraintError


@pytest.fixture()
def categories(store):
    return store.create_dataset(
        "Categories", "metric", dataset_id="categories",
        fields=[
            {"key": "name", "type": "text", "displayName": "Category Name", "isUnique": True},
            {"key": "rank", "type": "number", "displayName": "Rank", "isUnique": True, "isOptional": True},
            {"key": "color", "type": "text", "displayName": "Color"},
        ],
    )


def test_second_record_with_same_value_is_rejected(store, categories):
    store.add_record("categories", {"name": "Sleep"})
    with pytest.raises(UniqueConstraintError) as excinfo:
        store.add_record("categories", {"name": "Sleep"})
    assert excinfo.value.field_name == "Category Name"
    assert excinfo.value.value == "Sleep"
    assert "Category Name" in str(excinfo.value)
    assert isinstance(excinfo.value, ConstraintViolationError)
    assert len(store.list_records("categories")) == 1


def test_new_value_is_accepted(store, categories):
    store.add_record("categories", {"name": "Sleep"})
    store.add_record("categories", {"name": "Fitness"})
    assert len(store.list_records("categories")) == 2


def test_missing_and_null_values_are_skipped(store, categories):
    store.add_record("categories", {"name": "A", "rank": None})
    store.add_record("categories", {"name": "B"})
    store.add_record("categories", {"name": "C", "rank": None})
    assert len(store.list_records("categories")) == 3


def test_numbers_are_compared_canonically(store, categories):
    store.add_record("categories", {"name": "A", "rank": 1})
    with pytest.raises(UniqueConstraintError):
        store.add_record("categories", {"name": "B", "rank": 1.0})
    with pytest.raises(UniqueConstraintError):
        store.add_record("categories", {"name": "C", "rank": "1"})


def test_non_unique_fields_may_repeat(store, categories):
    store.add_record("categories", {"name": "A", "color": "red"})
    store.add_record("categories", {"name": "B", "color": "red"})


def test_update_may_keep_its_own_value(store, categories):
    record = store.add_record("categories", {"name": "Sleep", "color": "blue"})
    updated = store.update_record(record["id"], {"name": "Sleep", "color": "green"})
    assert updated["color"] == "green"


def test_update_to_taken_value_is_rejected(store, categories):
    store.add_record("categories", {"name": "Sleep"})
    other = store.add_record("categories", {"name": "Fitness"})
    with pytest.raises(UniqueConstraintError):
        store.update_record(other["id"], {"name": "Sleep"})
    assert store.get_record(other["id"])["name"] == "Fitness"


def test_uniqueness_is_scoped_to_dataset(store, categories):
    store.create_dataset(
        "Other", "metric", dataset_id="other",
        fields=[{"key": "name", "type": "text", "isUnique": True}],
    )
    store.add_record("categories", {"name": "Sleep"})
    store.add_record("other", {"name": "Sleep"})
