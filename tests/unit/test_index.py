from __future__ import annotations

import pytest

from kvindex.domain.errors import UnknownField
from kvindex.domain.models import CUSTOMER_SCHEMA
from kvindex.index import IndexSet
from kvindex.store.memory import InMemoryStore


@pytest.fixture()
def indexes(memory_store: InMemoryStore) -> IndexSet:
    return IndexSet(memory_store, CUSTOMER_SCHEMA)


def test_string_index_add_query_remove(indexes: IndexSet, memory_store: InMemoryStore) -> None:
    indexes.add_string_index("FirstName", "Bob", "Customer:1")
    indexes.add_string_index("FirstName", "Bob", "Customer:2")
    indexes.add_string_index("FirstName", "Alice", "Customer:3")

    assert indexes.query_string_index("FirstName", "Bob") == {"Customer:1", "Customer:2"}
    assert memory_store.sorted_set_members("Customer:FirstName:Bob") == ["Customer:1", "Customer:2"]

    indexes.remove_string_index("FirstName", "Bob", "Customer:1")

    assert indexes.query_string_index("FirstName", "Bob") == {"Customer:2"}
    assert indexes.query_string_index("FirstName", "Nobody") == set()


def test_adding_the_same_key_twice_is_idempotent(indexes: IndexSet) -> None:
    indexes.add_string_index("Email", "foo@bar.com", "Customer:1")
    indexes.add_string_index("Email", "foo@bar.com", "Customer:1")

    assert indexes.string_index_members("Email", "foo@bar.com") == ["Customer:1"]


def test_numeric_index_upserts_score(indexes: IndexSet, memory_store: InMemoryStore) -> None:
    indexes.set_numeric_index("Age", "Customer:1", 35)
    indexes.set_numeric_index("Age", "Customer:1", 36)

    assert memory_store.score("Customer:Age", "Customer:1") == 36.0
    assert indexes.query_numeric_range("Age", 36, 36) == ["Customer:1"]
    assert indexes.query_numeric_range("Age", 35, 35) == []


def test_numeric_range_is_ascending_and_inclusive(indexes: IndexSet) -> None:
    for key, age in [("Customer:old", 70), ("Customer:mid", 40), ("Customer:young", 18)]:
        indexes.set_numeric_index("Age", key, age)

    assert indexes.query_numeric_range("Age", 18, 70) == [
        "Customer:young",
        "Customer:mid",
        "Customer:old",
    ]
    assert indexes.query_numeric_range("Age", 19, 69) == ["Customer:mid"]

    indexes.remove_numeric_index("Age", "Customer:mid")

    assert indexes.query_numeric_range("Age", 0, 100) == ["Customer:young", "Customer:old"]


def test_field_kind_is_enforced(indexes: IndexSet) -> None:
    with pytest.raises(ValueError, match="numeric field"):
        indexes.add_string_index("Age", "35", "Customer:1")
    with pytest.raises(ValueError, match="string field"):
        indexes.set_numeric_index("FirstName", "Customer:1", 1)
    with pytest.raises(UnknownField):
        indexes.query_string_index("Nickname", "Bobby")


def test_index_and_unindex_record(indexes: IndexSet, memory_store: InMemoryStore) -> None:
    mapping = {"FirstName": "Bob", "LastName": "Smith", "Email": "foo@bar.com", "Age": "35"}

    indexes.index_record("Customer:1", mapping)

    assert sorted(memory_store.keys()) == [
        "Customer:Age",
        "Customer:Email:foo@bar.com",
        "Customer:FirstName:Bob",
        "Customer:LastName:Smith",
    ]

    indexes.unindex_record("Customer:1", mapping)

    assert memory_store.keys() == []
