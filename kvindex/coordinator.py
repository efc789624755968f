"""
CRUD coordinator: create/read/update/delete with hand-maintained indexes.

Every operation is a short sequence of independent store round trips with
no locking and no rollback. If a step fails, the steps already done stay
done and the error propagates; `reindex`, `prune_stale` and a repeated
`delete` are the caller's repair tools.

Usage:
    from kvindex.coordinator import CrudCoordinator
    from kvindex.domain.models import CUSTOMER_SCHEMA, Customer
    from kvindex.store.memory import InMemoryStore

    customers = CrudCoordinator(InMemoryStore(), CUSTOMER_SCHEMA)
    bob = Customer(FirstName="Bob", LastName="Smith", Email="foo@bar.com", Age=35)
    key = customers.create(bob)
    bobs = customers.read_by_field("FirstName", "Bob")
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Callable, Dict, Iterable, Iterator, List, Optional, overload

from pydantic import BaseModel

from kvindex.codec import RecordCodec, encode_value
from kvindex.domain.errors import IndexInconsistency, MalformedRecord, NotFound
from kvindex.domain.schema import FieldKind, FieldSpec, RecordSchema
from kvindex.index import IndexSet
from kvindex.keys import KeyGenerator
from kvindex.store.abstract import KeyValueStore
from kvindex.utils.logging import get_logger

log = get_logger(__name__)

Mutator = Callable[[BaseModel], BaseModel]


class QueryResult(Sequence[BaseModel]):
    """
    Records hydrated from an index lookup.

    Behaves as a read-only sequence of records. `keys[i]` is the primary key
    of `records[i]`; `inconsistencies` lists the stale index references that
    were skipped while hydrating.
    """

    def __init__(
        self,
        keys: List[str],
        records: List[BaseModel],
        inconsistencies: List[IndexInconsistency],
    ) -> None:
        self.keys = keys
        self.records = records
        self.inconsistencies = inconsistencies

    @overload
    def __getitem__(self, index: int) -> BaseModel: ...

    @overload
    def __getitem__(self, index: slice) -> List[BaseModel]: ...

    def __getitem__(self, index):
        return self.records[index]

    def __len__(self) -> int:
        return len(self.records)

    def __iter__(self) -> Iterator[BaseModel]:
        return iter(self.records)

    def items(self) -> List[tuple]:
        """(key, record) pairs in result order."""
        return list(zip(self.keys, self.records))

    def __repr__(self) -> str:
        return (
            f"QueryResult(records={len(self.records)}, "
            f"inconsistencies={len(self.inconsistencies)})"
        )


class CrudCoordinator:
    """
    Orchestrates codec, key generator and index set against one store.

    Parameters
    ----------
    store : KeyValueStore
        Store handle; the coordinator holds no other shared state.
    schema : RecordSchema
        Field declaration of the record type managed here.
    key_generator : KeyGenerator, optional
        Source of new primary keys. Defaults to random UUIDs.

    Attributes
    ----------
    inconsistency_count : int
        Stale index references skipped by reads since construction.
    """

    def __init__(
        self,
        store: KeyValueStore,
        schema: RecordSchema,
        key_generator: Optional[KeyGenerator] = None,
    ) -> None:
        self.store = store
        self.schema = schema
        self.codec = RecordCodec(schema)
        self.indexes = IndexSet(store, schema)
        self.key_generator = key_generator or KeyGenerator()
        self.inconsistency_count = 0

    def _indexed(self, field: str, kind: FieldKind) -> FieldSpec:
        spec = self.schema.field(field)
        if not spec.indexed:
            raise ValueError(f"{self.schema.type_name}.{spec.name} is not indexed")
        if spec.kind is not kind:
            raise ValueError(
                f"{self.schema.type_name}.{spec.name} is a {spec.kind.value} field, "
                f"not {kind.value}"
            )
        return spec

    def _stored_mapping(self, key: str) -> Dict[str, str]:
        mapping = self.store.get_mapping(key)
        if mapping is None:
            raise NotFound(key)
        return mapping

    def _hydrate(self, index_key: str, keys: Iterable[str]) -> QueryResult:
        found_keys: List[str] = []
        records: List[BaseModel] = []
        stale: List[IndexInconsistency] = []
        for key in keys:
            mapping = self.store.get_mapping(key)
            if mapping is None:
                stale.append(IndexInconsistency(index_key, key))
                continue
            found_keys.append(key)
            records.append(self.codec.decode(mapping))
        if stale:
            self.inconsistency_count += len(stale)
            log.warning(
                "Skipped stale index references",
                extra={
                    "index": index_key,
                    "stale": len(stale),
                    "keys": [s.primary_key for s in stale],
                },
            )
        return QueryResult(found_keys, records, stale)

    # Create / read

    def create(self, record: BaseModel) -> str:
        """
        Store a new record and index it; return its primary key.

        The mapping is written before the index entries. If an index write
        fails, the mapping stays behind unindexed: retry with `reindex(key)`
        or roll back with `delete(key)`.
        """
        mapping = self.codec.encode(record)
        key = self.key_generator.new_key(self.schema.type_name)
        self.store.set_mapping(key, mapping)
        self.indexes.index_record(key, mapping)
        log.info("Created record", extra={"type": self.schema.type_name, "key": key})
        return key

    def read_by_id(self, key: str) -> BaseModel:
        return self.codec.decode(self._stored_mapping(key))

    def read_by_field(self, field: str, value: str) -> QueryResult:
        """Exact-match lookup on an indexed string field."""
        spec = self._indexed(field, FieldKind.STRING)
        stored_value = encode_value(self.schema, spec, value)
        keys = self.indexes.string_index_members(spec.name, stored_value)
        return self._hydrate(self.schema.string_index_key(spec, stored_value), keys)

    def read_by_range(self, field: str, low: float, high: float) -> QueryResult:
        """Inclusive range lookup on an indexed numeric field, ascending by value."""
        spec = self._indexed(field, FieldKind.NUMERIC)
        keys = self.indexes.query_numeric_range(spec.name, low, high)
        return self._hydrate(self.schema.numeric_index_key(spec), keys)

    # Update / delete

    def update(self, key: str, mutator: Mutator) -> BaseModel:
        """
        Apply `mutator` to the stored record and persist the result.

        Only index entries whose field changed are touched, and they are
        always written before the mapping is overwritten.
        """
        current = self.read_by_id(key)
        updated = mutator(current)
        if updated is None:
            raise MalformedRecord(self.schema.type_name, None, "mutator returned None")
        old_mapping = self.codec.encode(current)
        new_mapping = self.codec.encode(updated)

        changed: List[str] = []
        for spec in self.schema.indexed_fields:
            old_value, new_value = old_mapping[spec.name], new_mapping[spec.name]
            if old_value == new_value:
                continue
            changed.append(spec.name)
            if spec.kind is FieldKind.STRING:
                self.indexes.remove_string_index(spec.name, old_value, key)
                self.indexes.add_string_index(spec.name, new_value, key)
            else:
                self.indexes.set_numeric_index(spec.name, key, float(new_value))

        self.store.set_mapping(key, new_mapping)
        log.info("Updated record", extra={"key": key, "reindexed_fields": changed})
        return updated

    def update_many(self, keys: Iterable[str], mutator: Mutator) -> List[BaseModel]:
        """Update each key in turn; keys that no longer exist are skipped."""
        updated: List[BaseModel] = []
        for key in keys:
            try:
                updated.append(self.update(key, mutator))
            except NotFound:
                log.warning("Skipped update of missing record", extra={"key": key})
        return updated

    def delete(self, key: str) -> bool:
        """
        Remove a record and all of its index memberships.

        Returns False (and does nothing) when the key is already absent.
        Memberships are removed using the stored text of each field, which is
        exactly what the index keys were built from.
        """
        mapping = self.store.get_mapping(key)
        if mapping is None:
            log.debug("Delete of absent key is a no-op", extra={"key": key})
            return False
        for spec in self.schema.indexed_fields:
            if spec.kind is FieldKind.NUMERIC:
                self.indexes.remove_numeric_index(spec.name, key)
            elif spec.name in mapping:
                self.indexes.remove_string_index(spec.name, mapping[spec.name], key)
        self.store.delete_key(key)
        log.info("Deleted record", extra={"type": self.schema.type_name, "key": key})
        return True

    # Repair

    def reindex(self, key: str) -> BaseModel:
        """
        Re-apply every index entry of a stored record.

        Repairs a half-created record. It cannot discover memberships under
        values the record no longer holds; `prune_stale` covers the reverse
        direction only for missing records.
        """
        record = self.read_by_id(key)
        self.indexes.index_record(key, self.codec.encode(record))
        log.info("Reindexed record", extra={"key": key})
        return record

    def prune_stale(self, field: str, value: str) -> List[str]:
        """Drop members of a string value-set whose mapping is gone."""
        spec = self._indexed(field, FieldKind.STRING)
        stored_value = encode_value(self.schema, spec, value)
        removed = [
            key
            for key in self.indexes.string_index_members(spec.name, stored_value)
            if self.store.get_mapping(key) is None
        ]
        for key in removed:
            self.indexes.remove_string_index(spec.name, stored_value, key)
        if removed:
            log.info(
                "Pruned stale index references",
                extra={
                    "index": self.schema.string_index_key(spec, stored_value),
                    "removed": len(removed),
                },
            )
        return removed

    def prune_stale_range(self, field: str, low: float, high: float) -> List[str]:
        """Drop members of a numeric index in [low, high] whose mapping is gone."""
        spec = self._indexed(field, FieldKind.NUMERIC)
        removed = [
            key
            for key in self.indexes.query_numeric_range(spec.name, low, high)
            if self.store.get_mapping(key) is None
        ]
        for key in removed:
            self.indexes.remove_numeric_index(spec.name, key)
        if removed:
            log.info(
                "Pruned stale index references",
                extra={"index": self.schema.numeric_index_key(spec), "removed": len(removed)},
            )
        return removed


__all__ = ["CrudCoordinator", "QueryResult", "Mutator"]
