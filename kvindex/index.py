"""
Secondary index maintenance for one record type.

String fields get one sorted set per distinct value (`<type>:<field>:<value>`)
whose members are primary keys, all with score 0. Numeric fields share one
sorted set per field (`<type>:<field>`) scored by the field value, which is
what makes range queries possible.

Index operations only fail on store connectivity errors; the codec has
already validated field shapes by the time values get here.
"""

from __future__ import annotations

from typing import List, Mapping, Set

from kvindex.domain.schema import FieldKind, FieldSpec, RecordSchema
from kvindex.store.abstract import KeyValueStore
from kvindex.utils.logging import get_logger

log = get_logger(__name__)

# Members of a string value-set carry no ordering information of their own.
STRING_MEMBER_SCORE = 0.0


class IndexSet:
    def __init__(self, store: KeyValueStore, schema: RecordSchema) -> None:
        self.store = store
        self.schema = schema

    def _spec(self, field: str, kind: FieldKind) -> FieldSpec:
        spec = self.schema.field(field)
        if spec.kind is not kind:
            raise ValueError(
                f"{self.schema.type_name}.{spec.name} is a {spec.kind.value} field, "
                f"not {kind.value}"
            )
        return spec

    # String indexes

    def add_string_index(self, field: str, value: str, key: str) -> None:
        spec = self._spec(field, FieldKind.STRING)
        self.store.sorted_set_add(
            self.schema.string_index_key(spec, value), key, STRING_MEMBER_SCORE
        )

    def remove_string_index(self, field: str, value: str, key: str) -> None:
        spec = self._spec(field, FieldKind.STRING)
        self.store.sorted_set_remove(self.schema.string_index_key(spec, value), key)

    def query_string_index(self, field: str, value: str) -> Set[str]:
        return set(self.string_index_members(field, value))

    def string_index_members(self, field: str, value: str) -> List[str]:
        """Members of a value-set in rank (insertion) order."""
        spec = self._spec(field, FieldKind.STRING)
        return self.store.sorted_set_members(self.schema.string_index_key(spec, value))

    # Numeric indexes

    def set_numeric_index(self, field: str, key: str, score: float) -> None:
        spec = self._spec(field, FieldKind.NUMERIC)
        self.store.sorted_set_add(self.schema.numeric_index_key(spec), key, float(score))

    def remove_numeric_index(self, field: str, key: str) -> None:
        spec = self._spec(field, FieldKind.NUMERIC)
        self.store.sorted_set_remove(self.schema.numeric_index_key(spec), key)

    def query_numeric_range(self, field: str, low: float, high: float) -> List[str]:
        spec = self._spec(field, FieldKind.NUMERIC)
        return self.store.sorted_set_range_by_score(
            self.schema.numeric_index_key(spec), float(low), float(high)
        )

    # Whole-record helpers

    def index_field(self, spec: FieldSpec, key: str, stored_value: str) -> None:
        if spec.kind is FieldKind.STRING:
            self.add_string_index(spec.name, stored_value, key)
        else:
            self.set_numeric_index(spec.name, key, float(stored_value))

    def unindex_field(self, spec: FieldSpec, key: str, stored_value: str) -> None:
        if spec.kind is FieldKind.STRING:
            self.remove_string_index(spec.name, stored_value, key)
        else:
            self.remove_numeric_index(spec.name, key)

    def index_record(self, key: str, mapping: Mapping[str, str]) -> None:
        """Write every indexed field of an encoded record."""
        for spec in self.schema.indexed_fields:
            self.index_field(spec, key, mapping[spec.name])
        log.debug("Indexed record", extra={"key": key, "fields": len(self.schema.indexed_fields)})

    def unindex_record(self, key: str, mapping: Mapping[str, str]) -> None:
        """Remove every index membership of an encoded record."""
        for spec in self.schema.indexed_fields:
            self.unindex_field(spec, key, mapping[spec.name])
        log.debug("Unindexed record", extra={"key": key})


__all__ = ["IndexSet", "STRING_MEMBER_SCORE"]
