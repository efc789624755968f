"""
Explicit schema descriptors for stored record types.

Each record type declares its fields up front: the stored field name, the
model attribute it maps to, whether it is a string or numeric field and
whether it is indexed. The codec, index set and coordinator all work from
this descriptor instead of reflecting over the model.
"""

from __future__ import annotations

import dataclasses
import enum
from dataclasses import dataclass
from typing import Dict, Iterator, Tuple, Type

from pydantic import BaseModel

from kvindex.domain.errors import UnknownField


class FieldKind(str, enum.Enum):
    STRING = "string"
    NUMERIC = "numeric"


@dataclass(frozen=True)
class FieldSpec:
    """
    Declaration of one stored field.

    Attributes
    ----------
    name : str
        Field name as persisted in the mapping and used in index keys.
    attribute : str
        Attribute name on the record model.
    kind : FieldKind
        String fields get one ordered set per distinct value; numeric fields
        share a single score-ordered structure.
    indexed : bool
        Whether the coordinator maintains an index entry for this field.
    python_type : type
        Declared Python type (``str``, ``int`` or ``float``).
    """

    name: str
    attribute: str
    kind: FieldKind
    indexed: bool = True
    python_type: type = str

    def __post_init__(self) -> None:
        if self.kind is FieldKind.STRING and self.python_type is not str:
            raise ValueError(f"String field '{self.name}' must be declared as str")
        if self.kind is FieldKind.NUMERIC and self.python_type not in (int, float):
            raise ValueError(f"Numeric field '{self.name}' must be declared as int or float")


def string_field(name: str, attribute: str, indexed: bool = True) -> FieldSpec:
    return FieldSpec(name=name, attribute=attribute, kind=FieldKind.STRING, indexed=indexed)


def numeric_field(
    name: str, attribute: str, python_type: type = int, indexed: bool = True
) -> FieldSpec:
    return FieldSpec(
        name=name,
        attribute=attribute,
        kind=FieldKind.NUMERIC,
        indexed=indexed,
        python_type=python_type,
    )


@dataclass(frozen=True)
class RecordSchema:
    """
    Statically declared field list for one record type.

    Index keys follow the layout `<type>:<field>:<value>` for string fields
    and `<type>:<field>` for numeric fields.
    """

    type_name: str
    model: Type[BaseModel]
    fields: Tuple[FieldSpec, ...]
    _lookup: Dict[str, FieldSpec] = dataclasses.field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        if not self.fields:
            raise ValueError(f"Schema '{self.type_name}' declares no fields")
        lookup: Dict[str, FieldSpec] = {}
        for spec in self.fields:
            for alias in (spec.name, spec.attribute):
                existing = lookup.get(alias)
                if existing is not None and existing is not spec:
                    raise ValueError(f"Duplicate field name '{alias}' in '{self.type_name}'")
                lookup[alias] = spec
        object.__setattr__(self, "_lookup", lookup)

    def __iter__(self) -> Iterator[FieldSpec]:
        return iter(self.fields)

    def field(self, name: str) -> FieldSpec:
        """Resolve a field by stored name or model attribute."""
        try:
            return self._lookup[name]
        except KeyError:
            raise UnknownField(self.type_name, name) from None

    @property
    def indexed_fields(self) -> Tuple[FieldSpec, ...]:
        return tuple(spec for spec in self.fields if spec.indexed)

    def string_index_key(self, spec: FieldSpec, value: str) -> str:
        return f"{self.type_name}:{spec.name}:{value}"

    def numeric_index_key(self, spec: FieldSpec) -> str:
        return f"{self.type_name}:{spec.name}"


__all__ = [
    "FieldKind",
    "FieldSpec",
    "RecordSchema",
    "numeric_field",
    "string_field",
]
