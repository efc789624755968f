"""
Record codec: records <-> flat field-value mappings.

Mappings are ordered by the schema's field declaration and hold text only;
numeric fields are stored as their decimal text form. Decoding accepts the
`bytes` values some stores hand back.
"""

from __future__ import annotations

import math
from typing import Any, Dict, Mapping, Union

from pydantic import BaseModel, ValidationError

from kvindex.domain.errors import MalformedRecord
from kvindex.domain.schema import FieldKind, FieldSpec, RecordSchema

FieldValue = Union[str, int, float]
StoredMapping = Dict[str, str]


def encode_value(schema: RecordSchema, spec: FieldSpec, value: Any) -> str:
    """Render one field value as stored text, checking the declared type."""
    if spec.kind is FieldKind.STRING:
        if not isinstance(value, str):
            raise MalformedRecord(
                schema.type_name, spec.name, f"expected str, got {type(value).__name__}"
            )
        return value

    # bool is an int subclass but never a valid numeric field value
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise MalformedRecord(
            schema.type_name, spec.name, f"expected number, got {type(value).__name__}"
        )
    if spec.python_type is int:
        if isinstance(value, float):
            if not value.is_integer():
                raise MalformedRecord(schema.type_name, spec.name, f"{value!r} is not integral")
            value = int(value)
        return str(value)
    if not math.isfinite(value):
        raise MalformedRecord(schema.type_name, spec.name, f"{value!r} is not finite")
    return repr(float(value))


def decode_value(schema: RecordSchema, spec: FieldSpec, raw: Any) -> FieldValue:
    """Parse stored text back into the declared Python type."""
    if isinstance(raw, (bytes, bytearray)):
        try:
            raw = raw.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise MalformedRecord(schema.type_name, spec.name, "value is not UTF-8") from exc
    if not isinstance(raw, str):
        raw = str(raw)

    if spec.kind is FieldKind.STRING:
        return raw

    text = raw.strip()
    try:
        if spec.python_type is int:
            return int(text)
        parsed = float(text)
    except ValueError as exc:
        raise MalformedRecord(
            schema.type_name, spec.name, f"{raw!r} is not a valid {spec.python_type.__name__}"
        ) from exc
    if not math.isfinite(parsed):
        raise MalformedRecord(schema.type_name, spec.name, f"{raw!r} is not finite")
    return parsed


class RecordCodec:
    """
    Converts records of one schema to and from field-value mappings.

    Encoding is lossless for the declared fields and re-runs the model's
    validation, so a record that could not be decoded is never written.
    Decoding fails
    with `MalformedRecord` when a field is absent, unparseable, or rejected
    by the model's own validation. Neither direction has side effects.
    """

    def __init__(self, schema: RecordSchema) -> None:
        self.schema = schema

    def encode(self, record: BaseModel) -> StoredMapping:
        if not isinstance(record, self.schema.model):
            raise MalformedRecord(
                self.schema.type_name,
                None,
                f"expected {self.schema.model.__name__}, got {type(record).__name__}",
            )
        mapping: StoredMapping = {}
        for spec in self.schema:
            try:
                value = getattr(record, spec.attribute)
            except AttributeError as exc:
                raise MalformedRecord(self.schema.type_name, spec.name, "field is not set") from exc
            mapping[spec.name] = encode_value(self.schema, spec, value)
        # model_copy(update=...) and model_construct() skip validation
        try:
            self.schema.model.model_validate(record.model_dump())
        except ValidationError as exc:
            raise MalformedRecord(self.schema.type_name, None, str(exc)) from exc
        return mapping

    def decode(self, mapping: Mapping[Any, Any]) -> BaseModel:
        normalized = {
            (k.decode("utf-8") if isinstance(k, (bytes, bytearray)) else k): v
            for k, v in mapping.items()
        }
        values: Dict[str, FieldValue] = {}
        for spec in self.schema:
            if spec.name not in normalized:
                raise MalformedRecord(self.schema.type_name, spec.name, "required field is absent")
            values[spec.attribute] = decode_value(self.schema, spec, normalized[spec.name])
        try:
            return self.schema.model(**values)
        except ValidationError as exc:
            raise MalformedRecord(self.schema.type_name, None, str(exc)) from exc

    def field_values(self, record: BaseModel) -> Dict[str, FieldValue]:
        """Map stored field name -> Python value for a record (no encoding)."""
        return {spec.name: getattr(record, spec.attribute) for spec in self.schema}


__all__ = ["RecordCodec", "StoredMapping", "FieldValue", "encode_value", "decode_value"]
