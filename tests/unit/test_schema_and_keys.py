from __future__ import annotations

import re
import uuid

import pytest

from kvindex.domain.errors import UnknownField
from kvindex.domain.models import CUSTOMER_SCHEMA, Customer, registered_schemas
from kvindex.domain.schema import FieldKind, FieldSpec, RecordSchema, string_field
from kvindex.keys import KeyGenerator, type_name_of

KEY_PATTERN = re.compile(
    r"^Customer:[0-9a-f]{8}-[0-9a-f]{4}-4[0-9a-f]{3}-[89ab][0-9a-f]{3}-[0-9a-f]{12}$"
)
KEY_SAMPLE_SIZE = 500


def test_customer_schema_declares_every_field_indexed() -> None:
    names = [spec.name for spec in CUSTOMER_SCHEMA.indexed_fields]

    assert names == ["FirstName", "LastName", "Email", "Age"]
    assert CUSTOMER_SCHEMA.field("Age").kind is FieldKind.NUMERIC
    assert registered_schemas() == {"Customer": CUSTOMER_SCHEMA}


def test_fields_resolve_by_stored_name_or_attribute() -> None:
    assert CUSTOMER_SCHEMA.field("first_name") is CUSTOMER_SCHEMA.field("FirstName")


def test_unknown_field_raises() -> None:
    with pytest.raises(UnknownField, match="Customer has no field 'Nickname'"):
        CUSTOMER_SCHEMA.field("Nickname")


def test_index_key_layout() -> None:
    first_name = CUSTOMER_SCHEMA.field("FirstName")
    age = CUSTOMER_SCHEMA.field("Age")

    assert CUSTOMER_SCHEMA.string_index_key(first_name, "Bob") == "Customer:FirstName:Bob"
    assert CUSTOMER_SCHEMA.numeric_index_key(age) == "Customer:Age"


def test_schema_rejects_duplicate_and_mistyped_fields() -> None:
    with pytest.raises(ValueError, match="Duplicate"):
        RecordSchema(
            type_name="Customer",
            model=Customer,
            fields=(string_field("FirstName", "first_name"), string_field("FirstName", "x")),
        )
    with pytest.raises(ValueError, match="int or float"):
        FieldSpec(name="Age", attribute="age", kind=FieldKind.NUMERIC, python_type=str)


def test_new_keys_are_prefixed_uuid4_and_unique() -> None:
    generator = KeyGenerator()

    keys = {generator.new_key("Customer") for _ in range(KEY_SAMPLE_SIZE)}

    assert len(keys) == KEY_SAMPLE_SIZE
    assert all(KEY_PATTERN.match(key) for key in keys)


def test_key_generator_uses_injected_source() -> None:
    fixed = uuid.UUID(int=7)
    generator = KeyGenerator(uuid_factory=lambda: fixed)

    assert generator.new_key("Customer") == f"Customer:{fixed}"


def test_key_generator_rejects_bad_type_names() -> None:
    with pytest.raises(ValueError):
        KeyGenerator().new_key("")
    with pytest.raises(ValueError):
        KeyGenerator().new_key("Cust:omer")


def test_type_name_of_splits_prefix() -> None:
    assert type_name_of("Customer:abc") == "Customer"
    with pytest.raises(ValueError):
        type_name_of("no-prefix")
