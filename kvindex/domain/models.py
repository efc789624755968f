"""
Record models stored through kvindex.

Defines the `Customer` document used by the walkthrough, the CLI and the
seed script, together with its schema descriptor. Stored field names keep
the PascalCase used in the key layout (`Customer:FirstName:Bob`); model
attributes are snake_case and accept either form on construction.
"""
from __future__ import annotations

from typing import Dict

from pydantic import BaseModel, Field

from kvindex.domain.schema import RecordSchema, numeric_field, string_field


class Customer(BaseModel):
    """
    A customer document with four indexed fields.
    """

    first_name: str = Field(..., alias="FirstName", description="Given name.")
    last_name: str = Field(..., alias="LastName", description="Family name.")
    email: str = Field(..., alias="Email", description="Contact address.")
    age: int = Field(..., alias="Age", ge=0, description="Age in whole years.")

    model_config = {
        "frozen": True,
        "populate_by_name": True,
        "arbitrary_types_allowed": False,
    }


CUSTOMER_SCHEMA = RecordSchema(
    type_name="Customer",
    model=Customer,
    fields=(
        string_field("FirstName", "first_name"),
        string_field("LastName", "last_name"),
        string_field("Email", "email"),
        numeric_field("Age", "age", python_type=int),
    ),
)


def registered_schemas() -> Dict[str, RecordSchema]:
    """Registry of record types addressable by name (CLI, seed script)."""
    return {CUSTOMER_SCHEMA.type_name: CUSTOMER_SCHEMA}


__all__ = ["Customer", "CUSTOMER_SCHEMA", "registered_schemas"]
