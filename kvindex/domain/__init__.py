"""
Domain package for kvindex.

Exports record models, schema descriptors and the error hierarchy.
Keep this package focused on data definitions and validation concerns.
"""

from kvindex.domain.errors import (
    IndexInconsistency,
    KvIndexError,
    MalformedRecord,
    NotFound,
    StoreUnavailable,
    UnknownField,
)
from kvindex.domain.models import CUSTOMER_SCHEMA, Customer, registered_schemas
from kvindex.domain.schema import (
    FieldKind,
    FieldSpec,
    RecordSchema,
    numeric_field,
    string_field,
)

__all__ = [
    "Customer",
    "CUSTOMER_SCHEMA",
    "registered_schemas",
    "FieldKind",
    "FieldSpec",
    "RecordSchema",
    "numeric_field",
    "string_field",
    "KvIndexError",
    "NotFound",
    "MalformedRecord",
    "StoreUnavailable",
    "IndexInconsistency",
    "UnknownField",
]
