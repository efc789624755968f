"""
kvindex - secondary-index maintenance over a key-value store.

Stores records as flat field-value mappings and keeps their secondary
indexes by hand, the way you would without an object-mapping library:

- one sorted set per distinct value of each indexed string field
- one score-ordered sorted set per indexed numeric field, for range queries
- a CRUD coordinator that updates mappings and indexes in separate,
  non-atomic round trips

Stores are pluggable: an in-memory store for tests and demos, and a
PostgreSQL-backed store built on psycopg.
"""

from __future__ import annotations

__version__ = "0.1.0"
__license__ = "MIT"

# Public API exports
from kvindex.codec import RecordCodec
from kvindex.config import Settings, get_settings
from kvindex.coordinator import CrudCoordinator, QueryResult
from kvindex.domain import (
    CUSTOMER_SCHEMA,
    Customer,
    FieldKind,
    FieldSpec,
    IndexInconsistency,
    KvIndexError,
    MalformedRecord,
    NotFound,
    RecordSchema,
    StoreUnavailable,
    UnknownField,
    numeric_field,
    string_field,
)
from kvindex.index import IndexSet
from kvindex.infrastructure import open_store, store_session
from kvindex.keys import KeyGenerator
from kvindex.store import InMemoryStore, KeyValueStore, PostgresStore
from kvindex.utils.logging import configure_logging, get_logger

__all__ = [
    # Version info
    "__version__",
    "__license__",
    # Configuration
    "Settings",
    "get_settings",
    # Core
    "CrudCoordinator",
    "QueryResult",
    "RecordCodec",
    "IndexSet",
    "KeyGenerator",
    # Schema and models
    "Customer",
    "CUSTOMER_SCHEMA",
    "FieldKind",
    "FieldSpec",
    "RecordSchema",
    "numeric_field",
    "string_field",
    # Errors
    "KvIndexError",
    "NotFound",
    "MalformedRecord",
    "StoreUnavailable",
    "IndexInconsistency",
    "UnknownField",
    # Stores
    "KeyValueStore",
    "InMemoryStore",
    "PostgresStore",
    "open_store",
    "store_session",
    # Logging
    "configure_logging",
    "get_logger",
]
