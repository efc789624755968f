"""
Store package for kvindex.

Re-exports the store interfaces and the concrete stores so downstream code
can import from `kvindex.store` directly.
"""

from kvindex.store.abstract import AbstractKeyValueStore, KeyValueStore
from kvindex.store.memory import InMemoryStore
from kvindex.store.postgres import PostgresStore

__all__ = [
    # Interfaces
    "AbstractKeyValueStore",
    "KeyValueStore",
    # Concrete stores
    "InMemoryStore",
    "PostgresStore",
]
