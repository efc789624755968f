"""
Pytest configuration for kvindex.

Provides fixtures for:
- Settings override for tests
- In-memory store and coordinator wiring
- PostgreSQL store management for integration tests
"""

from __future__ import annotations

import itertools
import os
import uuid
from typing import Generator

import psycopg
import pytest

from kvindex.config import Settings
from kvindex.coordinator import CrudCoordinator
from kvindex.domain.models import CUSTOMER_SCHEMA, Customer
from kvindex.infrastructure.store_factory import build_dsn, create_pool
from kvindex.keys import KeyGenerator
from kvindex.store.memory import InMemoryStore
from kvindex.store.postgres import PostgresStore


@pytest.fixture(scope="session")
def test_settings() -> Settings:
    """
    Settings fixture with test-specific overrides.

    Can be overridden via environment variables in CI or local testing.
    """
    return Settings(
        store_backend="memory",
        db_host=os.getenv("DB_HOST", "localhost"),
        db_port=int(os.getenv("DB_PORT", "5432")),
        db_user=os.getenv("DB_USER", "postgres"),
        db_password=os.getenv("DB_PASSWORD", "postgres"),
        db_name=os.getenv("DB_NAME", "kvindex"),
        db_connect_timeout=2,
        log_level="DEBUG",
    )


@pytest.fixture()
def sequential_keys() -> KeyGenerator:
    """Key generator producing predictable UUIDs (...0001, ...0002 and so on)."""
    counter = itertools.count(1)
    return KeyGenerator(uuid_factory=lambda: uuid.UUID(int=next(counter)))


@pytest.fixture()
def memory_store() -> Generator[InMemoryStore, None, None]:
    store = InMemoryStore()
    yield store
    store.close()


@pytest.fixture()
def customers(memory_store: InMemoryStore, sequential_keys: KeyGenerator) -> CrudCoordinator:
    return CrudCoordinator(memory_store, CUSTOMER_SCHEMA, key_generator=sequential_keys)


@pytest.fixture()
def bob() -> Customer:
    return Customer(FirstName="Bob", LastName="Smith", Email="foo@bar.com", Age=35)


@pytest.fixture(scope="session")
def test_dsn(test_settings: Settings) -> str:
    """
    Database connection string for tests.
    """
    return build_dsn(test_settings)


@pytest.fixture(scope="session")
def db_connection_available(test_dsn: str) -> bool:
    """
    Check if database is reachable.

    Used to conditionally skip integration tests when DB is not available.
    """
    try:
        with psycopg.connect(test_dsn, connect_timeout=2) as conn:
            with conn.cursor() as cur:
                cur.execute("SELECT 1;")
                cur.fetchone()
        return True
    except psycopg.Error:
        return False


@pytest.fixture(scope="session")
def postgres_store_session(
    test_settings: Settings, test_dsn: str, db_connection_available: bool
) -> Generator[PostgresStore, None, None]:
    """
    Session-scoped PostgreSQL store with the schema in place.

    Skips tests if database is not available.
    """
    if not db_connection_available:
        pytest.skip("Database not available for integration tests")

    pool = create_pool(test_settings, dsn=test_dsn)
    pool.open(wait=True)
    store = PostgresStore(pool)
    store.ensure_schema()
    try:
        yield store
    finally:
        store.close()


@pytest.fixture()
def postgres_store(
    postgres_store_session: PostgresStore, test_dsn: str
) -> Generator[PostgresStore, None, None]:
    """
    Empty the store tables before and after each test function.
    """

    def _truncate() -> None:
        with psycopg.connect(test_dsn) as conn:
            with conn.cursor() as cur:
                cur.execute("TRUNCATE TABLE kv_hashes, kv_sorted_sets;")
            conn.commit()

    _truncate()
    yield postgres_store_session
    _truncate()
