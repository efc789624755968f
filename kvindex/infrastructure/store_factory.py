"""
Store construction for kvindex.

Builds the store handle the coordinator is given: an in-memory store, or a
PostgreSQL store over a psycopg connection pool. There is no process-wide
singleton; whoever opens a store owns it and closes it.

Only the startup readiness probe is retried (tenacity, exponential backoff).
Once a store is handed out, its round trips surface failures immediately.
"""

from __future__ import annotations

from contextlib import contextmanager
from typing import Generator, Optional

from psycopg_pool import ConnectionPool
from tenacity import Retrying, retry_if_exception_type, stop_after_attempt, wait_exponential

from kvindex.config import Settings, get_settings
from kvindex.domain.errors import StoreUnavailable
from kvindex.store.abstract import KeyValueStore
from kvindex.store.memory import InMemoryStore
from kvindex.store.postgres import PostgresStore
from kvindex.utils.logging import get_logger

log = get_logger(__name__)


def build_dsn(settings: Optional[Settings] = None) -> str:
    """Compose a DSN string from settings."""
    settings = settings or get_settings()
    return (
        f"postgresql://{settings.db_user}:{settings.db_password}"
        f"@{settings.db_host}:{settings.db_port}/{settings.db_name}"
    )


def create_pool(settings: Optional[Settings] = None, dsn: Optional[str] = None) -> ConnectionPool:
    """
    Create an unopened psycopg pool sized from settings.

    The pool is opened by `open_store` once the caller is ready to wait on it.
    """
    settings = settings or get_settings()
    return ConnectionPool(
        conninfo=dsn or build_dsn(settings),
        min_size=settings.pool_min_size,
        max_size=settings.pool_max_size,
        kwargs={"connect_timeout": settings.db_connect_timeout},
        timeout=float(settings.db_connect_timeout),
        open=False,
    )


def wait_until_ready(store: KeyValueStore, attempts: int = 3, backoff: float = 1.0) -> None:
    """
    Ping the store until it answers, with exponential backoff.

    `backoff` is the multiplier of the exponential wait in seconds (capped
    at 10s); 0 retries immediately.

    Raises
    ------
    StoreUnavailable
        If the store still fails after `attempts` tries.
    """
    for attempt in Retrying(
        stop=stop_after_attempt(attempts),
        wait=wait_exponential(multiplier=backoff, min=0, max=10),
        retry=retry_if_exception_type(StoreUnavailable),
        reraise=True,
    ):
        with attempt:
            if attempt.retry_state.attempt_number > 1:
                log.warning(
                    "Retrying store readiness probe",
                    extra={"attempt": attempt.retry_state.attempt_number, "attempts": attempts},
                )
            store.ping()


def open_store(
    settings: Optional[Settings] = None,
    dsn_override: Optional[str] = None,
    ensure_schema: bool = True,
) -> KeyValueStore:
    """
    Open the store selected by `settings.store_backend`.

    Parameters
    ----------
    settings : Settings, optional
        Defaults to the cached application settings.
    dsn_override : str, optional
        Connection string used instead of the one built from settings.
    ensure_schema : bool
        Create the PostgreSQL tables when missing.
    """
    settings = settings or get_settings()
    if settings.store_backend == "memory":
        log.info("Opened store", extra={"store": InMemoryStore.name})
        return InMemoryStore()

    pool = create_pool(settings, dsn=dsn_override)
    pool.open(wait=False)
    store = PostgresStore(pool)
    try:
        wait_until_ready(store, attempts=settings.store_ready_attempts)
        if ensure_schema:
            store.ensure_schema()
    except Exception:
        store.close()
        raise
    log.info(
        "Opened store",
        extra={"store": PostgresStore.name, "host": settings.db_host, "db": settings.db_name},
    )
    return store


@contextmanager
def store_session(
    settings: Optional[Settings] = None, dsn_override: Optional[str] = None
) -> Generator[KeyValueStore, None, None]:
    """
    Context manager that opens a store and always closes it.

    Example
    -------
        with store_session() as store:
            CrudCoordinator(store, CUSTOMER_SCHEMA).read_by_id(key)
    """
    store = open_store(settings, dsn_override=dsn_override)
    try:
        yield store
    finally:
        store.close()


__all__ = [
    "build_dsn",
    "create_pool",
    "open_store",
    "store_session",
    "wait_until_ready",
]
