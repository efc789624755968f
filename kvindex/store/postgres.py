"""
PostgreSQL-backed store.

Emulates the two structures the index layer needs on plain tables:

- `kv_hashes`: one row per (key, field) with the field's position in the
  mapping, so mappings come back in the order they were written;
- `kv_sorted_sets`: one row per (set_key, member) with a score and an
  identity sequence used to break score ties by insertion order.

Each public method borrows one pooled connection and commits on return.
Driver and pool failures are reported as `StoreUnavailable` and are never
retried here.
"""

from __future__ import annotations

from contextlib import contextmanager
from typing import Dict, Generator, List, Mapping, Optional

import psycopg
from psycopg_pool import ConnectionPool, PoolTimeout

from kvindex.domain.errors import StoreUnavailable
from kvindex.store.abstract import AbstractKeyValueStore
from kvindex.utils.logging import get_logger

log = get_logger(__name__)

SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS kv_hashes (
    key      TEXT    NOT NULL,
    field    TEXT    NOT NULL,
    value    TEXT    NOT NULL,
    position INTEGER NOT NULL,
    PRIMARY KEY (key, field)
);
CREATE TABLE IF NOT EXISTS kv_sorted_sets (
    set_key TEXT             NOT NULL,
    member  TEXT             NOT NULL,
    score   DOUBLE PRECISION NOT NULL,
    seq     BIGINT GENERATED ALWAYS AS IDENTITY,
    PRIMARY KEY (set_key, member)
);
CREATE INDEX IF NOT EXISTS kv_sorted_sets_score_idx
    ON kv_sorted_sets (set_key, score, seq);
"""

_UPSERT_FIELD = """
INSERT INTO kv_hashes (key, field, value, position)
VALUES (%s, %s, %s, %s)
ON CONFLICT (key, field) DO UPDATE
SET value = EXCLUDED.value, position = EXCLUDED.position;
"""

_UPSERT_MEMBER = """
INSERT INTO kv_sorted_sets (set_key, member, score)
VALUES (%s, %s, %s)
ON CONFLICT (set_key, member) DO UPDATE SET score = EXCLUDED.score;
"""

_TRANSIENT_ERRORS = (psycopg.OperationalError, psycopg.InterfaceError, PoolTimeout)


class PostgresStore(AbstractKeyValueStore):
    """
    Key-value store on top of a psycopg `ConnectionPool`.

    The pool is owned by the caller-supplied factory; `close()` closes it.
    """

    name: str = "postgres"

    def __init__(self, pool: ConnectionPool) -> None:
        self._pool = pool

    @contextmanager
    def _round_trip(self, operation: str) -> Generator[psycopg.Cursor, None, None]:
        try:
            with self._pool.connection() as conn:
                with conn.cursor() as cur:
                    yield cur
        except _TRANSIENT_ERRORS as exc:
            log.error(
                "Store round trip failed",
                extra={"operation": operation, "error": str(exc)},
            )
            raise StoreUnavailable(operation, exc) from exc

    def ensure_schema(self) -> None:
        """Create the backing tables if they do not exist yet."""
        with self._round_trip("ensure_schema") as cur:
            cur.execute(SCHEMA_SQL)
        log.info("Store schema ensured", extra={"store": self.name})

    def set_mapping(self, key: str, mapping: Mapping[str, str]) -> None:
        rows = [(key, field, value, pos) for pos, (field, value) in enumerate(mapping.items())]
        if not rows:
            return
        with self._round_trip("set_mapping") as cur:
            cur.executemany(_UPSERT_FIELD, rows)

    def get_mapping(self, key: str) -> Optional[Dict[str, str]]:
        with self._round_trip("get_mapping") as cur:
            cur.execute(
                "SELECT field, value FROM kv_hashes WHERE key = %s ORDER BY position;",
                (key,),
            )
            rows = cur.fetchall()
        if not rows:
            return None
        return {field: value for field, value in rows}

    def delete_key(self, key: str) -> bool:
        with self._round_trip("delete_key") as cur:
            cur.execute("DELETE FROM kv_hashes WHERE key = %s;", (key,))
            removed = cur.rowcount
            cur.execute("DELETE FROM kv_sorted_sets WHERE set_key = %s;", (key,))
            removed += cur.rowcount
        return removed > 0

    def sorted_set_add(self, key: str, member: str, score: float) -> None:
        with self._round_trip("sorted_set_add") as cur:
            cur.execute(_UPSERT_MEMBER, (key, member, float(score)))

    def sorted_set_remove(self, key: str, member: str) -> bool:
        with self._round_trip("sorted_set_remove") as cur:
            cur.execute(
                "DELETE FROM kv_sorted_sets WHERE set_key = %s AND member = %s;",
                (key, member),
            )
            return cur.rowcount > 0

    def sorted_set_members(self, key: str) -> List[str]:
        with self._round_trip("sorted_set_members") as cur:
            cur.execute(
                "SELECT member FROM kv_sorted_sets WHERE set_key = %s ORDER BY score, seq;",
                (key,),
            )
            return [row[0] for row in cur.fetchall()]

    def sorted_set_range_by_score(self, key: str, low: float, high: float) -> List[str]:
        if low > high:
            return []
        with self._round_trip("sorted_set_range_by_score") as cur:
            cur.execute(
                """
                SELECT member FROM kv_sorted_sets
                WHERE set_key = %s AND score BETWEEN %s AND %s
                ORDER BY score, seq;
                """,
                (key, float(low), float(high)),
            )
            return [row[0] for row in cur.fetchall()]

    def ping(self) -> bool:
        with self._round_trip("ping") as cur:
            cur.execute("SELECT 1;")
            return cur.fetchone() is not None

    def close(self) -> None:
        self._pool.close()


__all__ = ["PostgresStore", "SCHEMA_SQL"]
