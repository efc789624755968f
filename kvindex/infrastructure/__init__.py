"""
Infrastructure package for kvindex.

Centralizes store construction and connectivity concerns (DSN, pooling,
readiness). Keep this layer focused on I/O and resource management,
decoupled from the coordinator's logic.
"""

from kvindex.infrastructure.store_factory import (
    build_dsn,
    create_pool,
    open_store,
    store_session,
    wait_until_ready,
)

__all__ = [
    "build_dsn",
    "create_pool",
    "open_store",
    "store_session",
    "wait_until_ready",
]
