"""
Store interfaces for kvindex.

The index layer needs very little from its key-value store: flat
field-value mappings under a key, plus sorted sets of string members with
numeric scores. Concrete stores (in-memory, PostgreSQL) implement the
`KeyValueStore` protocol; `AbstractKeyValueStore` is an optional ABC helper
for class-based implementations.
"""

from __future__ import annotations

import abc
from typing import Dict, List, Mapping, Optional, Protocol, runtime_checkable


@runtime_checkable
class KeyValueStore(Protocol):
    """
    Operations the index layer issues against the store.

    Every method is a single round trip. Implementations raise
    `StoreUnavailable` on connectivity failures and never retry.
    """

    def set_mapping(self, key: str, mapping: Mapping[str, str]) -> None:
        """Write (upsert) the field-value mapping stored under `key`."""
        ...

    def get_mapping(self, key: str) -> Optional[Dict[str, str]]:
        """Return the mapping under `key`, or None when absent."""
        ...

    def delete_key(self, key: str) -> bool:
        """Delete whatever is stored under `key`; return whether it existed."""
        ...

    def sorted_set_add(self, key: str, member: str, score: float) -> None:
        """Add `member` to the sorted set at `key`, overwriting its score."""
        ...

    def sorted_set_remove(self, key: str, member: str) -> bool:
        """Remove `member` from the sorted set; return whether it was present."""
        ...

    def sorted_set_members(self, key: str) -> List[str]:
        """Enumerate members by rank (score, then insertion order)."""
        ...

    def sorted_set_range_by_score(self, key: str, low: float, high: float) -> List[str]:
        """Members with `low <= score <= high`, ascending by score."""
        ...

    def ping(self) -> bool:
        ...

    def close(self) -> None:
        ...


class AbstractKeyValueStore(abc.ABC):
    """
    Optional ABC helper for class-based store implementations.

    `ping` and `close` default to no-ops for stores without a connection.
    """

    name: str

    @abc.abstractmethod
    def set_mapping(self, key: str, mapping: Mapping[str, str]) -> None:  # pragma: no cover
        raise NotImplementedError

    @abc.abstractmethod
    def get_mapping(self, key: str) -> Optional[Dict[str, str]]:  # pragma: no cover
        raise NotImplementedError

    @abc.abstractmethod
    def delete_key(self, key: str) -> bool:  # pragma: no cover
        raise NotImplementedError

    @abc.abstractmethod
    def sorted_set_add(self, key: str, member: str, score: float) -> None:  # pragma: no cover
        raise NotImplementedError

    @abc.abstractmethod
    def sorted_set_remove(self, key: str, member: str) -> bool:  # pragma: no cover
        raise NotImplementedError

    @abc.abstractmethod
    def sorted_set_members(self, key: str) -> List[str]:  # pragma: no cover
        raise NotImplementedError

    @abc.abstractmethod
    def sorted_set_range_by_score(
        self, key: str, low: float, high: float
    ) -> List[str]:  # pragma: no cover
        raise NotImplementedError

    def ping(self) -> bool:
        return True

    def close(self) -> None:
        return None

    def __enter__(self) -> "AbstractKeyValueStore":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()


__all__ = ["KeyValueStore", "AbstractKeyValueStore"]
