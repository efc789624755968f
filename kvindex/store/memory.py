"""
In-process store with hash and sorted-set semantics.

Used by the test suite, the walkthrough and `STORE_BACKEND=memory`. Each
method holds a lock for its duration, so every call is atomic on its own
just like a single round trip against a real server; nothing spans calls.
"""

from __future__ import annotations

import itertools
import threading
from typing import Dict, List, Mapping, Optional, Tuple

from kvindex.store.abstract import AbstractKeyValueStore
from kvindex.utils.logging import get_logger

log = get_logger(__name__)


class InMemoryStore(AbstractKeyValueStore):
    """
    Dictionaries standing in for a key-value server.

    Sorted sets keep `member -> (score, seq)` where `seq` is a global
    insertion counter used to break score ties. Re-adding a member updates
    its score but keeps its original sequence number. Empty sorted sets are
    dropped as soon as their last member goes.
    """

    name: str = "memory"

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._mappings: Dict[str, Dict[str, str]] = {}
        self._sorted_sets: Dict[str, Dict[str, Tuple[float, int]]] = {}
        self._seq = itertools.count()
        self._closed = False

    def set_mapping(self, key: str, mapping: Mapping[str, str]) -> None:
        with self._lock:
            current = self._mappings.setdefault(key, {})
            current.update({str(k): str(v) for k, v in mapping.items()})

    def get_mapping(self, key: str) -> Optional[Dict[str, str]]:
        with self._lock:
            mapping = self._mappings.get(key)
            return dict(mapping) if mapping is not None else None

    def delete_key(self, key: str) -> bool:
        with self._lock:
            existed = self._mappings.pop(key, None) is not None
            existed = self._sorted_sets.pop(key, None) is not None or existed
            return existed

    def sorted_set_add(self, key: str, member: str, score: float) -> None:
        with self._lock:
            members = self._sorted_sets.setdefault(key, {})
            previous = members.get(member)
            seq = previous[1] if previous is not None else next(self._seq)
            members[member] = (float(score), seq)

    def sorted_set_remove(self, key: str, member: str) -> bool:
        with self._lock:
            members = self._sorted_sets.get(key)
            if members is None or member not in members:
                return False
            del members[member]
            if not members:
                del self._sorted_sets[key]
            return True

    def sorted_set_members(self, key: str) -> List[str]:
        with self._lock:
            return self._ranked(key)

    def sorted_set_range_by_score(self, key: str, low: float, high: float) -> List[str]:
        if low > high:
            return []
        with self._lock:
            members = self._sorted_sets.get(key, {})
            return [
                member
                for member in self._ranked(key)
                if low <= members[member][0] <= high
            ]

    def _ranked(self, key: str) -> List[str]:
        members = self._sorted_sets.get(key, {})
        return sorted(members, key=lambda m: members[m])

    def score(self, key: str, member: str) -> Optional[float]:
        """Current score of `member`, or None (diagnostics and tests)."""
        with self._lock:
            entry = self._sorted_sets.get(key, {}).get(member)
            return entry[0] if entry is not None else None

    def keys(self) -> List[str]:
        """Every key currently holding a mapping or sorted set."""
        with self._lock:
            return sorted(set(self._mappings) | set(self._sorted_sets))

    def ping(self) -> bool:
        return not self._closed

    def close(self) -> None:
        if not self._closed:
            log.debug(
                "Closing in-memory store",
                extra={"mappings": len(self._mappings), "sorted_sets": len(self._sorted_sets)},
            )
        self._closed = True


__all__ = ["InMemoryStore"]
