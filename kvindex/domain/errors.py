"""
Error kinds raised (or collected) by the index maintenance layer.

All failures surface to the caller; nothing here is retried internally.
`IndexInconsistency` is the exception-shaped record of a non-fatal problem:
hydration collects instances instead of raising them.
"""

from __future__ import annotations

from typing import Optional


class KvIndexError(Exception):
    """Base class for every error raised by kvindex."""


class NotFound(KvIndexError):
    """No field-value mapping is stored under the requested key."""

    def __init__(self, key: str) -> None:
        super().__init__(f"No record stored under key '{key}'")
        self.key = key


class MalformedRecord(KvIndexError):
    """The codec could not encode or decode a record."""

    def __init__(self, type_name: str, field: Optional[str], reason: str) -> None:
        where = f"{type_name}.{field}" if field else type_name
        super().__init__(f"Malformed {where}: {reason}")
        self.type_name = type_name
        self.field = field
        self.reason = reason


class StoreUnavailable(KvIndexError):
    """Connectivity or timeout failure reported by the underlying store."""

    def __init__(self, operation: str, cause: Optional[BaseException] = None) -> None:
        detail = f": {cause}" if cause is not None else ""
        super().__init__(f"Store unavailable during {operation}{detail}")
        self.operation = operation
        self.cause = cause


class IndexInconsistency(KvIndexError):
    """An index entry references a primary key whose mapping is gone."""

    def __init__(self, index_key: str, primary_key: str) -> None:
        super().__init__(f"Index '{index_key}' references missing record '{primary_key}'")
        self.index_key = index_key
        self.primary_key = primary_key


class UnknownField(KvIndexError, KeyError):
    """The schema declares no field with the requested name."""

    def __init__(self, type_name: str, field: str) -> None:
        super().__init__(f"{type_name} has no field '{field}'")
        self.type_name = type_name
        self.field = field

    def __str__(self) -> str:  # KeyError would repr() the message
        return str(self.args[0])


__all__ = [
    "KvIndexError",
    "NotFound",
    "MalformedRecord",
    "StoreUnavailable",
    "IndexInconsistency",
    "UnknownField",
]
