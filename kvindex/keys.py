"""
Primary key generation.

Keys have the form `<type-name>:<uuid4>` and are assigned once, at creation.
"""

from __future__ import annotations

import uuid
from typing import Callable

KEY_SEPARATOR = ":"


class KeyGenerator:
    """
    Produces collision-resistant primary keys from a random UUID source.

    The source is injectable so tests can make keys deterministic.
    """

    def __init__(self, uuid_factory: Callable[[], uuid.UUID] = uuid.uuid4) -> None:
        self._uuid_factory = uuid_factory

    def new_key(self, type_name: str) -> str:
        if not type_name or KEY_SEPARATOR in type_name:
            raise ValueError(f"Invalid type name {type_name!r}")
        return f"{type_name}{KEY_SEPARATOR}{self._uuid_factory()}"


def type_name_of(key: str) -> str:
    """Return the type prefix of a primary key."""
    type_name, sep, unique = key.partition(KEY_SEPARATOR)
    if not sep or not type_name or not unique:
        raise ValueError(f"Key {key!r} has no type prefix")
    return type_name


__all__ = ["KeyGenerator", "type_name_of", "KEY_SEPARATOR"]
