"""
fairplay.store
==============

Light abstractions for the byte-oriented key/value backends that hold
session recovery records (in-memory for tests, SQLite for durable use).

Higher layers depend on the small `KeyValue` protocol rather than a concrete
database, and perform their own key composition and (de)serialization.
"""

from __future__ import annotations

from typing import Optional, Protocol


class KeyValue(Protocol):
    """Minimal byte-oriented KV interface.

    Keys and values are raw bytes. Namespaces (if needed) should be handled by
    the caller via prefixed keys.
    """

    def get(self, key: bytes) -> Optional[bytes]:
        """Return value for key, or None if missing."""
        ...

    def put(self, key: bytes, value: bytes) -> None:
        """Insert or replace key with value."""
        ...

    def delete(self, key: bytes) -> None:
        """Remove key if present (no-op if absent)."""
        ...


def open_kv(uri: str) -> KeyValue:
    """
    Open a backend from a store URI:
      - memory://            → MemoryKeyValue
      - sqlite://<path>      → SQLiteKeyValue at <path>
    """
    if "://" not in uri:
        raise ValueError(f"store URI must have a scheme: {uri!r}")
    scheme, rest = uri.split("://", 1)
    if scheme == "memory":
        from .memory import MemoryKeyValue

        return MemoryKeyValue()
    if scheme == "sqlite":
        if not rest:
            raise ValueError("sqlite:// URI needs a path")
        from .sqlite import SQLiteKeyValue

        return SQLiteKeyValue(rest)
    raise ValueError(f"unsupported store scheme: {scheme!r}")


__all__ = ["KeyValue", "open_kv"]
