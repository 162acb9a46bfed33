"""In-memory KeyValue backend (tests, ephemeral sessions)."""

from __future__ import annotations

from typing import Dict, Optional


class MemoryKeyValue:
    __slots__ = ("_data",)

    def __init__(self) -> None:
        self._data: Dict[bytes, bytes] = {}

    def get(self, key: bytes) -> Optional[bytes]:
        return self._data.get(bytes(key))

    def put(self, key: bytes, value: bytes) -> None:
        if not isinstance(key, (bytes, bytearray)) or not isinstance(value, (bytes, bytearray)):
            raise TypeError("key and value must be bytes")
        self._data[bytes(key)] = bytes(value)

    def delete(self, key: bytes) -> None:
        self._data.pop(bytes(key), None)

    def __len__(self) -> int:
        return len(self._data)


__all__ = ["MemoryKeyValue"]
