"""Cache en memoria para los resolvers (implementa `KeyedCache`).

Sin eviction: vive lo que vive el proceso. Un LRU/TTL puede reemplazarla
implementando el mismo contrato.
"""

from __future__ import annotations

from typing import Generic, TypeVar

V = TypeVar("V")


class MemoryCache(Generic[V]):
    def __init__(self) -> None:
        # None = tombstone ("consultado, sin datos").
        self._entries: dict[str, V | None] = {}

    def __contains__(self, key: object) -> bool:
        return key in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def get(self, key: str) -> V | None:
        return self._entries.get(key)

    def put(self, key: str, value: V) -> None:
        self._entries[key] = value

    def tombstone(self, key: str) -> None:
        self._entries[key] = None
