"""Contrato de cache con semántica de presencia opcional.

Por qué Protocol:
- Los resolvers solo necesitan "¿lo busqué ya?" + "¿qué encontré?"; el contenedor
  concreto (dict, LRU, TTL) queda en adapters y se puede sustituir sin tocarlos.
- Un tombstone registra "consultado, sin datos" y es distinto de "no consultado".
"""

from __future__ import annotations

from typing import Protocol, TypeVar, runtime_checkable

V = TypeVar("V")


@runtime_checkable
class KeyedCache(Protocol[V]):
    """Lookup por clave con tombstones."""

    def __contains__(self, key: object) -> bool:
        """True si la clave ya fue resuelta (con valor o como tombstone)."""

        ...

    def get(self, key: str) -> V | None:
        """Valor cacheado; None si es tombstone o si la clave no existe."""

        ...

    def put(self, key: str, value: V) -> None:
        ...

    def tombstone(self, key: str) -> None:
        """Marca la clave como consultada y sin datos."""

        ...
