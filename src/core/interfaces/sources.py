"""Contratos de los colaboradores externos del pipeline.

Reglas de diseño:
- Todo es asíncrono porque típicamente hará I/O (HTTP/RPC).
- Los servicios del Core dependen de estos contratos, nunca de httpx ni del SDK de IA.
"""

from __future__ import annotations

from typing import Any, Protocol, Sequence, runtime_checkable

from core.domain.models import EnrichedBundle, PackageNarrative, TransactionNarrative


@runtime_checkable
class CoinMetadataSource(Protocol):
    """Fuente batch de metadata de coins.

    Contrato posicional: el resultado tiene la misma longitud y orden que
    `coin_types`; cada elemento es un dict de metadata o None.
    """

    name: str

    async def fetch_batch(self, coin_types: Sequence[str]) -> list[dict[str, Any] | None]:
        ...


@runtime_checkable
class NameLookup(Protocol):
    """Reverse lookup dirección -> nombre (limit 1)."""

    async def reverse_lookup(self, address: str) -> str | None:
        ...


@runtime_checkable
class ChainReader(Protocol):
    """Lecturas de cadena que el pipeline trata como dependencias duras."""

    async def get_transaction_block(self, digest: str) -> dict[str, Any]:
        ...

    async def get_normalized_modules(self, package_id: str) -> dict[str, Any]:
        ...

    async def sample_random_digest(self) -> str:
        ...


@runtime_checkable
class NarrativeGenerator(Protocol):
    """Generador opaco: datos estructurados -> texto/diagrama estructurado."""

    async def explain_transaction(self, bundle: EnrichedBundle) -> TransactionNarrative:
        ...

    async def explain_package(self, package_id: str, modules: dict[str, Any]) -> PackageNarrative:
        ...


@runtime_checkable
class TimestampStore(Protocol):
    """Almacenamiento durable de la ventana de rate limit (lista de ms)."""

    def load(self) -> list[int]:
        ...

    def save(self, timestamps: list[int]) -> None:
        ...
