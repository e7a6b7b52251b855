"""Resolución de metadata de coins con fuente primaria + secundaria.

Reglas:
- Una sola llamada batch por fuente y por `resolve`, con todas las claves no cacheadas.
- Respuesta posicional: el elemento i corresponde a la clave i; vacío -> tombstone.
- Si un batch falla, todas sus claves quedan como tombstone en la cache de esa
  fuente y seguimos con lo que haya producido la otra.
- La primaria siempre gana; la secundaria solo rellena huecos.
- Nunca lanza: devuelve un mapa (posiblemente parcial).
"""

from __future__ import annotations

import logging
from typing import Any, Iterable, Mapping

from pydantic import ValidationError

from core.domain.catalog import FALLBACK_COIN_ICONS
from core.domain.models import CoinMetadata
from core.interfaces.cache import KeyedCache
from core.interfaces.sources import CoinMetadataSource

logger = logging.getLogger(__name__)


def _to_metadata(coin_type: str, raw: Any) -> CoinMetadata | None:
    if not isinstance(raw, dict):
        return None
    try:
        return CoinMetadata.model_validate({**raw, "id": coin_type})
    except ValidationError:
        return None


class _SourcePass:
    """Una fuente y su cache propia."""

    def __init__(self, source: CoinMetadataSource, cache: KeyedCache[CoinMetadata]) -> None:
        self.source = source
        self.cache = cache

    async def run(self, coin_types: list[str]) -> dict[str, CoinMetadata]:
        found: dict[str, CoinMetadata] = {}
        uncached: list[str] = []
        for coin_type in coin_types:
            if coin_type in self.cache:
                cached = self.cache.get(coin_type)
                if cached is not None:
                    found[coin_type] = cached
            else:
                uncached.append(coin_type)

        if not uncached:
            return found

        logger.debug("%s: fetching %d coin types", self.source.name, len(uncached))
        try:
            entries = await self.source.fetch_batch(uncached)
            if not isinstance(entries, list):
                raise TypeError(f"expected list, got {type(entries).__name__}")
        except Exception as exc:
            logger.warning(
                "%s metadata batch failed for %d coin types: %s",
                self.source.name,
                len(uncached),
                exc,
            )
            for coin_type in uncached:
                self.cache.tombstone(coin_type)
            return found

        for index, coin_type in enumerate(uncached):
            raw = entries[index] if index < len(entries) else None
            meta = _to_metadata(coin_type, raw)
            if meta is None:
                self.cache.tombstone(coin_type)
                continue
            self.cache.put(coin_type, meta)
            found[coin_type] = meta
        return found


class MetadataResolver:
    def __init__(
        self,
        *,
        primary: CoinMetadataSource,
        primary_cache: KeyedCache[CoinMetadata],
        secondary: CoinMetadataSource | None = None,
        secondary_cache: KeyedCache[CoinMetadata] | None = None,
        fallback_icons: Mapping[str, str] = FALLBACK_COIN_ICONS,
    ) -> None:
        self._primary = _SourcePass(primary, primary_cache)
        self._secondary = (
            _SourcePass(secondary, secondary_cache)
            if secondary is not None and secondary_cache is not None
            else None
        )
        self._fallback_icons = fallback_icons

    async def resolve(self, coin_types: Iterable[str]) -> dict[str, CoinMetadata]:
        requested = list(dict.fromkeys(c for c in coin_types if c))
        if not requested:
            return {}

        result = await self._primary.run(requested)

        missing = [c for c in requested if c not in result]
        if missing and self._secondary is not None:
            from_secondary = await self._secondary.run(missing)
            for coin_type, meta in from_secondary.items():
                result.setdefault(coin_type, meta)

        return {c: self._with_fallback_icon(result[c]) for c in requested if c in result}

    def _with_fallback_icon(self, meta: CoinMetadata) -> CoinMetadata:
        if meta.icon_url:
            return meta
        icon = self._fallback_icons.get(meta.id)
        if not icon:
            return meta
        return meta.model_copy(update={"icon_url": icon})
